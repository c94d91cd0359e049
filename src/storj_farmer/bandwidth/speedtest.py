"""HTTP speed test - times a fixed-size download and upload against a speed-test server."""

from __future__ import annotations

import logging
import os
import time

import httpx

from storj_farmer.errors import SpeedTestError
from storj_farmer.models.telemetry import SpeedTestResult

log = logging.getLogger(__name__)


class HttpSpeedTest:
    """Measures throughput against a speed-test server.

    The server is expected to expose:
    - GET  /download?bytes=N: respond with N bytes
    - POST /upload: accept and discard the request body
    """

    def __init__(
        self,
        url: str,
        sample_bytes: int = 10 * 1024 * 1024,
        timeout: int = 60,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._sample_bytes = sample_bytes
        self._timeout = timeout

    async def test(self) -> SpeedTestResult:
        log.debug("Running speed test against %s", self._base_url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10),
                follow_redirects=True,
            ) as client:
                download = await self._measure_download(client)
                upload = await self._measure_upload(client)
        except httpx.HTTPStatusError as exc:
            raise SpeedTestError(
                f"speed test server returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise SpeedTestError(f"speed test timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            raise SpeedTestError(f"speed test failed: {exc}") from exc

        return SpeedTestResult(upload=upload, download=download)

    async def _measure_download(self, client: httpx.AsyncClient) -> float:
        received = 0
        start = time.monotonic()
        async with client.stream(
            "GET", f"{self._base_url}/download", params={"bytes": self._sample_bytes},
        ) as resp:
            resp.raise_for_status()
            async for chunk in resp.aiter_bytes():
                received += len(chunk)
        elapsed = time.monotonic() - start
        if received == 0:
            raise SpeedTestError("speed test download returned no data")
        return received / max(elapsed, 1e-6)

    async def _measure_upload(self, client: httpx.AsyncClient) -> float:
        payload = os.urandom(self._sample_bytes)
        start = time.monotonic()
        resp = await client.post(f"{self._base_url}/upload", content=payload)
        resp.raise_for_status()
        elapsed = time.monotonic() - start
        return len(payload) / max(elapsed, 1e-6)
