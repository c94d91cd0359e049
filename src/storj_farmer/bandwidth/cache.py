"""Bandwidth cache - persists the last speed test and decides when to rerun it."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Callable

from storj_farmer.errors import SpeedTestError
from storj_farmer.interfaces.speedtest import SpeedTester
from storj_farmer.models.telemetry import BandwidthSample

log = logging.getLogger(__name__)

FRESHNESS_WINDOW_MS = 25 * 60 * 60 * 1000  # 25 hours


def now_ms() -> int:
    return int(time.time() * 1000)


class BandwidthState(str, Enum):
    STALE = "stale"
    TESTING = "testing"
    FRESH = "fresh"


class BandwidthCache:
    """Holds the most recent bandwidth sample backed by a JSON cache file.

    A sample is fresh while its age is below the freshness window. Staleness
    is never signalled; it is evaluated lazily each time the cache is
    consulted. A missing or unreadable cache file means no sample.
    """

    def __init__(
        self,
        path: str | Path,
        speed_tester: SpeedTester,
        window_ms: int = FRESHNESS_WINDOW_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._path = Path(path).expanduser()
        self._tester = speed_tester
        self._window_ms = window_ms
        self._clock = clock
        self._testing = False
        # initial state comes from whatever is already on disk
        self._sample: BandwidthSample | None = self._read()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> BandwidthState:
        if self._testing:
            return BandwidthState.TESTING
        if self._sample is not None and self.is_fresh(self._sample):
            return BandwidthState.FRESH
        return BandwidthState.STALE

    def is_fresh(self, sample: BandwidthSample) -> bool:
        age = sample.age_ms(self._clock())
        # future timestamps count as stale
        return 0 <= age < self._window_ms

    async def load(self) -> BandwidthSample | None:
        """Read the cache file into memory. Returns the sample, if any."""
        self._sample = await asyncio.to_thread(self._read)
        return self._sample

    async def get_sample(self) -> tuple[BandwidthSample | None, bool]:
        """Current sample (re-read from disk) and whether it is fresh."""
        sample = await self.load()
        if sample is None:
            return None, False
        return sample, self.is_fresh(sample)

    async def refresh_if_stale(self) -> BandwidthSample:
        """Return a fresh sample, running the speed test if needed.

        The speed tester is invoked at most once per call. On failure the
        cache file is left untouched and SpeedTestError propagates.
        """
        sample, fresh = await self.get_sample()
        if sample is not None and fresh:
            return sample

        if sample is None:
            log.info("No cached bandwidth sample, running speed test")
        else:
            log.info(
                "Bandwidth sample is %.1f hours old, running speed test",
                sample.age_ms(self._clock()) / 3_600_000,
            )

        self._testing = True
        try:
            result = await self._tester.test()
        except SpeedTestError:
            raise
        except Exception as exc:
            raise SpeedTestError(str(exc) or exc.__class__.__name__) from exc
        finally:
            self._testing = False

        sample = BandwidthSample(
            upload=result.upload,
            download=result.download,
            timestamp=self._clock(),
        )
        try:
            await asyncio.to_thread(self._write, sample)
        except OSError as exc:
            log.error("Failed to write bandwidth cache %s: %s", self._path, exc)
        self._sample = sample
        log.info(
            "Speed test complete: upload=%.0f B/s download=%.0f B/s",
            sample.upload, sample.download,
        )
        return sample

    # ── File access ───────────────────────────────────────

    def _read(self) -> BandwidthSample | None:
        try:
            with open(self._path) as f:
                data = json.load(f)
            return BandwidthSample(
                upload=float(data["upload"]),
                download=float(data["download"]),
                timestamp=int(data["timestamp"]),
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, TypeError, KeyError, OverflowError) as exc:
            log.warning("Ignoring unreadable bandwidth cache %s: %s", self._path, exc)
            return None

    def _write(self, sample: BandwidthSample) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".speedtest-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(sample.to_dict(), f)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
