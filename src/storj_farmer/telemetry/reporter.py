"""Telemetry reporter - signs reports with the node keypair and POSTs them."""

from __future__ import annotations

import json
import logging

import httpx
from stellar_sdk import Keypair

from storj_farmer.errors import DeliveryError
from storj_farmer.models.telemetry import DeliveryReceipt, TelemetryReport

log = logging.getLogger(__name__)


def encode_report(report: TelemetryReport) -> bytes:
    """Canonical body bytes; the signature covers exactly these."""
    return json.dumps(report.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


class HttpTelemetryReporter:
    """Delivers telemetry reports to a collection service over HTTP.

    Each body is signed with the node's keypair so the service can tie the
    report to the contact's node ID. The public key and a hex signature
    travel in the ``x-pubkey`` and ``x-signature`` headers.
    """

    def __init__(self, service_url: str, keypair: Keypair, timeout: int = 30) -> None:
        self._url = f"{service_url.rstrip('/')}/reports"
        self._keypair = keypair
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10))

    async def send(self, report: TelemetryReport) -> DeliveryReceipt:
        body = encode_report(report)
        headers = {
            "content-type": "application/json",
            "x-pubkey": self._keypair.public_key,
            "x-signature": self._keypair.sign(body).hex(),
        }
        try:
            resp = await self._client.post(self._url, content=body, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DeliveryError(
                f"telemetry service returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"telemetry delivery failed: {exc}") from exc

        try:
            ack = resp.json()
        except ValueError:
            ack = None
        log.debug("Telemetry service acknowledged with HTTP %d", resp.status_code)
        return DeliveryReceipt(status_code=resp.status_code, body=ack)

    async def close(self) -> None:
        await self._client.aclose()
