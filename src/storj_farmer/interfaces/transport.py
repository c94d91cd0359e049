"""TelemetryTransport protocol - delivers reports to the collection endpoint."""

from __future__ import annotations

from typing import Protocol

from storj_farmer.models.telemetry import DeliveryReceipt, TelemetryReport


class TelemetryTransport(Protocol):
    """Sends a signed telemetry report on behalf of this node."""

    async def send(self, report: TelemetryReport) -> DeliveryReceipt:
        """Deliver one report. Raises DeliveryError on failure."""
        ...

    async def close(self) -> None:
        ...
