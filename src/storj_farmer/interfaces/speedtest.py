"""SpeedTester protocol - measures upload/download throughput."""

from __future__ import annotations

from typing import Protocol

from storj_farmer.models.telemetry import SpeedTestResult


class SpeedTester(Protocol):
    """Runs a network speed test against a remote endpoint."""

    async def test(self) -> SpeedTestResult:
        """Measure rates in bytes/sec. Raises SpeedTestError on failure."""
        ...
