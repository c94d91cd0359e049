"""Telemetry scheduler - periodic report ticks."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from storj_farmer.bandwidth.cache import BandwidthCache
from storj_farmer.errors import DeliveryError, FilesystemError, SpeedTestError
from storj_farmer.interfaces.transport import TelemetryTransport
from storj_farmer.models.config import StorageConfig
from storj_farmer.models.telemetry import (
    ContactInfo,
    StorageUsageSnapshot,
    TelemetryReport,
    TickResult,
)
from storj_farmer.storage.usage import StorageSizeAggregator

log = logging.getLogger(__name__)

REPORT_INTERVAL = 5 * 60  # seconds


class TelemetryScheduler:
    """Builds and delivers one telemetry report per tick.

    Each tick:
    1. Resolves bandwidth freshness, running a speed test if stale
       (a failed test skips the tick)
    2. Measures the data directory
    3. Builds the report and hands it to the transport
    4. Logs the outcome

    The next tick is scheduled only after the current one finishes, and
    whatever happens inside a tick the loop keeps going.
    """

    def __init__(
        self,
        cache: BandwidthCache,
        aggregator: StorageSizeAggregator,
        transport: TelemetryTransport,
        storage: StorageConfig,
        contact: ContactInfo,
        payment: str = "",
        interval: float = REPORT_INTERVAL,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._aggregator = aggregator
        self._transport = transport
        self._storage = storage
        self._contact = contact
        self._payment = payment
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._next_fire_at: float | None = None
        self.last_result: TickResult | None = None

    @property
    def next_fire_at(self) -> float | None:
        return self._next_fire_at

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Lifecycle ─────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Start the tick loop as a background task. The first tick runs immediately."""
        if self.running:
            return self._task  # type: ignore[return-value]
        self._task = asyncio.create_task(self._loop())
        log.info("Telemetry reporting started (interval=%ss)", self._interval)
        return self._task

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._next_fire_at = None
        log.info("Telemetry reporting stopped")

    async def _loop(self) -> None:
        while True:
            try:
                self.last_result = await self.run_tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.error("Telemetry tick error: %s", exc, exc_info=True)

            self._next_fire_at = self._clock() + self._interval
            await self._sleep(self._interval)

    # ── One tick ──────────────────────────────────────────

    async def run_tick(self) -> TickResult:
        """Run one report tick and return its outcome."""
        started = datetime.now(timezone.utc).isoformat()
        start_time = time.monotonic()

        def _duration() -> int:
            return int((time.monotonic() - start_time) * 1000)

        # 1. Bandwidth
        try:
            bandwidth = await self._cache.refresh_if_stale()
        except SpeedTestError as exc:
            log.error("Speed test failed, skipping report: %s", exc)
            return TickResult(
                status="skipped", started_at=started, error=str(exc), duration_ms=_duration(),
            )

        # 2. Storage, measured only after bandwidth is resolved
        try:
            used = await self._aggregator.measure(self._storage.path)
        except FilesystemError as exc:
            log.error("Storage measurement failed, reporting 0 bytes used: %s", exc)
            used = 0

        # 3. Capacity
        usage = StorageUsageSnapshot(
            total_bytes=self._storage.capacity_bytes(),
            used_bytes=used,
        )

        # 4. Build and deliver
        report = TelemetryReport(
            storage=usage,
            bandwidth=bandwidth,
            contact=self._contact,
            payment=self._payment,
        )
        try:
            await self._transport.send(report)
        except DeliveryError as exc:
            log.error("%s", exc)
            return TickResult(
                status="failed", started_at=started, report=report,
                error=str(exc), duration_ms=_duration(),
            )

        # 5. Outcome
        log.info("sent telemetry report %s", json.dumps(report.to_dict()))
        return TickResult(
            status="sent", started_at=started, report=report, duration_ms=_duration(),
        )
