"""Main daemon - wires the unlocked identity, network node and telemetry together."""

from __future__ import annotations

import asyncio
import logging
import signal

from stellar_sdk import Keypair

from storj_farmer.bandwidth.cache import BandwidthCache
from storj_farmer.bandwidth.speedtest import HttpSpeedTest
from storj_farmer.errors import NetworkJoinError
from storj_farmer.interfaces.node import NetworkNode
from storj_farmer.interfaces.speedtest import SpeedTester
from storj_farmer.interfaces.transport import TelemetryTransport
from storj_farmer.models.config import FarmerConfig
from storj_farmer.models.telemetry import ContactInfo
from storj_farmer.storage.usage import StorageSizeAggregator
from storj_farmer.telemetry.reporter import HttpTelemetryReporter
from storj_farmer.telemetry.scheduler import TelemetryScheduler

log = logging.getLogger(__name__)


class FarmerDaemon:
    """Long-running farmer process.

    Joins the storage network through the given node (when one is wired)
    and, if telemetry is enabled, runs the periodic telemetry scheduler
    until stopped.
    """

    def __init__(
        self,
        cfg: FarmerConfig,
        keypair: Keypair,
        node: NetworkNode | None = None,
        speed_tester: SpeedTester | None = None,
        transport: TelemetryTransport | None = None,
    ) -> None:
        self._cfg = cfg
        self._keypair = keypair
        self._stopped = asyncio.Event()

        self.node = node
        self.contact = node.contact if node else ContactInfo(
            address=cfg.network.address,
            port=cfg.network.port,
            node_id=keypair.public_key,
        )

        # Telemetry (optional - disabled by default)
        self.cache: BandwidthCache | None = None
        self.transport: TelemetryTransport | None = None
        self.scheduler: TelemetryScheduler | None = None
        if cfg.telemetry.enabled:
            self.cache = BandwidthCache(
                cfg.telemetry.speedtest_cache,
                speed_tester or HttpSpeedTest(cfg.telemetry.speedtest_url),
            )
            self.transport = transport or HttpTelemetryReporter(cfg.telemetry.service, keypair)
            self.scheduler = TelemetryScheduler(
                cache=self.cache,
                aggregator=StorageSizeAggregator(),
                transport=self.transport,
                storage=cfg.storage,
                contact=self.contact,
                payment=cfg.address,
                interval=cfg.telemetry.interval,
            )

    async def start(self) -> None:
        """Join the network, start telemetry and block until stopped."""
        log.info("Starting storj farmer")
        log.info("  Node ID: %s", self.contact.node_id)
        log.info("  Contact: %s:%d", self.contact.address, self.contact.port)
        log.info("  Storage: %s (%s%s)",
                 self._cfg.storage.path, self._cfg.storage.size, self._cfg.storage.unit.value)
        log.info("  Telemetry: %s", "enabled" if self.scheduler else "disabled")

        joined = False
        try:
            if self.node:
                try:
                    await self.node.join()
                except Exception as exc:
                    raise NetworkJoinError(str(exc) or exc.__class__.__name__) from exc
                joined = True
                log.info("Joined the storage network")

            if self.scheduler:
                self.scheduler.start()

            await self._stopped.wait()
        finally:
            if self.scheduler:
                await self.scheduler.stop()
            if self.transport:
                await self.transport.close()
            if joined:
                await self.node.leave()
            log.info("Farmer shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._stopped.set()


async def run_daemon(
    cfg: FarmerConfig,
    keypair: Keypair,
    node: NetworkNode | None = None,
) -> None:
    """Entry point for running the daemon."""
    daemon = FarmerDaemon(cfg, keypair, node=node)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
