"""Telemetry data: bandwidth samples, usage snapshots and reports."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BandwidthSample:
    """Result of one speed test, as persisted in the cache file."""

    upload: float  # bytes/sec
    download: float  # bytes/sec
    timestamp: int  # ms since epoch

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp

    def to_dict(self) -> dict:
        return {"upload": self.upload, "download": self.download, "timestamp": self.timestamp}


@dataclass(frozen=True)
class SpeedTestResult:
    """Raw rates returned by a speed-test transport."""

    upload: float
    download: float


@dataclass(frozen=True)
class StorageUsageSnapshot:
    """Capacity and usage of the data directory at one moment."""

    total_bytes: int
    used_bytes: int


@dataclass(frozen=True)
class ContactInfo:
    """How other nodes reach us."""

    address: str
    port: int
    node_id: str

    def to_dict(self) -> dict:
        return {"address": self.address, "port": self.port, "nodeID": self.node_id}


@dataclass(frozen=True)
class TelemetryReport:
    """One report tick's payload. Never mutated, never resent."""

    storage: StorageUsageSnapshot
    bandwidth: BandwidthSample
    contact: ContactInfo
    payment: str

    def to_dict(self) -> dict:
        return {
            "storage": {
                "free": self.storage.total_bytes,
                "used": self.storage.used_bytes,
            },
            "bandwidth": {
                "upload": self.bandwidth.upload,
                "download": self.bandwidth.download,
            },
            "contact": self.contact.to_dict(),
            "payment": self.payment,
        }


@dataclass
class DeliveryReceipt:
    """Acknowledgement returned by the collection endpoint."""

    status_code: int
    body: dict | None = None


@dataclass
class TickResult:
    """Outcome of one scheduler tick."""

    status: str  # "sent", "skipped", "failed"
    started_at: str  # ISO 8601
    report: TelemetryReport | None = None
    error: str | None = None
    duration_ms: int = 0
