"""Data models for the storj_farmer daemon."""

from storj_farmer.models.config import (
    FarmerConfig,
    NetworkConfig,
    StorageConfig,
    StorageUnit,
    TelemetryConfig,
    parse_space,
)
from storj_farmer.models.telemetry import (
    BandwidthSample,
    ContactInfo,
    DeliveryReceipt,
    SpeedTestResult,
    StorageUsageSnapshot,
    TelemetryReport,
    TickResult,
)

__all__ = [
    "FarmerConfig", "NetworkConfig", "StorageConfig", "StorageUnit",
    "TelemetryConfig", "parse_space",
    "BandwidthSample", "ContactInfo", "DeliveryReceipt", "SpeedTestResult",
    "StorageUsageSnapshot", "TelemetryReport", "TickResult",
]
