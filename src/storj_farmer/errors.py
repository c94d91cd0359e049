"""Exception hierarchy for the farmer daemon."""

from __future__ import annotations


class FarmerError(Exception):
    pass


class ConfigError(FarmerError):
    """Configuration is missing or invalid."""


class DecryptionError(FarmerError):
    """Wrong password or corrupt key blob."""

    def __init__(self, reason: str = "incorrect password or corrupt key file"):
        self.reason = reason
        super().__init__(reason)


class FilesystemError(FarmerError):
    def __init__(self, path, cause: OSError):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Cannot read {self.path}: {cause.strerror or cause}")


class SpeedTestError(FarmerError):
    """Network speed test failed."""


class DeliveryError(FarmerError):
    """Telemetry report could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class NetworkJoinError(FarmerError):
    """The node could not join the storage network."""
