"""Configuration models for the farmer daemon."""

from __future__ import annotations

import re
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_DATADIR = "~/.storj-farmer-cli"
CONFIG_NAME = "config.json"


class StorageUnit(str, Enum):
    """Binary units an operator may express shared capacity in."""

    MB = "MB"
    GB = "GB"
    TB = "TB"

    @property
    def multiplier(self) -> int:
        return {"MB": 1024**2, "GB": 1024**3, "TB": 1024**4}[self.value]


_SPACE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]+)\s*$")


def parse_space(value: str) -> tuple[float, StorageUnit]:
    """Parse an operator string such as ``"50MB"`` or ``"2GB"``.

    Raises ValueError for anything that is not a positive number followed
    by one of MB, GB or TB.
    """
    match = _SPACE_RE.match(value)
    if not match:
        raise ValueError(f"invalid space {value!r}, try 50MB, 2GB, or 1TB")
    size = float(match.group(1))
    if size <= 0:
        raise ValueError(f"invalid space {value!r}, size must be positive")
    try:
        unit = StorageUnit(match.group(2).upper())
    except ValueError:
        raise ValueError(f"invalid unit in {value!r}, try 50MB, 2GB, or 1TB") from None
    if size.is_integer():
        size = int(size)
    return size, unit


NODE_ID_LENGTH = 40
_NODE_ID_RE = re.compile(rf"[0-9a-fA-F]{{{NODE_ID_LENGTH}}}")
_BAD_SEED = "Invalid seed URI supplied, make sure the nodeID is correct"


def parse_seed(value: str) -> str:
    """Validate a seed URI of the form ``storj://host:port/<nodeID>``.

    The node ID is 40 hex characters. Returns the URI without surrounding
    whitespace; raises ValueError for anything else.
    """
    uri = urlparse(value.strip())
    try:
        port = uri.port
    except ValueError:
        raise ValueError(_BAD_SEED) from None
    if uri.scheme != "storj" or not uri.hostname or port is None:
        raise ValueError(_BAD_SEED)
    if not uri.path.startswith("/") or not _NODE_ID_RE.fullmatch(uri.path[1:]):
        raise ValueError(_BAD_SEED)
    if uri.query or uri.fragment:
        raise ValueError(_BAD_SEED)
    return value.strip()


@dataclass
class StorageConfig:
    """Shared storage allocation."""

    path: str = DEFAULT_DATADIR
    size: float = 2
    unit: StorageUnit = StorageUnit.GB

    def capacity_bytes(self) -> int:
        """Configured capacity converted to bytes (binary multiples)."""
        return int(self.size * self.unit.multiplier)


@dataclass
class NetworkConfig:
    """How this node is reachable on the storage network."""

    address: str = "127.0.0.1"
    port: int = 4000
    seeds: list[str] = field(default_factory=list)
    forward: bool = False


@dataclass
class TelemetryConfig:
    """Telemetry reporting settings."""

    enabled: bool = False
    service: str = "https://status.storj.io"
    speedtest_url: str = "https://speedofme.storj.io"
    speedtest_cache: str = str(Path(tempfile.gettempdir()) / "speedtest.json")
    interval: int = 300  # seconds between report ticks


@dataclass
class FarmerConfig:
    """Complete farmer configuration."""

    keypath: str = ""
    address: str = ""  # payment address
    password: str = ""  # only ever populated from the environment
    storage: StorageConfig = field(default_factory=StorageConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    def to_dict(self) -> dict:
        """Serializable form written by ``storj-farmer init``."""
        return {
            "keypath": self.keypath,
            "address": self.address,
            "storage": {
                "path": self.storage.path,
                "size": self.storage.size,
                "unit": self.storage.unit.value,
            },
            "network": {
                "address": self.network.address,
                "port": self.network.port,
                "seeds": list(self.network.seeds),
                "forward": self.network.forward,
            },
            "telemetry": {
                "service": self.telemetry.service,
                "enabled": self.telemetry.enabled,
                "speedtest_url": self.telemetry.speedtest_url,
                "speedtest_cache": self.telemetry.speedtest_cache,
                "interval": self.telemetry.interval,
            },
        }
