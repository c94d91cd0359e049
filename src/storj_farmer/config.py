"""Configuration loading: <datadir>/config.json + environment variables."""

from __future__ import annotations

import json
import os
from pathlib import Path

from storj_farmer.errors import ConfigError
from storj_farmer.models.config import (
    CONFIG_NAME,
    FarmerConfig,
    NetworkConfig,
    StorageConfig,
    StorageUnit,
    TelemetryConfig,
)

_TRUE = {"1", "true", "yes", "on"}


def config_path(datadir: str | Path) -> Path:
    return Path(datadir).expanduser() / CONFIG_NAME


def load_config(
    datadir: str | Path,
    env_prefix: str = "STORJ_FARMER_",
) -> FarmerConfig:
    """Load farmer configuration from the data directory and env vars.

    Priority (highest wins):
        1. Environment variables (STORJ_FARMER_PASSWORD, etc.)
        2. config.json in the data directory
        3. Defaults from FarmerConfig

    Raises ConfigError if the data directory or config file is missing or
    the file is malformed.
    """
    root = Path(datadir).expanduser()
    if not root.is_dir():
        raise ConfigError(f"The supplied datadir does not exist: {root}")

    p = root / CONFIG_NAME
    if not p.exists():
        raise ConfigError(f"No storj configuration found in datadir: {root}")

    try:
        with open(p) as f:
            raw = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{p} must contain a JSON object")

    try:
        cfg = _from_dict(raw, root)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration in {p}: {exc}") from exc

    # ── Environment variable overrides (highest priority) ──
    if password := os.environ.get(f"{env_prefix}PASSWORD"):
        cfg.password = password
    if telemetry := os.environ.get(f"{env_prefix}TELEMETRY"):
        cfg.telemetry.enabled = telemetry.strip().lower() in _TRUE
    if address := os.environ.get(f"{env_prefix}ADDRESS"):
        cfg.network.address = address
    if port := os.environ.get(f"{env_prefix}PORT"):
        try:
            cfg.network.port = int(port)
        except ValueError as exc:
            raise ConfigError(f"{env_prefix}PORT must be an integer, got {port!r}") from exc
    if url := os.environ.get(f"{env_prefix}SPEEDTEST_URL"):
        cfg.telemetry.speedtest_url = url

    # Expand ~ in paths
    cfg.keypath = str(Path(cfg.keypath).expanduser()) if cfg.keypath else ""
    cfg.storage.path = str(Path(cfg.storage.path).expanduser())
    cfg.telemetry.speedtest_cache = str(Path(cfg.telemetry.speedtest_cache).expanduser())

    return cfg


def _from_dict(raw: dict, datadir: Path) -> FarmerConfig:
    cfg = FarmerConfig()
    cfg.keypath = str(raw.get("keypath") or "")
    cfg.address = str(raw.get("address") or "")

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    unit = storage.get("unit", StorageUnit.GB.value)
    try:
        unit = StorageUnit(unit)
    except ValueError:
        raise ConfigError(f"storage.unit must be one of MB, GB, TB (got {unit!r})") from None
    cfg.storage = StorageConfig(
        path=str(storage.get("path") or datadir),
        size=float(storage.get("size", 2)),
        unit=unit,
    )
    if cfg.storage.size <= 0:
        raise ConfigError("storage.size must be positive")
    if cfg.storage.size.is_integer():
        cfg.storage.size = int(cfg.storage.size)

    # ── Network section ────────────────────────────────────
    network = raw.get("network", {})
    defaults = NetworkConfig()
    cfg.network = NetworkConfig(
        address=str(network.get("address") or defaults.address),
        port=int(network.get("port", defaults.port)),
        seeds=list(network.get("seeds") or []),
        forward=bool(network.get("forward", defaults.forward)),
    )

    # ── Telemetry section ──────────────────────────────────
    telemetry = raw.get("telemetry", {})
    t_defaults = TelemetryConfig()
    cfg.telemetry = TelemetryConfig(
        enabled=bool(telemetry.get("enabled", False)),
        service=str(telemetry.get("service") or t_defaults.service),
        speedtest_url=str(telemetry.get("speedtest_url") or t_defaults.speedtest_url),
        speedtest_cache=str(telemetry.get("speedtest_cache") or t_defaults.speedtest_cache),
        interval=int(telemetry.get("interval", t_defaults.interval)),
    )
    if cfg.telemetry.interval <= 0:
        raise ConfigError("telemetry.interval must be positive")

    return cfg


def save_config(cfg: FarmerConfig, datadir: str | Path) -> Path:
    """Write config.json into the data directory. Never includes the password."""
    p = config_path(datadir)
    with open(p, "w") as f:
        json.dump(cfg.to_dict(), f, indent=2)
    return p
