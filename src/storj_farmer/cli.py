"""CLI entry point for the storj farmer daemon."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from storj_farmer.config import config_path, load_config, save_config
from storj_farmer.daemon import run_daemon
from storj_farmer.errors import ConfigError, DecryptionError, NetworkJoinError
from storj_farmer.logs import configure_logging
from storj_farmer.models.config import (
    DEFAULT_DATADIR,
    FarmerConfig,
    NetworkConfig,
    StorageConfig,
    TelemetryConfig,
    parse_seed,
    parse_space,
)
from storj_farmer.vault.keyvault import encrypt, generate_key, unlock_keypair


def _load(datadir: str) -> FarmerConfig:
    """Load config or exit with the reason."""
    try:
        return load_config(datadir)
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _space(ctx, param, value: str):
    try:
        return parse_space(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _seeds(ctx, param, value: tuple[str, ...]):
    try:
        return tuple(parse_seed(seed) for seed in value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


@click.group()
@click.option(
    "-d", "--datadir", default=DEFAULT_DATADIR, show_default=True,
    help="Configuration and storage path",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="storj-farmer", prog_name="storj-farmer")
@click.pass_context
def cli(ctx: click.Context, datadir: str, verbose: bool) -> None:
    """storj-farmer - share storage on the network and report telemetry."""
    ctx.ensure_object(dict)
    ctx.obj["datadir"] = str(Path(datadir).expanduser())
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.option("-p", "--password", default=None, help="Password to unlock your private key")
@click.pass_context
def run(ctx: click.Context, password: str | None) -> None:
    """Unlock the private key and start farming."""
    cfg = _load(ctx.obj["datadir"])

    try:
        blob = Path(cfg.keypath).read_text()
    except OSError as exc:
        click.echo(f"Cannot read private key at {cfg.keypath!r}: {exc}", err=True)
        sys.exit(1)

    password = password or cfg.password
    if not password:
        password = click.prompt("Unlock your private key to start storj", hide_input=True)

    try:
        keypair = unlock_keypair(password, blob)
    except DecryptionError:
        click.echo("Failed to unlock private key - incorrect password", err=True)
        sys.exit(1)

    try:
        asyncio.run(run_daemon(cfg, keypair))
    except NetworkJoinError as exc:
        click.echo(f"Failed to join the network: {exc}", err=True)
        sys.exit(1)


# ── Setup ──────────────────────────────────────────────


@cli.command()
@click.option("--address", default=NetworkConfig.address, show_default=True,
              help="Public hostname or IP address")
@click.option("--port", type=click.IntRange(0, 65535), default=NetworkConfig.port,
              show_default=True, help="Port the service should use (0 for random)")
@click.option("--forward/--no-forward", default=False, help="Use NAT traversal strategies")
@click.option("--seed", "seeds", multiple=True, callback=_seeds,
              help="URI of a known seed (repeatable)")
@click.option("--space", default="2GB", show_default=True, callback=_space,
              help="Storage space to share, e.g. 50MB, 2GB, 1TB")
@click.option("--payto", default="", help="Payment address to receive rewards")
@click.option("--telemetry/--no-telemetry", default=False,
              help="Share telemetry data to help improve the network")
@click.option("--keypath", default=None, help="Where to store the encrypted private key")
@click.password_option("--password", help="Password to protect your private key")
@click.pass_context
def init(
    ctx: click.Context,
    address: str,
    port: int,
    forward: bool,
    seeds: tuple[str, ...],
    space: tuple,
    payto: str,
    telemetry: bool,
    keypath: str | None,
    password: str,
) -> None:
    """Create a data directory, configuration and encrypted private key."""
    datadir = Path(ctx.obj["datadir"])
    if config_path(datadir).exists():
        click.echo(f"Configuration already exists in {datadir}, refusing to overwrite", err=True)
        sys.exit(1)

    key_file = Path(keypath).expanduser() if keypath else datadir / "id_ecdsa"
    if key_file.exists():
        click.echo(f"Refusing to overwrite {key_file}", err=True)
        sys.exit(1)

    size, unit = space
    cfg = FarmerConfig(
        keypath=str(key_file),
        address=payto,
        storage=StorageConfig(path=str(datadir), size=size, unit=unit),
        network=NetworkConfig(address=address, port=port, seeds=list(seeds), forward=forward),
        telemetry=TelemetryConfig(enabled=telemetry),
    )

    datadir.mkdir(parents=True, exist_ok=True)
    key_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.write_text(encrypt(password, generate_key()))
    path = save_config(cfg, datadir)

    click.echo(f"Wrote configuration to {path}")
    click.echo(f"Wrote encrypted private key to {key_file}")
    click.echo("\nStart farming with 'storj-farmer run'")


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show farmer configuration."""
    cfg = _load(ctx.obj["datadir"])
    click.echo(f"Data dir:   {ctx.obj['datadir']}")
    click.echo(f"Key path:   {cfg.keypath or '(not set)'}")
    click.echo(f"Storage:    {cfg.storage.size}{cfg.storage.unit.value} "
               f"({cfg.storage.capacity_bytes()} bytes) at {cfg.storage.path}")
    click.echo(f"Contact:    {cfg.network.address}:{cfg.network.port}")
    click.echo(f"Seeds:      {', '.join(cfg.network.seeds) or '(none)'}")
    click.echo(f"Payment:    {cfg.address or '(not set)'}")
    click.echo(f"Telemetry:  {'enabled' if cfg.telemetry.enabled else 'disabled'}")
    if cfg.telemetry.enabled:
        click.echo(f"  Service:    {cfg.telemetry.service}")
        click.echo(f"  Speed test: {cfg.telemetry.speedtest_url}")
        click.echo(f"  Cache:      {cfg.telemetry.speedtest_cache}")
        click.echo(f"  Interval:   {cfg.telemetry.interval}s")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
