"""CLI entry point for Lanscope."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import structlog

from .classification import ClassificationEngine
from .config import Config
from .correlation import AddressCorrelator, ArpTableProvider
from .discovery import DiscoveryCoordinator, ZeroconfSubstrate
from .models import DiscoveredDevice, IconTag
from .records import RecordInterpreter
from .utils.logging_setup import configure_logging


def device_to_dict(device: DiscoveredDevice, interpreter: RecordInterpreter) -> Dict[str, Any]:
    """JSON-ready view of a device, with its TXT records grouped and interpreted."""
    records = {
        category.value: [
            {"key": raw_key, "label": label, "value": value}
            for raw_key, label, value in entries
        ]
        for category, entries in interpreter.describe(device.metadata).items()
    }
    return {
        "display_name": device.display_name,
        "icon": IconTag(device.icon_tag).value,
        "name": device.name,
        "service_type": device.service_type,
        "domain": device.domain,
        "host_name": device.host_name,
        "port": device.port,
        "addresses": list(device.addresses),
        "hardware_address": device.hardware_address,
        "vendor": device.vendor_name,
        "records": records,
    }


async def run_browse(config: Config, duration: float) -> List[DiscoveredDevice]:
    """Browses for `duration` seconds and returns the registry contents."""
    correlator = AddressCorrelator(ArpTableProvider(config.correlation)) if config.correlation.enabled else None
    coordinator = DiscoveryCoordinator(
        ZeroconfSubstrate(meta_service_type=config.discovery.meta_service_type),
        config=config.discovery,
        classifier=ClassificationEngine(),
        correlator=correlator,
    )
    try:
        await coordinator.start()
        await asyncio.sleep(duration)
        devices = await coordinator.snapshot()
    finally:
        await coordinator.close()
    return devices


@click.group()
@click.option(
    "--config-file", "-c",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Path to a JSON configuration file.",
    envvar="LANSCOPE_CONFIG_FILE"
)
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the logging level (e.g., DEBUG, INFO).",
    envvar="LANSCOPE_LOGGING_LEVEL"
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Override logging format.",
    envvar="LANSCOPE_LOGGING_FORMAT"
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str], log_format: Optional[str]) -> None:
    """Lanscope - discovers devices on the local network through DNS-SD."""
    try:
        if config_file:
            cfg = Config.from_file(Path(config_file))
        else:
            cfg = Config()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if log_level:
        cfg.logging.level = log_level.upper()
    if log_format:
        cfg.logging.format = log_format.lower()

    configure_logging(cfg.logging)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command()
@click.option(
    "--duration", "-d",
    type=click.FloatRange(min=0.5),
    default=10.0,
    show_default=True,
    help="Seconds to browse before reporting."
)
@click.option(
    "--output-file", "-o",
    type=click.Path(dir_okay=False, writable=True, resolve_path=True),
    help="Write the device list to this file (JSON) instead of stdout."
)
@click.pass_context
def browse(ctx: click.Context, duration: float, output_file: Optional[str]) -> None:
    """Browses the local network and prints the devices found."""
    config: Config = ctx.obj["config"]
    logger = structlog.get_logger(__name__)

    try:
        devices = asyncio.run(run_browse(config, duration))
    except KeyboardInterrupt:
        click.echo("\nBrowsing interrupted by user.", err=True)
        sys.exit(130)
    except Exception as e:
        logger.exception("Browsing failed", error=str(e))
        click.echo(f"An unexpected error occurred while browsing: {e}", err=True)
        sys.exit(1)

    interpreter = RecordInterpreter.from_config(config.interpreter)
    payload = [device_to_dict(d, interpreter) for d in sorted(devices, key=lambda d: d.display_name.lower())]

    if output_file:
        try:
            with open(output_file, "w") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            click.echo(f"Error writing output file {output_file}: {e}", err=True)
            sys.exit(1)
        click.echo(f"{len(payload)} devices written to {output_file}")
    else:
        click.echo(json.dumps(payload, indent=2))


@cli.command()
@click.argument("key")
@click.argument("value", default="")
@click.pass_context
def interpret(ctx: click.Context, key: str, value: str) -> None:
    """Shows how a single TXT record KEY=VALUE is read."""
    config: Config = ctx.obj["config"]
    interpreter = RecordInterpreter.from_config(config.interpreter)
    label, readable = interpreter.interpret(key, value)
    category = interpreter.categorize(key)
    click.echo(f"{label} [{category.value}]: {readable}")


@cli.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    click.echo(f"Lanscope v{__version__}")


@cli.command()
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: Config = ctx.obj["config"]
    click.echo(config.model_dump_json(indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
