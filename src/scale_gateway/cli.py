#!/usr/bin/env python3
"""
Scale Gateway CLI Application

A command-line tool to relay weight measurements from a BLE weight scale
to a remote data stream, and to help calibrating the scale.
"""

import asyncio
import logging
from pathlib import Path
from typing import NoReturn
from typing import Optional

from rich.console import Console
from rich.table import Table
import typer

from scale_gateway.calibration import calibrate as calculate_calibration
from scale_gateway.calibration import save_calibration
from scale_gateway.codec import decode_weight
from scale_gateway.config import load_config
from scale_gateway.errors import AdapterUnavailableError
from scale_gateway.errors import ConfigError
from scale_gateway.errors import DecodeError
from scale_gateway.relay import Relay

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Create Typer app and console
app = typer.Typer(help="Relay BLE weight scale measurements to a remote data stream")
console = Console()

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def fail(message: str) -> NoReturn:
    """Log a fatal error and exit with non-zero status"""
    logger.error(message)
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


@app.command()
def relay(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (defaults to SCALE_GATEWAY_CONFIG env var or ~/scalegateway.cfg)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Continuously relay weight measurements to the remote data stream

    The scale is read and the weight uploaded every uploadSecs seconds.
    Press Ctrl+C to stop.
    """
    setup_logging(verbose)

    try:
        config = load_config(config_file)
    except ConfigError as e:
        fail(str(e))

    console.print(f"Relaying {config.ble_local_name} to {config.sink} every {config.upload_secs}s", style="bold green")
    console.print("Press Ctrl+C to stop.", style="bold green")

    try:
        asyncio.run(Relay(config).run())
    except KeyboardInterrupt:
        console.print("\nRelay stopped by user.", style="yellow")
    except AdapterUnavailableError as e:
        fail(f"BLE adapter unavailable. Exiting. {e}")
    except Exception as e:
        fail(f"Relay stopped: {e}")


@app.command()
def read(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (defaults to SCALE_GATEWAY_CONFIG env var or ~/scalegateway.cfg)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Read the weight from the scale once, without upload"""
    setup_logging(verbose)

    try:
        config = load_config(config_file)
    except ConfigError as e:
        fail(str(e))

    try:
        with console.status(f"Reading {config.ble_local_name}..."):
            weight_kg = asyncio.run(Relay(config).acquire())
    except AdapterUnavailableError as e:
        fail(f"BLE adapter unavailable. {e}")
    except Exception as e:
        fail(f"Read failed: {e}")

    if weight_kg is None:
        fail("Failed to read weight from the scale, see the log for details")
    console.print(f"Weight: {weight_kg:.3f} kg")


@app.command()
def decode(data: str = typer.Argument(..., help="Weight Measurement record as hex, i.e. 00e803")):
    """Decode a BLE Weight Measurement record"""
    try:
        record = decode_weight(bytes.fromhex(data))
    except ValueError as e:
        # DecodeError is a ValueError, as is bad hex
        kind = "Cannot decode record" if isinstance(e, DecodeError) else "Invalid hex data"
        console.print(f"[bold red]{kind}:[/bold red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Weight Measurement")
    table.add_column("Flags")
    table.add_column("Raw")
    table.add_column("Weight (kg)")
    table.add_row(f"0x{record.flags:02x}", str(record.weight_raw), f"{record.weight_kg:.3f}")
    console.print(table)


@app.command()
def calibrate(
    zero_count: float = typer.Option(..., "--zero-count", help="Raw sensor output with no load"),
    loaded_count: float = typer.Option(..., "--loaded-count", help="Raw sensor output with the known weight"),
    known_kg: float = typer.Option(..., "--known-kg", help="Known weight in kilograms"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Save calibration to JSON file"),
):
    """
    Calculate load cell calibration parameters

    Read the raw sensor output with nothing on the scale, then with a
    known weight on it, and pass both values here.
    """
    try:
        calibration = calculate_calibration(zero_count, loaded_count, known_kg)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"offset: {calibration.offset}")
    console.print(f"scale: {calibration.scale}")

    if output_file:
        save_calibration(calibration, output_file)
        console.print(f"Calibration saved to {output_file}", style="green")


def main():
    app()
