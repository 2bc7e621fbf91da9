"""Click entry point: discover WLED devices and back them up once."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from wled_backup import __version__
from wled_backup.cli.formatting import print_error, print_json, print_table
from wled_backup.cli.runner import run_command
from wled_backup.config import WLED_SERVICE_TYPE, BackupConfig
from wled_backup.controller import exit_code, run_backup
from wled_backup.errors import DiscoveryError
from wled_backup.models import BackupOutcome, BackupRun, DiscoveredDevice

EXIT_INTERRUPTED = 130


def _print_summary(run: BackupRun) -> None:
    if not run.outcomes:
        click.echo("No devices discovered.")
    else:
        rows = []
        for outcome in run.outcomes:
            dev = outcome.device
            if outcome.succeeded:
                detail = ", ".join(p.name for p in outcome.paths)
            else:
                detail = f"{outcome.error_kind}: {outcome.error}"
            rows.append(
                [
                    outcome.hostname or dev.instance_name,
                    f"{dev.address}:{dev.port}",
                    outcome.status.value,
                    f"{outcome.duration:.2f}s",
                    detail,
                ]
            )
        click.echo()
        print_table(["Device", "Address", "Status", "Time", "Detail"], rows)
    click.echo(f"\nFinished: {run.succeeded} succeeded, {run.failed} failed")


@click.command()
@click.option(
    "--out-dir",
    "-o",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to save backups in (created on first write).",
)
@click.option(
    "--search-secs",
    "-s",
    default=10,
    type=click.IntRange(min=0),
    show_default=True,
    help="Seconds to listen for mDNS advertisements.",
)
@click.option(
    "--max-parallel",
    default=4,
    type=click.IntRange(min=1),
    show_default=True,
    help="Maximum number of devices backed up at once.",
)
@click.option(
    "--timeout",
    "device_timeout",
    default=10.0,
    type=click.FloatRange(min=0, min_open=True),
    show_default=True,
    help="Seconds allowed for retrieving one device's configuration.",
)
@click.option(
    "--service-type",
    default=WLED_SERVICE_TYPE,
    show_default=True,
    help="DNS-SD service type to browse for.",
)
@click.option(
    "--json",
    "use_json",
    is_flag=True,
    default=False,
    help="Output a JSON run summary instead of a table.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(__version__, prog_name="wled-backup")
def main(
    out_dir: Path,
    search_secs: int,
    max_parallel: int,
    device_timeout: float,
    service_type: str,
    use_json: bool,
    verbose: bool,
) -> None:
    """Back up the configuration of every WLED controller found on the network.

    Exits 0 when every discovered device was backed up (or none was found)
    and 1 when discovery or at least one device failed.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = BackupConfig(
            out_dir=out_dir,
            search_secs=search_secs,
            max_parallel=max_parallel,
            device_timeout=device_timeout,
            service_type=service_type,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    def _on_device(device: DiscoveredDevice) -> None:
        click.echo(f"Discovered: {device.name} ({device.address}:{device.port})")

    def _on_outcome(outcome: BackupOutcome) -> None:
        dev = outcome.device
        if outcome.succeeded:
            click.echo(f"  saved {outcome.hostname} ({dev.address}:{dev.port})")
        else:
            click.echo(f"  FAILED {dev.address}:{dev.port}: {outcome.error}")

    if not use_json:
        click.echo(f"Saving backups to {out_dir}, searching for {search_secs} seconds...")

    try:
        run = run_command(
            lambda: run_backup(
                config,
                on_device=None if use_json else _on_device,
                on_outcome=None if use_json else _on_outcome,
            )
        )
    except DiscoveryError as e:
        print_error(str(e), use_json)
        sys.exit(1)
    except (asyncio.CancelledError, KeyboardInterrupt):
        print_error("Interrupted", use_json)
        sys.exit(EXIT_INTERRUPTED)

    if use_json:
        print_json(run)
    else:
        _print_summary(run)
    sys.exit(exit_code(run))
