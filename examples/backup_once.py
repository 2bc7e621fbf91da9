"""Back up every WLED controller on the network once.

Runs discovery, fetches ``cfg.json`` and ``presets.json`` from each
device (at most four at a time), and writes them to ``./wled-backups``.

Usage::

    python examples/backup_once.py
"""

import asyncio
import logging
from pathlib import Path

from wled_backup import BackupConfig, exit_code, run_backup

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")


async def main() -> None:
    """Run one backup pass and report the result of every device."""
    config = BackupConfig(out_dir=Path("wled-backups"), search_secs=5, device_timeout=8.0)
    run = await run_backup(config)

    for outcome in run.outcomes:
        dev = outcome.device
        if outcome.succeeded:
            files = ", ".join(p.name for p in outcome.paths)
            print(f"{outcome.hostname} ({dev.address}): {files}")
        else:
            print(f"{dev.address}:{dev.port} failed: {outcome.error}")

    print(f"\n{run.succeeded} succeeded, {run.failed} failed (exit code {exit_code(run)})")


if __name__ == "__main__":
    asyncio.run(main())
