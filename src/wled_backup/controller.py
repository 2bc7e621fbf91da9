"""One discovery + backup pass, and the exit status it maps to."""

from __future__ import annotations

import contextlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from wled_backup.backup.client import DeviceClient
from wled_backup.backup.orchestrator import BackupOrchestrator
from wled_backup.backup.writer import BackupWriter
from wled_backup.discovery.engine import DiscoveryEngine
from wled_backup.models import BackupRun

if TYPE_CHECKING:
    from collections.abc import Callable

    from wled_backup.config import BackupConfig
    from wled_backup.models import BackupOutcome, DiscoveredDevice

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1


async def run_backup(
    config: BackupConfig,
    *,
    engine: DiscoveryEngine | None = None,
    client: DeviceClient | None = None,
    writer: BackupWriter | None = None,
    on_device: Callable[[DiscoveredDevice], None] | None = None,
    on_outcome: Callable[[BackupOutcome], None] | None = None,
) -> BackupRun:
    """Discover devices, back each one up, and return the finished run.

    Collaborators default to the real implementations built from
    *config*; a *client* passed in is left open for the caller to close.

    :raises DiscoveryError: If the mDNS listener cannot be opened.  No
        file is written in that case and *config.out_dir* is not touched.
    """
    started_at = datetime.now(UTC)
    if engine is None:
        engine = DiscoveryEngine(config.service_type, on_device=on_device)
    devices = await engine.discover(config.search_secs)

    if not devices:
        logger.info("No devices discovered")
        return BackupRun(
            started_at=started_at,
            search_window=config.search_secs,
            out_dir=config.out_dir,
            finished_at=datetime.now(UTC),
        )

    if writer is None:
        writer = BackupWriter()
    writer.remove_stale_temp_files(config.out_dir)

    async with contextlib.AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(
                DeviceClient(timeout=config.device_timeout, documents=config.documents)
            )
        orchestrator = BackupOrchestrator(client, writer, on_outcome=on_outcome)
        run = await orchestrator.run(
            devices,
            config.out_dir,
            max_parallel=config.max_parallel,
            device_timeout=config.device_timeout,
            search_window=config.search_secs,
            started_at=started_at,
        )

    logger.info("run finished succeeded=%d failed=%d", run.succeeded, run.failed)
    return run


def exit_code(run: BackupRun) -> int:
    """``0`` if every discovered device was backed up (or none was found), else ``1``."""
    return EXIT_OK if run.ok else EXIT_FAILED
