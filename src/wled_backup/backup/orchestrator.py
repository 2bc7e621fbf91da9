"""Bounded-concurrency fan-out of per-device backups."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from wled_backup.backup.writer import BackupWriter
from wled_backup.discovery.registry import DeviceRegistry
from wled_backup.errors import FetchError, WriteError
from wled_backup.models import BackupOutcome, BackupRun, BackupStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from wled_backup.backup.client import DeviceClient
    from wled_backup.models import DiscoveredDevice

logger = logging.getLogger(__name__)


class BackupOrchestrator:
    """Backs up many devices concurrently, isolating failures per device.

    Every device gets its own task; a semaphore keeps at most
    ``max_parallel`` of them past the gate at once, the rest wait their
    turn.  Each task always produces exactly one :class:`BackupOutcome`:
    fetch and write errors are folded into a ``failed`` outcome instead of
    propagating, so one bad device never affects its siblings.

    :param client: Client used to retrieve configuration documents.
    :param writer: Writer used to persist them.
    :param on_outcome: Called with each outcome as soon as it is known.
    """

    def __init__(
        self,
        client: DeviceClient,
        writer: BackupWriter | None = None,
        *,
        on_outcome: Callable[[BackupOutcome], None] | None = None,
    ) -> None:
        self._client = client
        self._writer = writer if writer is not None else BackupWriter()
        self._on_outcome = on_outcome
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of device backups currently running."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest :attr:`in_flight` value observed so far."""
        return self._peak_in_flight

    async def run(
        self,
        devices: Iterable[DiscoveredDevice],
        out_dir: Path,
        *,
        max_parallel: int = 4,
        device_timeout: float = 10.0,
        search_window: float = 0.0,
        started_at: datetime | None = None,
    ) -> BackupRun:
        """Back up *devices* into *out_dir*.

        :param devices: Devices to back up.  Duplicates by
            ``(address, port)`` are collapsed.
        :param out_dir: Destination directory, created on first write.
        :param max_parallel: Upper bound on concurrent device backups.
        :param device_timeout: Seconds allowed for retrieving one device.
        :param search_window: Discovery window, recorded on the run.
        :param started_at: Run timestamp used in file names (default: now).
        :returns: The finished :class:`BackupRun`, outcomes in device order.
        """
        if max_parallel < 1:
            msg = f"max_parallel must be >= 1, got {max_parallel}"
            raise ValueError(msg)
        if started_at is None:
            started_at = datetime.now(UTC)
        out_dir = Path(out_dir)

        registry = DeviceRegistry()
        for device in devices:
            registry.add(device)
        unique = registry.devices()
        logger.info(
            "backup run devices=%d max_parallel=%d timeout=%ss",
            len(unique),
            max_parallel,
            device_timeout,
        )

        semaphore = asyncio.Semaphore(max_parallel)
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(
                    self._backup_device(device, out_dir, started_at, semaphore, device_timeout)
                )
                for device in unique
            ]
        return BackupRun(
            started_at=started_at,
            search_window=search_window,
            out_dir=out_dir,
            outcomes=tuple(task.result() for task in tasks),
            finished_at=datetime.now(UTC),
        )

    async def _backup_device(
        self,
        device: DiscoveredDevice,
        out_dir: Path,
        started_at: datetime,
        semaphore: asyncio.Semaphore,
        device_timeout: float,
    ) -> BackupOutcome:
        async with semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                outcome = await self._attempt(device, out_dir, started_at, device_timeout)
            finally:
                self._in_flight -= 1

        if outcome.succeeded:
            logger.info(
                "Backed up %s (%s) to %d file(s)",
                outcome.hostname,
                device.base_url,
                len(outcome.paths),
            )
        else:
            logger.warning("Backup of %s failed: %s", device.base_url, outcome.error)
        if self._on_outcome is not None:
            try:
                self._on_outcome(outcome)
            except Exception:
                logger.exception("on_outcome callback failed for %s", device.base_url)
        return outcome

    async def _attempt(
        self,
        device: DiscoveredDevice,
        out_dir: Path,
        started_at: datetime,
        device_timeout: float,
    ) -> BackupOutcome:
        start = time.monotonic()
        try:
            try:
                async with asyncio.timeout(device_timeout):
                    snapshot = await self._client.fetch(device)
            except TimeoutError as exc:
                msg = f"Timed out after {device_timeout:g}s"
                raise FetchError(msg) from exc
        except FetchError as exc:
            return BackupOutcome(
                device=device,
                status=BackupStatus.FAILED,
                duration=time.monotonic() - start,
                error=str(exc),
                error_kind="fetch",
            )

        try:
            paths = self._writer.write_snapshot(out_dir, device, started_at, snapshot)
        except WriteError as exc:
            return BackupOutcome(
                device=device,
                status=BackupStatus.FAILED,
                duration=time.monotonic() - start,
                hostname=snapshot.hostname,
                error=str(exc),
                error_kind="write",
            )

        return BackupOutcome(
            device=device,
            status=BackupStatus.SUCCEEDED,
            duration=time.monotonic() - start,
            paths=paths,
            hostname=snapshot.hostname,
        )
