"""Atomic persistence of backup files."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from wled_backup.errors import WriteError

if TYPE_CHECKING:
    from wled_backup.backup.client import DeviceSnapshot
    from wled_backup.models import DiscoveredDevice

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"
_TEMP_SUFFIX = ".tmp"
_LABEL_UNSAFE = re.compile(r"[^A-Za-z0-9.-]+")
_ADDRESS_UNSAFE = re.compile(r"[^A-Za-z0-9.]")


def _label(text: str) -> str:
    return _LABEL_UNSAFE.sub("-", text.strip()).strip("-.") or "wled"


def backup_filename(
    device: DiscoveredDevice,
    run_timestamp: datetime,
    document: str = "cfg",
    hostname: str | None = None,
) -> str:
    """Name of the file holding *document* of *device* for the run at *run_timestamp*.

    Layout: ``<label>_<address>_<port>_<timestamp>_<document>.json``.
    The label (configured host name, else advertised instance name) never
    contains ``_``, so the ``(address, port)`` part is unambiguous and two
    devices of one run cannot collide.  Runs differ by the UTC timestamp,
    which has microsecond resolution.  Naive timestamps are taken as UTC.
    """
    if run_timestamp.tzinfo is None:
        run_timestamp = run_timestamp.replace(tzinfo=UTC)
    stamp = run_timestamp.astimezone(UTC).strftime(TIMESTAMP_FORMAT)
    label = _label(hostname or device.instance_name)
    address = _ADDRESS_UNSAFE.sub("-", device.address)
    return f"{label}_{address}_{device.port}_{stamp}_{_label(document)}.json"


class BackupWriter:
    """Writes payloads so that a final file name only ever refers to complete data.

    The payload goes to a hidden temporary file in the destination
    directory, is flushed (and ``fsync``-ed), then hard-linked to the final
    name with :func:`os.link`, which refuses an existing target.  The
    temporary name is removed whether or not the link succeeded, so
    existing backups are never overwritten and no temporary file survives.

    :param fsync: Flush file and directory to stable storage.
    """

    def __init__(self, *, fsync: bool = True) -> None:
        self._fsync = fsync

    def write(
        self,
        out_dir: Path,
        device: DiscoveredDevice,
        run_timestamp: datetime,
        payload: bytes,
        *,
        document: str = "cfg",
        hostname: str | None = None,
    ) -> Path:
        """Atomically persist *payload* and return the final path.

        *out_dir* (and its parents) are created if needed.

        :raises WriteError: If the directory cannot be created, the target
            already exists, or writing/linking fails.
        """
        out_dir = Path(out_dir)
        final = out_dir / backup_filename(device, run_timestamp, document, hostname)
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create output directory {out_dir}: {exc}"
            raise WriteError(msg, out_dir) from exc
        if final.exists():
            msg = f"Refusing to overwrite existing backup {final}"
            raise WriteError(msg, final)

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{final.name}.", suffix=_TEMP_SUFFIX, dir=out_dir
            )
        except OSError as exc:
            msg = f"Cannot create temporary file in {out_dir}: {exc}"
            raise WriteError(msg, out_dir) from exc

        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
                fh.flush()
                if self._fsync:
                    os.fsync(fh.fileno())
            # Fails with FileExistsError if final exists, even if created after the check
            os.link(tmp, final)
        except FileExistsError as exc:
            msg = f"Refusing to overwrite existing backup {final}"
            raise WriteError(msg, final) from exc
        except OSError as exc:
            msg = f"Cannot write {final}: {exc}"
            raise WriteError(msg, final) from exc
        finally:
            with contextlib.suppress(OSError):
                tmp.unlink()

        if self._fsync:
            _fsync_dir(out_dir)
        logger.debug("wrote %s (%d bytes)", final, len(payload))
        return final

    def write_snapshot(
        self,
        out_dir: Path,
        device: DiscoveredDevice,
        run_timestamp: datetime,
        snapshot: DeviceSnapshot,
    ) -> tuple[Path, ...]:
        """Write every document of *snapshot*; all or nothing per device.

        If one document fails, the files already written for this device
        in this run are removed before the :class:`WriteError` propagates.
        """
        written: list[Path] = []
        try:
            for document, payload in snapshot.documents:
                written.append(
                    self.write(
                        out_dir,
                        device,
                        run_timestamp,
                        payload,
                        document=document,
                        hostname=snapshot.hostname,
                    )
                )
        except WriteError:
            for path in written:
                with contextlib.suppress(OSError):
                    path.unlink()
            raise
        return tuple(written)

    def remove_stale_temp_files(self, out_dir: Path) -> int:
        """Delete temporary files left behind by an interrupted process.

        Only hidden ``*.json.*.tmp`` files created by this writer are
        touched.  Returns the number of files removed.
        """
        out_dir = Path(out_dir)
        if not out_dir.is_dir():
            return 0
        removed = 0
        for path in out_dir.glob(f".*.json.*{_TEMP_SUFFIX}"):
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not remove stale temporary file %s: %s", path, exc)
                continue
            removed += 1
        if removed:
            logger.info("Removed %d stale temporary file(s) from %s", removed, out_dir)
        return removed


def _fsync_dir(directory: Path) -> None:
    """Persist a new directory entry on filesystems that need the directory synced."""
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        with contextlib.suppress(OSError):
            os.fsync(fd)
    finally:
        os.close(fd)
