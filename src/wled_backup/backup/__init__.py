"""Retrieval and persistence of device configuration snapshots.

Public API:

- :class:`DeviceClient` -- read-only HTTP client for WLED JSON documents.
- :class:`BackupOrchestrator` -- bounded-concurrency per-device fan-out.
- :class:`BackupWriter` -- atomic, collision-free backup files.
"""

from wled_backup.backup.client import DeviceClient, DeviceSnapshot
from wled_backup.backup.orchestrator import BackupOrchestrator
from wled_backup.backup.writer import BackupWriter, backup_filename

__all__ = [
    "BackupOrchestrator",
    "BackupWriter",
    "DeviceClient",
    "DeviceSnapshot",
    "backup_filename",
]
