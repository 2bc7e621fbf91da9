"""wled-backup: discover WLED controllers over mDNS and back up their configuration.

Typical usage::

    from pathlib import Path

    from wled_backup import BackupConfig, run_backup

    run = await run_backup(BackupConfig(out_dir=Path("/backup"), search_secs=5))
    print(run.succeeded, run.failed)
"""

__version__ = "0.3.0"

from wled_backup.backup.client import DeviceClient, DeviceSnapshot
from wled_backup.backup.orchestrator import BackupOrchestrator
from wled_backup.backup.writer import BackupWriter
from wled_backup.config import BackupConfig
from wled_backup.controller import exit_code, run_backup
from wled_backup.discovery.engine import DiscoveryEngine
from wled_backup.discovery.registry import DeviceRegistry
from wled_backup.errors import (
    BackupBaseError,
    DiscoveryError,
    FetchError,
    ReadOnlyViolation,
    WriteError,
)
from wled_backup.models import BackupOutcome, BackupRun, BackupStatus, DiscoveredDevice
from wled_backup.serialization import decode_document, encode_summary

__all__ = [
    "BackupBaseError",
    "BackupConfig",
    "BackupOrchestrator",
    "BackupOutcome",
    "BackupRun",
    "BackupStatus",
    "BackupWriter",
    "DeviceClient",
    "DeviceRegistry",
    "DeviceSnapshot",
    "DiscoveredDevice",
    "DiscoveryEngine",
    "DiscoveryError",
    "FetchError",
    "ReadOnlyViolation",
    "WriteError",
    "__version__",
    "decode_document",
    "encode_summary",
    "exit_code",
    "run_backup",
]
