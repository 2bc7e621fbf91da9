"""Error types raised during a backup run."""

from __future__ import annotations


class BackupBaseError(Exception):
    """Base exception for all wled-backup errors."""


class DiscoveryError(BackupBaseError):
    """The mDNS listener could not be opened or used.

    Fatal to the run: without a listener no device can be found.
    """


class FetchError(BackupBaseError):
    """Retrieving a device's configuration failed.

    Covers timeouts, connection failures, non-2xx responses, and
    malformed configuration documents.  Contained to the owning device.
    """


class ReadOnlyViolation(FetchError):
    """A request other than ``GET`` was about to be sent to a device."""

    def __init__(self, method: str, url: str) -> None:
        self.method = method
        self.url = url
        super().__init__(f"Refusing {method} {url}: devices are only ever read")


class WriteError(BackupBaseError):
    """Persisting a backup file failed (disk full, permission denied, ...)."""

    def __init__(self, message: str, path: object | None = None) -> None:
        self.path = path
        super().__init__(message)
