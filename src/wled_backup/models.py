"""Data model of a backup run: devices, per-device outcomes, and the run itself."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True, slots=True)
class DiscoveredDevice:
    """A WLED controller found on the local network via mDNS.

    Two devices are the same device when they share ``(address, port)``;
    see :attr:`key`.  Instances live for a single run and are never
    persisted.

    Returned by :meth:`DiscoveryEngine.discover`::

        devices = await engine.discover(5.0)
        for dev in devices:
            print(dev.name, dev.base_url)
    """

    address: str
    """IP address the service resolved to."""

    port: int
    """Advertised HTTP port."""

    name: str
    """Advertised service instance name (``"kitchen._wled._tcp.local."``)."""

    discovered_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When the advertisement was resolved."""

    server: str | None = None
    """Advertised mDNS host name, or ``None``."""

    @property
    def key(self) -> tuple[str, int]:
        """Uniqueness key ``(address, port)``."""
        return (self.address, self.port)

    @property
    def instance_name(self) -> str:
        """Service instance label without the service type suffix."""
        return self.name.split(".", 1)[0]

    @property
    def base_url(self) -> str:
        """HTTP root of the device, with IPv6 addresses bracketed."""
        host = self.address
        try:
            if ipaddress.ip_address(host).version == 6:
                host = f"[{host}]"
        except ValueError:
            pass
        return f"http://{host}:{self.port}"

    def __repr__(self) -> str:
        endpoint = f"{self.address}:{self.port}"
        return f"DiscoveredDevice(name='{self.instance_name}', address='{endpoint}')"


class BackupStatus(enum.Enum):
    """Final status of one device's backup."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BackupOutcome:
    """Result of backing up one device.

    Created exactly once per discovered device by the orchestrator.
    """

    device: DiscoveredDevice
    status: BackupStatus
    duration: float
    """Seconds spent on this device, fetch and write included."""

    paths: tuple[Path, ...] = ()
    """Files written, one per configuration document (empty on failure)."""

    hostname: str | None = None
    """Configured device name read from ``cfg.json``, when it was fetched."""

    error: str | None = None
    """Failure detail (``None`` on success)."""

    error_kind: str | None = None
    """``"fetch"`` or ``"write"`` on failure."""

    @property
    def succeeded(self) -> bool:
        return self.status is BackupStatus.SUCCEEDED

    @property
    def path(self) -> Path | None:
        """Primary configuration file, or ``None`` on failure."""
        return self.paths[0] if self.paths else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "name": self.device.instance_name,
            "address": self.device.address,
            "port": self.device.port,
            "hostname": self.hostname,
            "status": self.status.value,
            "duration": round(self.duration, 3),
            "paths": [str(p) for p in self.paths],
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass(frozen=True, slots=True)
class BackupRun:
    """One complete discovery + retrieval + persistence pass."""

    started_at: datetime
    search_window: float
    out_dir: Path
    outcomes: tuple[BackupOutcome, ...] = ()
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> int:
        """Number of devices backed up successfully."""
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        """Number of devices whose backup failed."""
        return len(self.outcomes) - self.succeeded

    @property
    def ok(self) -> bool:
        """``True`` when no device failed (an empty run is ok)."""
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "search_window": self.search_window,
            "out_dir": str(self.out_dir),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
