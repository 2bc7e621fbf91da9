"""Run configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

WLED_SERVICE_TYPE = "_wled._tcp.local."
"""DNS-SD service type advertised by WLED controllers."""

DEFAULT_DOCUMENTS: tuple[str, ...] = ("cfg", "presets")
"""JSON documents fetched from every device, in order.  ``cfg`` is mandatory."""


@dataclass
class BackupConfig:
    """Configuration for a single backup run."""

    out_dir: Path
    search_secs: float = 10.0
    max_parallel: int = 4
    device_timeout: float = 10.0  # seconds, per device
    service_type: str = WLED_SERVICE_TYPE
    documents: tuple[str, ...] = DEFAULT_DOCUMENTS

    def __post_init__(self) -> None:
        self.out_dir = Path(self.out_dir)
        if self.search_secs < 0:
            msg = f"search_secs must be >= 0, got {self.search_secs}"
            raise ValueError(msg)
        if self.max_parallel < 1:
            msg = f"max_parallel must be >= 1, got {self.max_parallel}"
            raise ValueError(msg)
        if self.device_timeout <= 0:
            msg = f"device_timeout must be > 0, got {self.device_timeout}"
            raise ValueError(msg)
        if not self.service_type.endswith(".local."):
            msg = f"service_type must be a .local. DNS-SD type, got {self.service_type!r}"
            raise ValueError(msg)
        if not self.documents or self.documents[0] != "cfg":
            msg = "documents must start with 'cfg'"
            raise ValueError(msg)
