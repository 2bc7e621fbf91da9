"""In-memory set of devices discovered during one run."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from wled_backup.models import DiscoveredDevice


class DeviceRegistry:
    """Accumulates discovered devices, keyed by ``(address, port)``.

    mDNS responders repeat their announcements, and a single device may be
    reported as both added and updated; only the first sighting of each key
    is kept.  Insertion order is preserved.
    """

    def __init__(self) -> None:
        self._devices: dict[tuple[str, int], DiscoveredDevice] = {}
        self._lock = threading.Lock()

    def add(self, device: DiscoveredDevice) -> bool:
        """Add *device*; return ``False`` if its key was already present."""
        with self._lock:
            if device.key in self._devices:
                return False
            self._devices[device.key] = device
            return True

    def get(self, address: str, port: int) -> DiscoveredDevice | None:
        """Look up a device by its uniqueness key."""
        with self._lock:
            return self._devices.get((address, port))

    def devices(self) -> list[DiscoveredDevice]:
        """Snapshot of the registered devices in discovery order."""
        with self._lock:
            return list(self._devices.values())

    def __contains__(self, device: object) -> bool:
        key = getattr(device, "key", None)
        with self._lock:
            return key in self._devices

    def __iter__(self) -> Iterator[DiscoveredDevice]:
        return iter(self.devices())

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)
