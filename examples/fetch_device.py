"""Fetch the configuration of a single, known WLED controller.

Skips discovery and reads ``cfg.json`` and ``presets.json`` from a fixed
address, then saves them with the same atomic writer a full run uses.

Usage::

    python examples/fetch_device.py
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from wled_backup import BackupWriter, DeviceClient, DiscoveredDevice, FetchError


async def main() -> None:
    """Back up one device by address."""
    device = DiscoveredDevice(address="192.168.1.50", port=80, name="desk._wled._tcp.local.")

    async with DeviceClient(timeout=5.0) as client:
        try:
            snapshot = await client.fetch(device)
        except FetchError as e:
            print(f"Fetch failed: {e}")
            return

    print(f"Device reports its name as {snapshot.hostname!r}")
    paths = BackupWriter().write_snapshot(
        Path("wled-backups"), device, datetime.now(UTC), snapshot
    )
    for path in paths:
        print(f"  wrote {path}")


if __name__ == "__main__":
    asyncio.run(main())
