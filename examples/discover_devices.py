"""Discover WLED controllers on the local network.

Browses for ``_wled._tcp.local.`` advertisements for a fixed window and
prints every device that resolved to an address and port.

Usage::

    python examples/discover_devices.py
"""

import asyncio
import logging

from wled_backup import DiscoveryEngine

# Use DEBUG for per-instance resolution detail
logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")


async def main() -> None:
    """Discover and list all WLED devices."""
    engine = DiscoveryEngine()
    devices = await engine.discover(5.0)

    print(f"Found {len(devices)} device(s):\n")
    for dev in devices:
        print(f"  Name:    {dev.instance_name}")
        print(f"  Address: {dev.address}:{dev.port}")
        print(f"  Host:    {dev.server}")
        print()


if __name__ == "__main__":
    asyncio.run(main())
