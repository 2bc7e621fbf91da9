"""mDNS discovery of WLED controllers.

Public API:

- :class:`DiscoveryEngine` -- bounded-window DNS-SD browser.
- :class:`DeviceRegistry` -- deduplicating accumulator for one run.
"""

from wled_backup.discovery.engine import DiscoveryEngine
from wled_backup.discovery.registry import DeviceRegistry

__all__ = ["DeviceRegistry", "DiscoveryEngine"]
