"""Bounded-window mDNS discovery of WLED controllers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from zeroconf import Error as ZeroconfError
from zeroconf import InterfaceChoice, IPVersion, ServiceStateChange
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from wled_backup.config import WLED_SERVICE_TYPE
from wled_backup.discovery.registry import DeviceRegistry
from wled_backup.errors import DiscoveryError
from wled_backup.models import DiscoveredDevice

if TYPE_CHECKING:
    from collections.abc import Callable

    from zeroconf import Zeroconf

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Passively browse for a DNS-SD service type for a fixed window.

    Each advertised instance is resolved to an address and port and
    recorded in a :class:`DeviceRegistry`.  When the window elapses the
    browser is cancelled, resolutions still in flight are abandoned, and
    whatever was collected is returned.

    :param service_type: DNS-SD service type to browse for.
    :param resolve_timeout: Seconds to wait for a single instance to resolve.
    :param interfaces: Interfaces the listener binds to.
    :param on_device: Called once for every newly discovered device.
    :param zeroconf_factory: Creates the zeroconf instance (for tests).
    :param browser_factory: Creates the service browser (for tests).
    """

    def __init__(
        self,
        service_type: str = WLED_SERVICE_TYPE,
        *,
        resolve_timeout: float = 3.0,
        interfaces: InterfaceChoice | list[str] = InterfaceChoice.All,
        on_device: Callable[[DiscoveredDevice], None] | None = None,
        zeroconf_factory: Callable[..., AsyncZeroconf] = AsyncZeroconf,
        browser_factory: Callable[..., AsyncServiceBrowser] = AsyncServiceBrowser,
    ) -> None:
        self._service_type = service_type
        self._resolve_timeout = resolve_timeout
        self._interfaces = interfaces
        self._on_device = on_device
        self._zeroconf_factory = zeroconf_factory
        self._browser_factory = browser_factory

    @property
    def service_type(self) -> str:
        """The DNS-SD service type being browsed."""
        return self._service_type

    async def discover(self, search_window: float) -> list[DiscoveredDevice]:
        """Collect devices advertising :attr:`service_type` for *search_window* seconds.

        :param search_window: Listening time in seconds.  The call returns
            shortly after it elapses regardless of outstanding traffic.
        :returns: Deduplicated devices in discovery order (possibly empty).
        :raises DiscoveryError: If the mDNS listener cannot be opened.
        :raises ValueError: If *search_window* is negative.
        """
        if search_window < 0:
            msg = f"search_window must be >= 0, got {search_window}"
            raise ValueError(msg)
        logger.info("discover service=%s window=%ss", self._service_type, search_window)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + search_window
        registry = DeviceRegistry()
        pending: set[asyncio.Task[None]] = set()

        try:
            aiozc = self._zeroconf_factory(interfaces=self._interfaces)
        except (OSError, ZeroconfError) as exc:
            msg = f"Cannot open mDNS listener: {exc}"
            raise DiscoveryError(msg) from exc

        def _on_service_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange,
        ) -> None:
            if state_change is ServiceStateChange.Removed:
                return
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            timeout = min(remaining, self._resolve_timeout)
            task = loop.create_task(self._collect(aiozc, service_type, name, registry, timeout))
            pending.add(task)
            task.add_done_callback(pending.discard)

        try:
            try:
                browser = self._browser_factory(
                    aiozc.zeroconf,
                    [self._service_type],
                    handlers=[_on_service_state_change],
                )
            except (OSError, ZeroconfError) as exc:
                msg = f"Cannot browse for {self._service_type}: {exc}"
                raise DiscoveryError(msg) from exc
            try:
                await asyncio.sleep(search_window)
            finally:
                await browser.async_cancel()
                await _cancel_all(pending)
        finally:
            await aiozc.async_close()

        devices = registry.devices()
        logger.info("discover found %d device(s)", len(devices))
        return devices

    async def _collect(
        self,
        aiozc: AsyncZeroconf,
        service_type: str,
        name: str,
        registry: DeviceRegistry,
        timeout: float,
    ) -> None:
        try:
            device = await self._resolve(aiozc, service_type, name, timeout)
        except (ZeroconfError, OSError) as exc:
            logger.debug("Could not resolve %s: %s", name, exc)
            return
        if device is None or not registry.add(device):
            return
        logger.info("Discovered %s at %s:%d", device.instance_name, device.address, device.port)
        if self._on_device is not None:
            try:
                self._on_device(device)
            except Exception:
                logger.exception("on_device callback failed for %s", device.instance_name)

    async def _resolve(
        self,
        aiozc: AsyncZeroconf,
        service_type: str,
        name: str,
        timeout: float,
    ) -> DiscoveredDevice | None:
        """Resolve one service instance, or return ``None`` if it is unusable."""
        info = AsyncServiceInfo(service_type, name)
        if not await info.async_request(aiozc.zeroconf, max(1, int(timeout * 1000))):
            logger.debug("No answer resolving %s", name)
            return None
        return device_from_info(info)


def device_from_info(info: Any) -> DiscoveredDevice | None:
    """Build a :class:`DiscoveredDevice` from a resolved ``ServiceInfo``.

    IPv4 addresses are preferred; any address family is accepted as a
    fallback.  Returns ``None`` when the record has no address or no port.
    """
    addresses = info.parsed_addresses(IPVersion.V4Only) or info.parsed_addresses()
    if not addresses or not info.port:
        logger.debug("Skipping %s: no usable address/port", info.name)
        return None
    return DiscoveredDevice(
        address=addresses[0],
        port=info.port,
        name=info.name,
        server=info.server,
    )


async def _cancel_all(tasks: set[asyncio.Task[None]]) -> None:
    """Cancel *tasks* and wait for them to unwind."""
    outstanding = list(tasks)
    for task in outstanding:
        task.cancel()
    if outstanding:
        await asyncio.gather(*outstanding, return_exceptions=True)
