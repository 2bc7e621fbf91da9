"""Shared test utilities for wled-backup tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from unittest.mock import MagicMock

from wled_backup.backup.client import DeviceSnapshot
from wled_backup.models import DiscoveredDevice

RUN_TS = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


def make_device(
    name: str = "kitchen",
    address: str = "192.168.1.20",
    port: int = 80,
) -> DiscoveredDevice:
    return DiscoveredDevice(
        address=address,
        port=port,
        name=f"{name}._wled._tcp.local.",
        discovered_at=RUN_TS,
        server=f"{name}.local.",
    )


def make_snapshot(hostname: str = "Kitchen", cfg: bytes | None = None) -> DeviceSnapshot:
    if cfg is None:
        cfg = b'{"id":{"name":"%s"}}' % hostname.encode()
    return DeviceSnapshot(
        hostname=hostname,
        documents=(("cfg", cfg), ("presets", b'{"0":{}}')),
    )


class FakeDeviceClient:
    """Stand-in for :class:`DeviceClient` driven by per-device behaviours.

    A behaviour is a :class:`DeviceSnapshot`, an exception instance to
    raise, or an async callable returning a snapshot.  Devices without a
    behaviour get a default snapshot named after their instance.
    """

    def __init__(
        self,
        behaviours: dict[tuple[str, int], object] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.behaviours = behaviours or {}
        self.delay = delay
        self.calls: list[DiscoveredDevice] = []
        self.active = 0
        self.peak_active = 0
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeDeviceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch(self, device: DiscoveredDevice) -> DeviceSnapshot:
        self.calls.append(device)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            behaviour = self.behaviours.get(device.key)
            if behaviour is None:
                return make_snapshot(device.instance_name)
            if isinstance(behaviour, BaseException):
                raise behaviour
            if isinstance(behaviour, DeviceSnapshot):
                return behaviour
            return await behaviour()
        finally:
            self.active -= 1


def hang(seconds: float = 60.0) -> Callable[[], Awaitable[DeviceSnapshot]]:
    """Behaviour for a device that never answers in time."""

    async def _hang() -> DeviceSnapshot:
        await asyncio.sleep(seconds)
        return make_snapshot()

    return _hang


class FakeAsyncZeroconf:
    """Minimal stand-in for ``zeroconf.asyncio.AsyncZeroconf``."""

    def __init__(self, **kwargs: object) -> None:
        self.kwargs = kwargs
        self.zeroconf = MagicMock(name="Zeroconf")
        self.closed = False

    async def async_close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Browser factory that replays scripted ``(delay, name, state)`` events.

    Pass the instance as ``browser_factory``; each event is delivered to
    the registered handlers after *delay* seconds unless the browser has
    been cancelled by then.
    """

    def __init__(self, events: list[tuple[float, str, object]] | None = None) -> None:
        self.events = events or []
        self.handlers: list[Callable[..., None]] = []
        self.service_types: list[str] = []
        self.cancelled = False

    def __call__(
        self,
        zeroconf: object,
        service_types: list[str],
        *,
        handlers: list[Callable[..., None]],
    ) -> FakeBrowser:
        self.handlers = handlers
        self.service_types = service_types
        loop = asyncio.get_running_loop()
        for delay, name, state in self.events:
            loop.call_later(delay, self._fire, zeroconf, service_types[0], name, state)
        return self

    def _fire(self, zeroconf: object, service_type: str, name: str, state: object) -> None:
        if self.cancelled:
            return
        for handler in self.handlers:
            handler(
                zeroconf=zeroconf,
                service_type=service_type,
                name=name,
                state_change=state,
            )

    async def async_cancel(self) -> None:
        self.cancelled = True
