"""Read-only HTTP client for the WLED JSON configuration endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from wled_backup import __version__
from wled_backup.config import DEFAULT_DOCUMENTS
from wled_backup.errors import FetchError, ReadOnlyViolation
from wled_backup.serialization import decode_document

if TYPE_CHECKING:
    from wled_backup.models import DiscoveredDevice

logger = logging.getLogger(__name__)

_SAFE_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True, slots=True)
class DeviceSnapshot:
    """Configuration documents retrieved from one device."""

    hostname: str
    """Configured device name (``id.name`` in ``cfg.json``)."""

    documents: tuple[tuple[str, bytes], ...]
    """``(document, payload)`` pairs in fetch order; ``cfg`` is first."""


def hostname_from_cfg(cfg: dict[str, Any]) -> str:
    """Extract the configured device name from a decoded ``cfg.json``.

    :raises FetchError: If ``id.name`` is missing, not a string, or blank.
    """
    ident = cfg.get("id")
    if ident is None:
        msg = "Missing 'id' field in cfg.json"
        raise FetchError(msg)
    if not isinstance(ident, dict) or "name" not in ident:
        msg = "Missing 'name' field in cfg.json"
        raise FetchError(msg)
    hostname = ident["name"]
    if not isinstance(hostname, str):
        msg = "Expected 'name' to be a string in cfg.json"
        raise FetchError(msg)
    if not hostname.strip():
        msg = "Hostname is empty or contains only whitespace"
        raise FetchError(msg)
    return hostname


async def _assert_read_only(request: httpx.Request) -> None:
    if request.method not in _SAFE_METHODS:
        raise ReadOnlyViolation(request.method, str(request.url))


class DeviceClient:
    """Fetches configuration documents from WLED devices.

    One client (and one connection pool) is shared by every device in a
    run; use it as an async context manager so connections are released
    even when requests are abandoned::

        async with DeviceClient(timeout=5.0) as client:
            snapshot = await client.fetch(device)

    :param timeout: Per-request timeout in seconds.
    :param documents: Document names to fetch (``cfg`` first).
    :param transport: Custom httpx transport (for tests).
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        documents: tuple[str, ...] = DEFAULT_DOCUMENTS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._documents = documents
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": f"wled-backup/{__version__}", "Accept": "application/json"},
            transport=transport,
            event_hooks={"request": [_assert_read_only]},
        )

    @property
    def documents(self) -> tuple[str, ...]:
        """Document names fetched by :meth:`fetch`."""
        return self._documents

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> DeviceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch(self, device: DiscoveredDevice) -> DeviceSnapshot:
        """Retrieve every configured document from *device*.

        ``cfg.json`` is fetched first and validated; the remaining
        documents are stored verbatim.

        :raises FetchError: On timeout, transport failure, non-2xx status,
            or an invalid ``cfg.json``.
        """
        logger.debug("fetch %s", device.base_url)
        cfg_raw = await self.get_document(device, "cfg")
        try:
            cfg = decode_document(cfg_raw)
        except (ValueError, TypeError) as exc:
            msg = f"Malformed cfg.json from {device.base_url}: {exc}"
            raise FetchError(msg) from exc
        hostname = hostname_from_cfg(cfg)

        documents = [("cfg", cfg_raw)]
        for name in self._documents[1:]:
            documents.append((name, await self.get_document(device, name)))
        return DeviceSnapshot(hostname=hostname, documents=tuple(documents))

    async def get_document(self, device: DiscoveredDevice, document: str) -> bytes:
        """GET ``/<document>.json`` from *device* and return the raw body."""
        url = f"{device.base_url}/{document}.json"
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            msg = f"Timed out fetching {url}"
            raise FetchError(msg) from exc
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} from {url}"
            raise FetchError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Request to {url} failed: {exc}"
            raise FetchError(msg) from exc
        return response.content
