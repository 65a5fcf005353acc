"""
Discovery substrate backed by python-zeroconf.

Browser callbacks only translate zeroconf state changes into discovery events
and hand them to the sink; resolution runs as tasks on the event loop.
"""
import asyncio
from typing import Any, Dict, Mapping, Optional, Set

import structlog  # type: ignore[import-not-found]
from zeroconf import ServiceStateChange, Zeroconf  # type: ignore[import-not-found]
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf  # type: ignore[import-not-found]

from ..exceptions import CoordinatorStateError, DiscoveryError
from ..models.device import DeviceIdentity
from ..models.events import (
    CategoryFound,
    CategoryRemoved,
    InstanceFound,
    InstanceRemoved,
    InstanceResolved,
    MetadataUpdated,
    ResolveFailed,
)
from .substrate import EventSink, full_service_name, split_service_name, split_service_type

logger = structlog.get_logger(__name__)

METADATA_REFRESH_TIMEOUT_MS = 3000


def decode_properties(properties: Mapping[Any, Any]) -> Dict[str, str]:
    """TXT properties as str -> str. Keys without a value map to ''."""
    decoded: Dict[str, str] = {}
    for key, value in properties.items():
        if isinstance(key, bytes):
            key = key.decode("utf-8", "replace")
        if value is None:
            value = ""
        elif isinstance(value, bytes):
            value = value.decode("utf-8", "replace")
        decoded[str(key)] = str(value)
    return decoded


class _BrowserHandle:
    def __init__(self, substrate: "ZeroconfSubstrate", browser: AsyncServiceBrowser, service_type: str):
        self._substrate = substrate
        self._browser = browser
        self.service_type = service_type
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._substrate._browsers.discard(self)
        self._substrate._track_cancel(self._browser.async_cancel())


class _TaskHandle:
    def __init__(self, task: asyncio.Task):
        self._task = task

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class ZeroconfSubstrate:
    """
    Browses and resolves DNS-SD services with `zeroconf.asyncio`.

    Browsing `meta_service_type` reports service types (CategoryFound /
    CategoryRemoved); browsing any other type reports instances.
    """

    def __init__(self, meta_service_type: str = "_services._dns-sd._udp.", aiozc: Optional[AsyncZeroconf] = None):
        self.meta_service_type = meta_service_type
        self._aiozc = aiozc
        self._owns_zeroconf = aiozc is None
        self._sink: Optional[EventSink] = None
        self._tasks: Set[asyncio.Task] = set()
        self._cancellations: Set[asyncio.Task] = set()
        self._browsers: Set[_BrowserHandle] = set()
        self.logger = logger.bind(service="ZeroconfSubstrate")

    async def open(self, sink: EventSink) -> None:
        self._sink = sink
        if self._aiozc is None:
            self._aiozc = AsyncZeroconf()
            self._owns_zeroconf = True
        self.logger.info("Zeroconf substrate opened.")

    def browse(self, service_type: str, domain: str) -> _BrowserHandle:
        aiozc = self._require_open()
        type_with_domain = service_type + domain
        is_meta = service_type == self.meta_service_type
        log = self.logger.bind(service_type=type_with_domain, meta=is_meta)

        def on_service_state_change(
            zeroconf: Zeroconf, service_type: str, name: str, state_change: ServiceStateChange
        ) -> None:
            log.debug("mDNS service state change detected.", name=name, state=str(state_change))
            if is_meta:
                self._on_category_change(name, domain, state_change)
            else:
                self._on_instance_change(service_type, name, state_change)

        try:
            browser = AsyncServiceBrowser(aiozc.zeroconf, type_with_domain, handlers=[on_service_state_change])
        except Exception as e:
            raise DiscoveryError(f"Could not browse {type_with_domain}: {e}", service_type=service_type) from e

        handle = _BrowserHandle(self, browser, service_type)
        self._browsers.add(handle)
        log.debug("Browser started.")
        return handle

    def resolve(self, identity: DeviceIdentity, timeout: float) -> _TaskHandle:
        self._require_open()
        task = self._track(self._resolve(identity, timeout))
        return _TaskHandle(task)

    async def close(self) -> None:
        for handle in list(self._browsers):
            handle.cancel()
        self._browsers.clear()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, *self._cancellations, return_exceptions=True)
        self._tasks.clear()
        self._cancellations.clear()
        if self._aiozc is not None and self._owns_zeroconf:
            await self._aiozc.async_close()
            self._aiozc = None
        self.logger.info("Zeroconf substrate closed.")

    def _on_category_change(self, name: str, domain: str, state_change: ServiceStateChange) -> None:
        category, _ = split_service_type(name)
        if state_change == ServiceStateChange.Added:
            self._emit(CategoryFound(service_type=category, domain=domain))
        elif state_change == ServiceStateChange.Removed:
            self._emit(CategoryRemoved(service_type=category, domain=domain))

    def _on_instance_change(self, type_with_domain: str, name: str, state_change: ServiceStateChange) -> None:
        identity = split_service_name(name, type_with_domain)
        if state_change == ServiceStateChange.Added:
            self._emit(InstanceFound(identity=identity))
        elif state_change == ServiceStateChange.Removed:
            self._emit(InstanceRemoved(identity=identity))
        elif state_change == ServiceStateChange.Updated:
            self._track(self._refresh_metadata(identity))

    async def _request_info(self, identity: DeviceIdentity, timeout_ms: int) -> Optional[AsyncServiceInfo]:
        aiozc = self._require_open()
        info = AsyncServiceInfo(identity.service_type + identity.domain, full_service_name(identity))
        if await info.async_request(aiozc.zeroconf, timeout_ms):
            return info
        return None

    async def _resolve(self, identity: DeviceIdentity, timeout: float) -> None:
        log = self.logger.bind(identity=identity.key)
        try:
            info = await self._request_info(identity, int(timeout * 1000))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("Error resolving mDNS service info", error=str(e))
            self._emit(ResolveFailed(identity=identity, reason=str(e)))
            return

        if info is None:
            log.debug("mDNS service info request timed out.")
            self._emit(ResolveFailed(identity=identity, reason="timeout"))
            return

        addresses = tuple(info.parsed_scoped_addresses())
        log.debug("Resolved mDNS service info", server=info.server, port=info.port, addresses=addresses)
        self._emit(
            InstanceResolved(
                identity=identity,
                host_name=info.server,
                port=info.port,
                addresses=addresses,
                metadata=decode_properties(info.properties or {}),
            )
        )

    async def _refresh_metadata(self, identity: DeviceIdentity) -> None:
        try:
            info = await self._request_info(identity, METADATA_REFRESH_TIMEOUT_MS)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.debug("TXT refresh failed", identity=identity.key, error=str(e))
            return
        if info is not None:
            self._emit(MetadataUpdated(identity=identity, metadata=decode_properties(info.properties or {})))

    def _emit(self, event: Any) -> None:
        if self._sink is None:
            self.logger.debug("Dropping event, substrate has no sink.", kind=event.kind)
            return
        self._sink(event)

    def _track(self, coro: Any) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _track_cancel(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._cancellations.add(task)
        task.add_done_callback(self._cancellations.discard)

    def _require_open(self) -> AsyncZeroconf:
        if self._aiozc is None:
            raise CoordinatorStateError("ZeroconfSubstrate used before open().")
        return self._aiozc
