"""
DiscoveryCoordinator: owns the browsing lifecycle and the device registry.

Substrate callbacks never touch state directly. They enqueue events, and a
single consumer task applies them one at a time, so find/resolve/remove events
never race on the registry. Every mutation re-runs classification and is
followed by a change notification carrying a registry snapshot.
"""
import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Set

import structlog

from ..classification.engine import ClassificationEngine
from ..config import DiscoveryConfig
from ..correlation.correlator import AddressCorrelator, Correlation
from ..exceptions import CoordinatorStateError, DiscoveryError
from ..models.common import CoordinatorState
from ..models.device import DeviceIdentity, DiscoveredDevice, dedupe_addresses
from ..models.events import (
    BrowseFailed,
    CategoryFound,
    CategoryRemoved,
    InstanceFound,
    InstanceRemoved,
    InstanceResolved,
    MetadataUpdated,
    ResolveFailed,
)
from .substrate import BrowseHandle, DiscoverySubstrate, ResolveHandle

logger = structlog.get_logger(__name__)

ChangeListener = Callable[[List[DiscoveredDevice]], None]

MAX_RECORDED_ERRORS = 50

_UNSET: Any = object()


# Events the coordinator posts to itself.
@dataclass(frozen=True)
class _FallbackFired:
    pass

@dataclass(frozen=True)
class _CorrelationDone:
    identity: DeviceIdentity
    generation: int
    correlation: Correlation

@dataclass(frozen=True)
class _SnapshotRequest:
    future: asyncio.Future


class DiscoveryCoordinator:
    """
    Meta-discovers service types, browses each type, resolves each instance
    and keeps one `DiscoveredDevice` per identity.

    All state lives on the event loop the coordinator was started on;
    `post()` may be called from any thread.
    """

    def __init__(
        self,
        substrate: DiscoverySubstrate,
        config: Optional[DiscoveryConfig] = None,
        classifier: Optional[ClassificationEngine] = None,
        correlator: Optional[AddressCorrelator] = None,
    ):
        self.substrate = substrate
        self.config = config or DiscoveryConfig()
        self.classifier = classifier or ClassificationEngine()
        self.correlator = correlator
        self.logger = logger.bind(service="DiscoveryCoordinator")

        self._registry: Dict[DeviceIdentity, DiscoveredDevice] = {}
        self._catalog: Set[str] = set()
        self._meta_browser: Optional[BrowseHandle] = None
        self._browsers: Dict[str, BrowseHandle] = {}
        self._resolvers: Dict[DeviceIdentity, ResolveHandle] = {}
        self._correlations: Dict[DeviceIdentity, asyncio.Task] = {}
        self._generations: Dict[DeviceIdentity, int] = {}
        self._next_generation = 0
        self._fallback_timer: Optional[asyncio.TimerHandle] = None
        self._fallback_used = False
        self._browsing = False
        self._substrate_open = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._listeners: List[ChangeListener] = []
        self.last_errors: Deque[BrowseFailed] = deque(maxlen=MAX_RECORDED_ERRORS)

    # ----------------------------------------------------------------- queries

    @property
    def is_browsing(self) -> bool:
        return self._browsing

    @property
    def state(self) -> CoordinatorState:
        if not self._browsing:
            return CoordinatorState.IDLE
        if self._browsers:
            return CoordinatorState.CATEGORY_BROWSING
        return CoordinatorState.META_DISCOVERING

    @property
    def service_types(self) -> Set[str]:
        """Service types reported by meta-discovery."""
        return set(self._catalog)

    @property
    def browsed_types(self) -> Set[str]:
        return set(self._browsers)

    @property
    def devices(self) -> List[DiscoveredDevice]:
        return list(self._registry.values())

    @property
    def fallback_used(self) -> bool:
        return self._fallback_used

    def get_device(self, identity: DeviceIdentity) -> Optional[DiscoveredDevice]:
        return self._registry.get(identity)

    async def snapshot(self) -> List[DiscoveredDevice]:
        """Registry contents as seen by the consumer after all queued events."""
        if self._consumer is None or self._consumer.done():
            return self.devices
        future = asyncio.get_running_loop().create_future()
        self.post(_SnapshotRequest(future))
        return await future

    async def drain(self) -> None:
        """Waits until every queued event has been applied."""
        if self._queue is not None and self._consumer is not None and not self._consumer.done():
            await self._queue.join()

    # ------------------------------------------------------------- listeners

    def add_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------- lifecycle

    async def start(self) -> None:
        """Begins meta-discovery. No-op while already browsing."""
        if self._browsing:
            self.logger.debug("Start requested while already browsing; ignoring.")
            return

        self._loop = asyncio.get_running_loop()
        self._ensure_consumer()
        if not self._substrate_open:
            await self.substrate.open(self.post)
            self._substrate_open = True

        self._discard_pending_events()
        self._registry.clear()
        self._catalog.clear()
        self._generations.clear()
        self._fallback_used = False
        self._browsing = True

        domain = self.config.domain
        self.logger.info("Starting meta-discovery.", meta_service_type=self.config.meta_service_type, domain=domain)
        try:
            self._meta_browser = self.substrate.browse(self.config.meta_service_type, domain)
        except DiscoveryError as e:
            # The fallback timer still fires and browses the well-known types.
            self._record_browse_failure(self.config.meta_service_type, str(e))

        self._arm_fallback()
        self._notify()

    async def stop(self) -> None:
        """Stops all browsing. Safe to call repeatedly and from any state."""
        was_browsing = self._browsing
        self._teardown()
        if self.config.clear_registry_on_stop and self._registry:
            self._registry.clear()
            self._notify()
        elif was_browsing:
            self._notify()
        if was_browsing:
            self.logger.info("Browsing stopped.", devices=len(self._registry))

    async def close(self) -> None:
        """Stops browsing, ends the consumer and closes the substrate."""
        await self.stop()
        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
        if self._substrate_open:
            await self.substrate.close()
            self._substrate_open = False

    # ------------------------------------------------------------ event intake

    def post(self, event: Any) -> None:
        """Enqueues an event for the consumer. Thread-safe."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None:
            raise CoordinatorStateError("DiscoveryCoordinator.post() called before start().")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(queue.put_nowait, event)

    def _ensure_consumer(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume(), name="lanscope-coordinator")

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                self._dispatch(event)
            except Exception as e:
                self.logger.exception("Error applying discovery event", event=type(event).__name__, error=str(e))
            finally:
                self._queue.task_done()

    def _discard_pending_events(self) -> None:
        if self._queue is None:
            return
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if isinstance(event, _SnapshotRequest) and not event.future.done():
                event.future.set_result(self.devices)
            self._queue.task_done()

    def _dispatch(self, event: Any) -> None:
        if isinstance(event, _SnapshotRequest):
            if not event.future.done():
                event.future.set_result(self.devices)
        elif isinstance(event, CategoryFound):
            self._on_category_found(event)
        elif isinstance(event, CategoryRemoved):
            self._on_category_removed(event)
        elif isinstance(event, InstanceFound):
            self._on_instance_found(event)
        elif isinstance(event, InstanceRemoved):
            self._on_instance_removed(event)
        elif isinstance(event, InstanceResolved):
            self._on_instance_resolved(event)
        elif isinstance(event, MetadataUpdated):
            self._on_metadata_updated(event)
        elif isinstance(event, ResolveFailed):
            self._on_resolve_failed(event)
        elif isinstance(event, BrowseFailed):
            self._on_browse_failed(event)
        elif isinstance(event, _FallbackFired):
            self._on_fallback_fired()
        elif isinstance(event, _CorrelationDone):
            self._on_correlation_done(event)
        else:
            self.logger.warning("Ignoring unknown event", event=type(event).__name__)

    # ---------------------------------------------------------- event handlers

    def _on_category_found(self, event: CategoryFound) -> None:
        if not self._browsing or self._meta_browser is None:
            return
        self._disarm_fallback()
        if event.service_type not in self._catalog:
            self._catalog.add(event.service_type)
            self.logger.info("Service type discovered.", service_type=event.service_type)
        self._start_category_browser(event.service_type)
        self._notify()

    def _on_category_removed(self, event: CategoryRemoved) -> None:
        if event.service_type not in self._catalog and event.service_type not in self._browsers:
            return
        self._catalog.discard(event.service_type)
        browser = self._browsers.pop(event.service_type, None)
        if browser is not None:
            browser.cancel()
        self.logger.info("Service type removed.", service_type=event.service_type)
        self._notify()

    def _on_instance_found(self, event: InstanceFound) -> None:
        identity = event.identity
        if not self._browsing or identity.service_type not in self._browsers:
            self.logger.debug("Dropping instance from inactive browse.", identity=identity.key)
            return

        if identity not in self._registry:
            self._next_generation += 1
            self._generations[identity] = self._next_generation
            self._upsert(identity)
            self.logger.info("Service instance found.", identity=identity.key)
            self._notify()

        previous = self._resolvers.pop(identity, None)
        if previous is not None:
            previous.cancel()
        try:
            self._resolvers[identity] = self.substrate.resolve(identity, self.config.resolve_timeout_seconds)
        except DiscoveryError as e:
            self.logger.warning("Could not start resolving instance.", identity=identity.key, error=str(e))

    def _on_instance_removed(self, event: InstanceRemoved) -> None:
        identity = event.identity
        resolver = self._resolvers.pop(identity, None)
        if resolver is not None:
            resolver.cancel()
        task = self._correlations.pop(identity, None)
        if task is not None:
            task.cancel()
        self._generations.pop(identity, None)
        if self._registry.pop(identity, None) is not None:
            self.logger.info("Service instance removed.", identity=identity.key)
            self._notify()

    def _on_instance_resolved(self, event: InstanceResolved) -> None:
        identity = event.identity
        if self._resolvers.pop(identity, None) is None or identity not in self._registry:
            self.logger.debug("Dropping resolution without a pending resolve.", identity=identity.key)
            return

        # Fields the resolution did not report keep their stored values.
        device = self._upsert(
            identity,
            host_name=event.host_name if event.host_name else _UNSET,
            port=event.port if event.port is not None and event.port >= 0 else _UNSET,
            addresses=dedupe_addresses(event.addresses),
            metadata=event.metadata,
        )
        self.logger.info(
            "Service instance resolved.",
            identity=identity.key,
            host=device.host_name,
            port=device.port,
            addresses=list(device.addresses),
            display_name=device.display_name,
        )
        self._notify()
        self._start_correlation(identity, device.addresses)

    def _on_metadata_updated(self, event: MetadataUpdated) -> None:
        if not self._browsing or event.identity not in self._registry:
            return
        self._upsert(event.identity, metadata=event.metadata)
        self.logger.debug("TXT records updated.", identity=event.identity.key, keys=sorted(event.metadata))
        self._notify()

    def _on_resolve_failed(self, event: ResolveFailed) -> None:
        if self._resolvers.pop(event.identity, None) is None:
            return
        # Not an error for the user: the device stays with whatever it had.
        self.logger.info("Service instance did not resolve.", identity=event.identity.key, reason=event.reason)

    def _on_browse_failed(self, event: BrowseFailed) -> None:
        browser = self._browsers.pop(event.service_type, None)
        if browser is not None:
            browser.cancel()
        self._record_browse_failure(event.service_type, event.reason)

    def _on_fallback_fired(self) -> None:
        self._fallback_timer = None
        if not self._browsing or self._catalog:
            return
        self._fallback_used = True
        self.logger.info(
            "Meta-discovery found no service types; browsing well-known types.",
            service_types=self.config.fallback_service_types,
        )
        for service_type in self.config.fallback_service_types:
            self._start_category_browser(service_type)
        self._notify()

    def _on_correlation_done(self, event: _CorrelationDone) -> None:
        identity = event.identity
        if not self._browsing or self._generations.get(identity) != event.generation or identity not in self._registry:
            self.logger.debug("Dropping correlation for removed device or stopped session.", identity=identity.key)
            return
        self._correlations.pop(identity, None)
        device = self._upsert(
            identity,
            hardware_address=event.correlation.hardware_address,
            vendor_name=event.correlation.vendor_name,
        )
        self.logger.info(
            "Hardware address correlated.",
            identity=identity.key,
            hardware_address=device.hardware_address,
            vendor=device.vendor_name,
            display_name=device.display_name,
        )
        self._notify()

    # ---------------------------------------------------------------- helpers

    def _upsert(
        self,
        identity: DeviceIdentity,
        host_name: Any = _UNSET,
        port: Any = _UNSET,
        addresses: Any = None,
        metadata: Any = None,
        hardware_address: Any = _UNSET,
        vendor_name: Any = _UNSET,
    ) -> DiscoveredDevice:
        """Merges the given fields into the record for `identity`.

        Fields that are not passed keep their current value. A non-empty
        address list replaces the stored one; metadata is merged key by key, and
        a reported key replaces any stored key differing only in case.
        """
        existing = self._registry.get(identity)
        fields: Dict[str, Any] = {
            "host_name": existing.host_name if existing else None,
            "port": existing.port if existing else None,
            "addresses": existing.addresses if existing else (),
            "metadata": dict(existing.metadata) if existing else {},
            "hardware_address": existing.hardware_address if existing else None,
            "vendor_name": existing.vendor_name if existing else None,
        }
        if host_name is not _UNSET:
            fields["host_name"] = host_name
        if port is not _UNSET:
            fields["port"] = port if port is not None and port >= 0 else None
        if addresses:
            fields["addresses"] = dedupe_addresses(addresses)
        if metadata:
            reported = {key.lower() for key in metadata}
            merged = {k: v for k, v in fields["metadata"].items() if k.lower() not in reported}
            merged.update(metadata)
            fields["metadata"] = merged
        if hardware_address is not _UNSET:
            fields["hardware_address"] = hardware_address
        if vendor_name is not _UNSET:
            fields["vendor_name"] = vendor_name

        classification = self.classifier.classify(identity, **fields)
        device = DiscoveredDevice(
            identity=identity,
            display_name=classification.display_name,
            icon_tag=classification.icon_tag,
            **fields,
        )
        self._registry[identity] = device
        return device

    def _start_category_browser(self, service_type: str) -> None:
        if service_type in self._browsers:
            return
        try:
            self._browsers[service_type] = self.substrate.browse(service_type, self.config.domain)
        except DiscoveryError as e:
            self._record_browse_failure(service_type, str(e))
            return
        self.logger.debug("Browsing service type.", service_type=service_type)

    def _start_correlation(self, identity: DeviceIdentity, addresses: Any) -> None:
        if self.correlator is None or not addresses:
            return
        previous = self._correlations.pop(identity, None)
        if previous is not None:
            previous.cancel()
        generation = self._generations.get(identity)
        if generation is None:
            return
        self._correlations[identity] = asyncio.create_task(
            self._correlate(identity, generation, tuple(addresses))
        )

    async def _correlate(self, identity: DeviceIdentity, generation: int, addresses: tuple) -> None:
        assert self.correlator is not None
        try:
            result = await self.correlator.correlate(addresses)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning("Correlation failed.", identity=identity.key, error=str(e))
            return
        if result is not None:
            self.post(_CorrelationDone(identity, generation, result))

    def _arm_fallback(self) -> None:
        self._disarm_fallback()
        assert self._loop is not None
        self._fallback_timer = self._loop.call_later(
            self.config.fallback_delay_seconds, self.post, _FallbackFired()
        )

    def _disarm_fallback(self) -> None:
        if self._fallback_timer is not None:
            self._fallback_timer.cancel()
            self._fallback_timer = None

    def _record_browse_failure(self, service_type: str, reason: str) -> None:
        self.last_errors.append(BrowseFailed(service_type=service_type, reason=reason))
        self.logger.warning("Browse failed; other service types continue.", service_type=service_type, reason=reason)

    def _teardown(self) -> None:
        self._disarm_fallback()
        if self._meta_browser is not None:
            self._meta_browser.cancel()
            self._meta_browser = None
        for browser in self._browsers.values():
            browser.cancel()
        self._browsers.clear()
        for resolver in self._resolvers.values():
            resolver.cancel()
        self._resolvers.clear()
        for task in self._correlations.values():
            task.cancel()
        self._correlations.clear()
        self._browsing = False

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.devices
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.warning("Change listener raised", listener=getattr(listener, "__name__", repr(listener)), error=str(e))
