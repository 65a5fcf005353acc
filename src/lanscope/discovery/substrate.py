"""
Interface between the coordinator and the library that speaks mDNS/DNS-SD.

The substrate performs the wire protocol; the coordinator only asks it to
browse a service type or resolve an instance and receives `DiscoveryEvent`s
through the sink handed to `open`.
"""
from typing import Callable, Protocol, Tuple

from ..models.device import DeviceIdentity
from ..models.events import DiscoveryEvent

EventSink = Callable[[DiscoveryEvent], None]


class BrowseHandle(Protocol):
    def cancel(self) -> None:
        """Stops the browse. Calling it again is a no-op."""
        ...


class ResolveHandle(Protocol):
    def cancel(self) -> None:
        """Abandons the resolve. Calling it again is a no-op."""
        ...


class DiscoverySubstrate(Protocol):
    async def open(self, sink: EventSink) -> None:
        ...

    def browse(self, service_type: str, domain: str) -> BrowseHandle:
        """Starts browsing; raises DiscoveryError if the browse cannot start."""
        ...

    def resolve(self, identity: DeviceIdentity, timeout: float) -> ResolveHandle:
        """Starts resolving; the outcome arrives as InstanceResolved or ResolveFailed."""
        ...

    async def close(self) -> None:
        ...


def split_service_type(type_with_domain: str) -> Tuple[str, str]:
    """'_ipp._tcp.local.' -> ('_ipp._tcp.', 'local.')."""
    labels = [label for label in type_with_domain.split(".") if label]
    if len(labels) < 2:
        return type_with_domain, "local."
    service_type = ".".join(labels[:2]) + "."
    domain = ".".join(labels[2:]) + "." if labels[2:] else "local."
    return service_type, domain


def split_service_name(name: str, type_with_domain: str) -> DeviceIdentity:
    """Splits a full instance name into the identity triple.

    'Office Printer._ipp._tcp.local.' with type '_ipp._tcp.local.' gives
    ('Office Printer', '_ipp._tcp.', 'local.'). Instance names may contain dots.
    """
    service_type, domain = split_service_type(type_with_domain)
    full_type = type_with_domain if type_with_domain.endswith(".") else type_with_domain + "."
    suffix = "." + full_type
    if name.endswith(suffix):
        instance = name[: -len(suffix)]
    elif name.endswith(full_type):
        instance = name[: -len(full_type)].rstrip(".")
    else:
        instance = name
    return DeviceIdentity(name=instance, service_type=service_type, domain=domain)


def full_service_name(identity: DeviceIdentity) -> str:
    return f"{identity.name}.{identity.service_type}{identity.domain}"
