"""Service discovery: the coordinator and the substrates it drives."""

from .coordinator import ChangeListener, DiscoveryCoordinator
from .substrate import (
    BrowseHandle,
    DiscoverySubstrate,
    EventSink,
    ResolveHandle,
    full_service_name,
    split_service_name,
    split_service_type,
)
from .zeroconf_substrate import ZeroconfSubstrate, decode_properties

__all__ = [
    "BrowseHandle",
    "ChangeListener",
    "DiscoveryCoordinator",
    "DiscoverySubstrate",
    "EventSink",
    "ResolveHandle",
    "ZeroconfSubstrate",
    "decode_properties",
    "full_service_name",
    "split_service_name",
    "split_service_type",
]
