from .common import CoordinatorState, IconTag, RecordCategory
from .device import DeviceIdentity, DiscoveredDevice
from .events import (
    BrowseFailed,
    CategoryFound,
    CategoryRemoved,
    DiscoveryEvent,
    InstanceFound,
    InstanceRemoved,
    InstanceResolved,
    MetadataUpdated,
    ResolveFailed,
)

__all__ = [
    "BrowseFailed",
    "CategoryFound",
    "CategoryRemoved",
    "CoordinatorState",
    "DeviceIdentity",
    "DiscoveredDevice",
    "DiscoveryEvent",
    "IconTag",
    "InstanceFound",
    "InstanceRemoved",
    "InstanceResolved",
    "MetadataUpdated",
    "RecordCategory",
    "ResolveFailed",
]
