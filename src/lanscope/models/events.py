"""
Events delivered by the discovery substrate to the coordinator.

Substrate callbacks translate into one of these and enqueue it; the
coordinator applies them one at a time in arrival order.
"""
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field

from .common import BasePydanticModel
from .device import DeviceIdentity


class _Event(BasePydanticModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

class CategoryFound(_Event):
    kind: Literal["category_found"] = "category_found"
    service_type: str
    domain: str = "local."

class CategoryRemoved(_Event):
    kind: Literal["category_removed"] = "category_removed"
    service_type: str
    domain: str = "local."

class InstanceFound(_Event):
    kind: Literal["instance_found"] = "instance_found"
    identity: DeviceIdentity

class InstanceRemoved(_Event):
    kind: Literal["instance_removed"] = "instance_removed"
    identity: DeviceIdentity

class InstanceResolved(_Event):
    kind: Literal["instance_resolved"] = "instance_resolved"
    identity: DeviceIdentity
    host_name: str | None = None
    port: int | None = None
    addresses: tuple[str, ...] = ()
    metadata: dict[str, str] = Field(default_factory=dict)

class MetadataUpdated(_Event):
    kind: Literal["metadata_updated"] = "metadata_updated"
    identity: DeviceIdentity
    metadata: dict[str, str] = Field(default_factory=dict)

class ResolveFailed(_Event):
    kind: Literal["resolve_failed"] = "resolve_failed"
    identity: DeviceIdentity
    reason: str = "timeout"

class BrowseFailed(_Event):
    """A browse for one service type could not start or broke down."""
    kind: Literal["browse_failed"] = "browse_failed"
    service_type: str
    reason: str

DiscoveryEvent = Annotated[
    Union[
        CategoryFound,
        CategoryRemoved,
        InstanceFound,
        InstanceRemoved,
        InstanceResolved,
        MetadataUpdated,
        ResolveFailed,
        BrowseFailed,
    ],
    Field(discriminator="kind"),
]
