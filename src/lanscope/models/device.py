from typing import Any

from pydantic import ConfigDict, Field, field_validator

from .common import BasePydanticModel, IconTag


def dedupe_addresses(addresses: Any) -> tuple[str, ...]:
    """Drops repeated addresses, keeping the first occurrence of each."""
    seen: set[str] = set()
    ordered = []
    for address in addresses or ():
        if address and address not in seen:
            seen.add(address)
            ordered.append(address)
    return tuple(ordered)


class DeviceIdentity(BasePydanticModel):
    """(advertised name, service type, domain): the key of a device for one session."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    service_type: str
    domain: str

    @property
    def key(self) -> str:
        return f"{self.name}|{self.service_type}|{self.domain}"

    def __str__(self) -> str:
        return f"{self.name}.{self.service_type}{self.domain}"


class DiscoveredDevice(BasePydanticModel):
    """Registry record for one identity.

    Records are frozen; the coordinator replaces a record on every mutation,
    so a snapshot handed out earlier never changes underneath its reader.
    `display_name` and `icon_tag` are derived and recomputed by the
    coordinator after each mutation.
    """
    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True)

    identity: DeviceIdentity
    host_name: str | None = None
    port: int | None = None
    addresses: tuple[str, ...] = ()
    metadata: dict[str, str] = Field(default_factory=dict)
    hardware_address: str | None = None
    vendor_name: str | None = None
    display_name: str = ""
    icon_tag: IconTag = IconTag.UNKNOWN

    @field_validator("port", mode="before")
    @classmethod
    def _sentinel_port(cls, value: Any) -> Any:
        if value is None:
            return None
        if int(value) < 0:
            return None
        return value

    @field_validator("addresses", mode="before")
    @classmethod
    def _unique_addresses(cls, value: Any) -> tuple[str, ...]:
        return dedupe_addresses(value)

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def service_type(self) -> str:
        return self.identity.service_type

    @property
    def domain(self) -> str:
        return self.identity.domain
