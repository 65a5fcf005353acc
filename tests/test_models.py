"""
Unit tests for Pydantic models in src/lanscope/models/
"""
import pytest
from pydantic import TypeAdapter, ValidationError

from lanscope.models import (
    DeviceIdentity,
    DiscoveredDevice,
    DiscoveryEvent,
    IconTag,
    InstanceResolved,
    ResolveFailed,
)
from lanscope.models.device import dedupe_addresses


@pytest.fixture
def identity():
    return DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local.")


def test_identity_key_and_str(identity):
    assert identity.key == "Office|_ipp._tcp.|local."
    assert str(identity) == "Office._ipp._tcp.local."


def test_identity_is_hashable_and_frozen(identity):
    same = DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local.")
    assert {identity: 1}[same] == 1
    with pytest.raises(ValidationError):
        identity.name = "Other"


def test_dedupe_addresses_keeps_first_occurrence():
    assert dedupe_addresses(["10.0.0.2", "fe80::1%en0", "10.0.0.2", ""]) == ("10.0.0.2", "fe80::1%en0")
    assert dedupe_addresses(None) == ()


def test_device_defaults(identity):
    """A freshly found device carries no resolution data."""
    device = DiscoveredDevice(identity=identity)
    assert device.addresses == ()
    assert device.metadata == {}
    assert device.port is None
    assert device.icon_tag == IconTag.UNKNOWN
    assert device.name == "Office"
    assert device.service_type == "_ipp._tcp."


def test_device_normalises_port_and_addresses(identity):
    device = DiscoveredDevice(identity=identity, port=-1, addresses=["10.0.0.2", "10.0.0.2"])
    assert device.port is None
    assert device.addresses == ("10.0.0.2",)


def test_device_is_frozen(identity):
    device = DiscoveredDevice(identity=identity)
    with pytest.raises(ValidationError):
        device.display_name = "changed"


def test_event_union_dispatches_on_kind(identity):
    adapter = TypeAdapter(DiscoveryEvent)
    event = adapter.validate_python({
        "kind": "instance_resolved",
        "identity": identity.model_dump(),
        "port": 631,
        "addresses": ["10.0.0.2"],
    })
    assert isinstance(event, InstanceResolved)
    assert event.addresses == ("10.0.0.2",)

    failed = adapter.validate_python({"kind": "resolve_failed", "identity": identity.model_dump()})
    assert failed == ResolveFailed(identity=identity, reason="timeout")


def test_events_reject_unknown_fields(identity):
    with pytest.raises(ValidationError):
        ResolveFailed(identity=identity, reason="timeout", extra_field=1)
