"""
Unit tests for service name helpers and the zeroconf-backed substrate.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from zeroconf import ServiceStateChange

from lanscope.discovery.substrate import full_service_name, split_service_name, split_service_type
from lanscope.discovery.zeroconf_substrate import ZeroconfSubstrate, decode_properties
from lanscope.exceptions import CoordinatorStateError, DiscoveryError
from lanscope.models import (
    CategoryFound,
    CategoryRemoved,
    DeviceIdentity,
    InstanceFound,
    InstanceRemoved,
    InstanceResolved,
    MetadataUpdated,
    ResolveFailed,
)

META = "_services._dns-sd._udp."


def test_split_service_type():
    assert split_service_type("_ipp._tcp.local.") == ("_ipp._tcp.", "local.")
    assert split_service_type("_ipp._tcp.example.com.") == ("_ipp._tcp.", "example.com.")
    assert split_service_type("_ipp._tcp.") == ("_ipp._tcp.", "local.")


def test_split_service_name_keeps_dots_in_instance():
    identity = split_service_name("Office Printer v2.1._ipp._tcp.local.", "_ipp._tcp.local.")
    assert identity == DeviceIdentity(name="Office Printer v2.1", service_type="_ipp._tcp.", domain="local.")
    assert full_service_name(identity) == "Office Printer v2.1._ipp._tcp.local."


def test_decode_properties():
    """Bytes are decoded and valueless keys map to the empty string."""
    decoded = decode_properties({b"fn": b"Kitchen", b"pw": None, "md": "HomePod", b"bad": b"\xff"})
    assert decoded == {"fn": "Kitchen", "pw": "", "md": "HomePod", "bad": "\ufffd"}


class FakeServiceInfo:
    """Stands in for zeroconf.asyncio.AsyncServiceInfo."""
    answer = True
    error = None

    def __init__(self, type_, name):
        self.type = type_
        self.name = name
        self.server = "npi1.local."
        self.port = 631
        self.properties = {b"ty": b"HP LaserJet 400", b"pw": b"false"}

    async def async_request(self, zc, timeout_ms):
        if self.error is not None:
            raise self.error
        return self.answer

    def parsed_scoped_addresses(self):
        return ["192.168.1.20", "fe80::1%en0"]


@pytest.fixture
def aiozc():
    mock = MagicMock()
    mock.zeroconf = MagicMock(name="zeroconf")
    mock.async_close = AsyncMock()
    return mock


@pytest.fixture
def events():
    return []


@pytest.fixture
def browser_cls():
    with patch("lanscope.discovery.zeroconf_substrate.AsyncServiceBrowser") as cls:
        cls.return_value.async_cancel = AsyncMock()
        yield cls


async def open_substrate(aiozc, events):
    substrate = ZeroconfSubstrate(meta_service_type=META, aiozc=aiozc)
    await substrate.open(events.append)
    return substrate


def handler_of(browser_cls):
    return browser_cls.call_args.kwargs["handlers"][0]


def test_browse_before_open_raises():
    substrate = ZeroconfSubstrate(aiozc=None)
    with pytest.raises(CoordinatorStateError):
        substrate.browse("_ipp._tcp.", "local.")


@pytest.mark.asyncio
async def test_meta_browse_reports_categories(aiozc, events, browser_cls):
    substrate = await open_substrate(aiozc, events)
    substrate.browse(META, "local.")

    assert browser_cls.call_args.args[1] == META + "local."
    handler = handler_of(browser_cls)
    handler(zeroconf=aiozc.zeroconf, service_type=META + "local.", name="_ipp._tcp.local.", state_change=ServiceStateChange.Added)
    handler(zeroconf=aiozc.zeroconf, service_type=META + "local.", name="_ipp._tcp.local.", state_change=ServiceStateChange.Removed)

    assert events == [
        CategoryFound(service_type="_ipp._tcp.", domain="local."),
        CategoryRemoved(service_type="_ipp._tcp.", domain="local."),
    ]
    await substrate.close()


@pytest.mark.asyncio
async def test_instance_browse_reports_instances(aiozc, events, browser_cls):
    substrate = await open_substrate(aiozc, events)
    substrate.browse("_ipp._tcp.", "local.")

    handler = handler_of(browser_cls)
    name = "Office._ipp._tcp.local."
    handler(zeroconf=aiozc.zeroconf, service_type="_ipp._tcp.local.", name=name, state_change=ServiceStateChange.Added)
    handler(zeroconf=aiozc.zeroconf, service_type="_ipp._tcp.local.", name=name, state_change=ServiceStateChange.Removed)

    identity = DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local.")
    assert events == [InstanceFound(identity=identity), InstanceRemoved(identity=identity)]
    await substrate.close()


@pytest.mark.asyncio
async def test_updated_instance_refreshes_metadata(aiozc, events, browser_cls):
    substrate = await open_substrate(aiozc, events)
    substrate.browse("_ipp._tcp.", "local.")

    with patch("lanscope.discovery.zeroconf_substrate.AsyncServiceInfo", FakeServiceInfo):
        handler_of(browser_cls)(
            zeroconf=aiozc.zeroconf, service_type="_ipp._tcp.local.",
            name="Office._ipp._tcp.local.", state_change=ServiceStateChange.Updated,
        )
        await asyncio.gather(*substrate._tasks)

    assert events == [MetadataUpdated(
        identity=DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local."),
        metadata={"ty": "HP LaserJet 400", "pw": "false"},
    )]
    await substrate.close()


@pytest.mark.asyncio
async def test_browse_failure_raises_discovery_error(aiozc, events, browser_cls):
    browser_cls.side_effect = OSError("no multicast route")
    substrate = await open_substrate(aiozc, events)

    with pytest.raises(DiscoveryError) as exc_info:
        substrate.browse("_ipp._tcp.", "local.")

    assert exc_info.value.service_type == "_ipp._tcp."
    await substrate.close()


@pytest.mark.asyncio
async def test_resolve_emits_resolved(aiozc, events):
    substrate = await open_substrate(aiozc, events)
    identity = DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local.")

    with patch("lanscope.discovery.zeroconf_substrate.AsyncServiceInfo", FakeServiceInfo):
        handle = substrate.resolve(identity, timeout=2.0)
        await handle._task

    assert events == [InstanceResolved(
        identity=identity,
        host_name="npi1.local.",
        port=631,
        addresses=("192.168.1.20", "fe80::1%en0"),
        metadata={"ty": "HP LaserJet 400", "pw": "false"},
    )]
    await substrate.close()


@pytest.mark.asyncio
async def test_resolve_timeout_and_error_emit_failed(aiozc, events):
    substrate = await open_substrate(aiozc, events)
    identity = DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local.")

    class SilentInfo(FakeServiceInfo):
        answer = False

    class BrokenInfo(FakeServiceInfo):
        error = RuntimeError("socket closed")

    with patch("lanscope.discovery.zeroconf_substrate.AsyncServiceInfo", SilentInfo):
        await substrate.resolve(identity, timeout=0.1)._task
    with patch("lanscope.discovery.zeroconf_substrate.AsyncServiceInfo", BrokenInfo):
        await substrate.resolve(identity, timeout=0.1)._task

    assert events == [
        ResolveFailed(identity=identity, reason="timeout"),
        ResolveFailed(identity=identity, reason="socket closed"),
    ]
    await substrate.close()


@pytest.mark.asyncio
async def test_close_cancels_browsers_and_keeps_borrowed_zeroconf(aiozc, events, browser_cls):
    substrate = await open_substrate(aiozc, events)
    handle = substrate.browse("_ipp._tcp.", "local.")

    await substrate.close()
    handle.cancel()

    browser_cls.return_value.async_cancel.assert_awaited_once()
    aiozc.async_close.assert_not_awaited()


@pytest.mark.asyncio
async def test_owned_zeroconf_is_closed():
    with patch("lanscope.discovery.zeroconf_substrate.AsyncZeroconf") as zc_cls:
        zc_cls.return_value.async_close = AsyncMock()
        substrate = ZeroconfSubstrate()
        await substrate.open(lambda event: None)
        await substrate.close()

    zc_cls.return_value.async_close.assert_awaited_once()
