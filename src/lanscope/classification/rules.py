"""
Ordered classification rules.

Each rule pairs a predicate with a producer over a `ClassificationContext`.
The engine evaluates `DEFAULT_RULES` in order and the first matching rule
decides the display name and icon; the last rule always matches.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence

from ..models.common import IconTag
from . import hints
from .hints import contains_any, match_hint


class Classification(NamedTuple):
    display_name: str
    icon_tag: IconTag


@dataclass(frozen=True)
class ClassificationContext:
    """Inputs of one classification, with lower-cased views for hint matching."""
    name: str
    service_type: str
    host_name: Optional[str] = None
    port: Optional[int] = None
    addresses: Sequence[str] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    hardware_address: Optional[str] = None
    vendor_name: Optional[str] = None
    _records: Dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lowered: Dict[str, str] = {}
        for key, value in self.metadata.items():
            lowered[key.lower()] = value
        object.__setattr__(self, "_records", lowered)

    @property
    def name_lower(self) -> str:
        return self.name.lower()

    @property
    def host_lower(self) -> str:
        return (self.host_name or "").lower()

    @property
    def type_lower(self) -> str:
        return self.service_type.lower()

    @property
    def vendor_lower(self) -> str:
        return (self.vendor_name or "").lower()

    @property
    def host_label(self) -> str:
        """First label of the host name, else the advertised name."""
        if self.host_name:
            label = self.host_name.split(".")[0]
            if label:
                return label
        return self.name

    def record(self, *keys: str) -> str:
        """First non-empty stripped value among `keys` (case-insensitive)."""
        for key in keys:
            value = (self._records.get(key) or "").strip()
            if value:
                return value
        return ""

    def has_record(self, key: str) -> bool:
        return key in self._records

    @property
    def model(self) -> str:
        return self.record("md", "model", "ty")

    def type_is(self, service_types: Sequence[str]) -> bool:
        return contains_any(self.type_lower, service_types)


@dataclass(frozen=True)
class ClassificationRule:
    """
    A named classification step.

    Attributes:
        name: Identifier used in logs and by `ClassificationEngine.explain`.
        predicate: Decides whether the rule applies.
        produce: Builds the classification when it does.
    """
    name: str
    predicate: Callable[[ClassificationContext], bool]
    produce: Callable[[ClassificationContext], Classification]


def guess_icon(ctx: ClassificationContext) -> IconTag:
    """Icon from the service type first, then from vendor hints."""
    if ctx.type_is(hints.PRINTER_TYPES):
        return IconTag.PRINTER
    if ctx.type_is(hints.STREAMING_TYPES):
        if contains_any(ctx.name_lower, hints.TV_HINTS) or contains_any(ctx.model, hints.TV_HINTS):
            return IconTag.TV
        return IconTag.SPEAKER
    if ctx.type_is(hints.WORKSTATION_TYPES):
        return IconTag.DESKTOP
    if ctx.type_is(hints.FILE_SHARING_TYPES):
        return IconTag.DISK
    if ctx.type_is(hints.REMOTE_SHELL_TYPES):
        return IconTag.SERVER
    if ctx.type_is(hints.SCREEN_SHARING_TYPES):
        return IconTag.DESKTOP
    if ctx.type_is(hints.WEB_TYPES):
        if contains_any(ctx.name_lower, hints.CAMERA_NAME_HINTS) or match_hint(hints.CAMERA_VENDOR_HINTS, ctx.vendor_name):
            return IconTag.CAMERA
        if match_hint(hints.STORAGE_VENDOR_HINTS, ctx.vendor_name):
            return IconTag.DISK
        return IconTag.SERVER
    if ctx.type_is(hints.HOME_AUTOMATION_TYPES):
        return IconTag.HOME
    if ctx.type_is(hints.MEDIA_SERVER_TYPES):
        return IconTag.TV
    if contains_any(ctx.vendor_lower, ("apple",)):
        return IconTag.DESKTOP
    if match_hint(hints.NETWORKING_VENDOR_HINTS, ctx.vendor_name):
        return IconTag.ROUTER
    if match_hint(hints.STORAGE_VENDOR_HINTS, ctx.vendor_name):
        return IconTag.DISK
    return IconTag.UNKNOWN


def clean_service_type(service_type: str) -> str:
    """'_pdl-datastream._tcp.' -> 'Pdl-Datastream'."""
    cleaned = (
        service_type.replace(".", "")
        .replace("_tcp", "")
        .replace("_udp", "")
        .replace("_", " ")
        .strip()
    )
    return cleaned.title()


# 1. Friendly name record
def _has_friendly_name(ctx: ClassificationContext) -> bool:
    return bool(ctx.record("fn"))

def _friendly_name(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.record("fn"), guess_icon(ctx))


# 2. Product name record
def _has_product_name(ctx: ClassificationContext) -> bool:
    return bool(ctx.record("product"))

def _product_name(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.record("product"), guess_icon(ctx))


# 3. Printers
def _is_printer(ctx: ClassificationContext) -> bool:
    if ctx.type_is(hints.PRINTER_TYPES):
        return True
    return bool(ctx.model) and (ctx.has_record("ty") or ctx.has_record("pdl"))

def _printer(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.model or ctx.vendor_name or "Network Printer", IconTag.PRINTER)


# 4. Audio/video streaming receivers
def _is_streaming(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.STREAMING_TYPES)

def _streaming(ctx: ClassificationContext) -> Classification:
    device_model = ctx.record("am", "model") or ctx.model
    display = device_model or ctx.name
    if (
        contains_any(ctx.name_lower, hints.TV_HINTS)
        or "appletv" in ctx.type_lower
        or contains_any(device_model, hints.TV_HINTS)
    ):
        return Classification(display, IconTag.TV)
    return Classification(display, IconTag.SPEAKER)


# 5. Workstations
def _is_workstation(ctx: ClassificationContext) -> bool:
    if ctx.type_is(hints.WORKSTATION_TYPES):
        return True
    return match_hint(hints.DESKTOP_VENDOR_HINTS, ctx.name, ctx.host_name, ctx.vendor_name) is not None

def _workstation(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.record("note") or ctx.host_label, IconTag.DESKTOP)


# 6. File servers / NAS
def _is_file_server(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.FILE_SHARING_TYPES)

def _file_server(ctx: ClassificationContext) -> Classification:
    storage = match_hint(hints.STORAGE_VENDOR_HINTS, ctx.vendor_name)
    if storage:
        return Classification(f"{ctx.vendor_name or storage} - {ctx.host_label}", IconTag.DISK)
    return Classification(ctx.host_label, IconTag.DISK)


# 7. SSH: routers, switches and servers
def _is_remote_shell(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.REMOTE_SHELL_TYPES)

def _remote_shell(ctx: ClassificationContext) -> Classification:
    vendor_hint = match_hint(hints.NETWORKING_VENDOR_HINTS, ctx.vendor_name, ctx.name, ctx.host_name)
    routerish = contains_any(ctx.name_lower, hints.ROUTER_NAME_HINTS) or contains_any(ctx.host_lower, hints.ROUTER_NAME_HINTS)
    if vendor_hint or routerish:
        label = ctx.vendor_name or vendor_hint or "Router"
        return Classification(f"{label} - {ctx.host_label}", IconTag.ROUTER)
    return Classification(f"SSH Server - {ctx.host_label}", IconTag.SERVER)


# 8. Screen sharing
def _is_screen_sharing(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.SCREEN_SHARING_TYPES)

def _screen_sharing(ctx: ClassificationContext) -> Classification:
    return Classification(f"Screen Sharing - {ctx.host_label}", IconTag.DESKTOP)


# 9. Web interfaces
def _is_web(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.WEB_TYPES)

def _web(ctx: ClassificationContext) -> Classification:
    host = ctx.host_label
    camera_vendor = match_hint(hints.CAMERA_VENDOR_HINTS, ctx.vendor_name)
    if (
        contains_any(ctx.name_lower, hints.CAMERA_NAME_HINTS)
        or contains_any(ctx.host_lower, hints.CAMERA_NAME_HINTS)
        or camera_vendor
    ):
        if ctx.model:
            return Classification(ctx.model, IconTag.CAMERA)
        return Classification(f"{ctx.vendor_name or 'IP Camera'} - {host}", IconTag.CAMERA)

    network_vendor = match_hint(hints.NETWORKING_VENDOR_HINTS, ctx.vendor_name, ctx.name, ctx.host_name)
    if network_vendor:
        return Classification(f"{ctx.vendor_name or network_vendor} - {host}", IconTag.ROUTER)

    storage_vendor = match_hint(hints.STORAGE_VENDOR_HINTS, ctx.vendor_name, ctx.name, ctx.host_name)
    if storage_vendor:
        return Classification(f"{ctx.vendor_name or storage_vendor} - {host}", IconTag.DISK)

    return Classification(f"Web Server - {host}", IconTag.SERVER)


# 10. HomeKit accessories
def _is_home_automation(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.HOME_AUTOMATION_TYPES)

def _home_automation(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.record("name") or ctx.name, IconTag.HOME)


# 11. Media servers
def _is_media_server(ctx: ClassificationContext) -> bool:
    return ctx.type_is(hints.MEDIA_SERVER_TYPES)

def _media_server(ctx: ClassificationContext) -> Classification:
    return Classification("Plex Media Server", IconTag.TV)


# 12. Vendor-only fallbacks
def _is_desktop_vendor(ctx: ClassificationContext) -> bool:
    return "apple" in ctx.vendor_lower

def _desktop_vendor(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.model or f"Apple Device - {ctx.host_label}", IconTag.DESKTOP)

def _is_printer_vendor(ctx: ClassificationContext) -> bool:
    return match_hint(hints.PRINTER_VENDOR_HINTS, ctx.vendor_name) is not None

def _printer_vendor(ctx: ClassificationContext) -> Classification:
    return Classification(ctx.model or ctx.vendor_name or "Printer", IconTag.PRINTER)

def _is_networking_vendor(ctx: ClassificationContext) -> bool:
    return match_hint(hints.NETWORKING_VENDOR_HINTS, ctx.vendor_name) is not None

def _networking_vendor(ctx: ClassificationContext) -> Classification:
    return Classification(f"{ctx.vendor_name or 'Network Device'} - {ctx.host_label}", IconTag.ROUTER)


# 13. Last resort
def _always(ctx: ClassificationContext) -> bool:
    return True

def _service_type_label(ctx: ClassificationContext) -> Classification:
    cleaned = clean_service_type(ctx.service_type)
    label = f"{cleaned} - {ctx.host_label}" if cleaned else ctx.host_label
    return Classification(label, guess_icon(ctx))


DEFAULT_RULES: List[ClassificationRule] = [
    ClassificationRule("friendly-name", _has_friendly_name, _friendly_name),
    ClassificationRule("product-name", _has_product_name, _product_name),
    ClassificationRule("printer", _is_printer, _printer),
    ClassificationRule("streaming", _is_streaming, _streaming),
    ClassificationRule("workstation", _is_workstation, _workstation),
    ClassificationRule("file-server", _is_file_server, _file_server),
    ClassificationRule("remote-shell", _is_remote_shell, _remote_shell),
    ClassificationRule("screen-sharing", _is_screen_sharing, _screen_sharing),
    ClassificationRule("web", _is_web, _web),
    ClassificationRule("home-automation", _is_home_automation, _home_automation),
    ClassificationRule("media-server", _is_media_server, _media_server),
    ClassificationRule("desktop-vendor", _is_desktop_vendor, _desktop_vendor),
    ClassificationRule("printer-vendor", _is_printer_vendor, _printer_vendor),
    ClassificationRule("networking-vendor", _is_networking_vendor, _networking_vendor),
    ClassificationRule("service-type", _always, _service_type_label),
]
