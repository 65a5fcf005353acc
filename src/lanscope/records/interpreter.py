"""
Interprets TXT record key/value pairs carried by DNS-SD service advertisements.

Keys are matched case-insensitively against tables of well-known abbreviations
used by printers (IPP/LPR), AirPlay/RAOP receivers, HomeKit accessories, file
servers and web services. Every function here is pure and never raises for
unexpected input: unknown keys fall into `RecordCategory.OTHER` and values that
cannot be decoded come back unchanged.
"""
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import DEFAULT_FLAG_LABELS, InterpreterConfig
from ..models.common import RecordCategory

EMPTY_VALUE = "(empty)"

_CATEGORY_KEYS: Dict[RecordCategory, frozenset] = {
    RecordCategory.IDENTITY: frozenset({
        "fn", "name", "dn", "displayname", "md", "model", "ty", "product", "note",
        "id", "uid", "deviceid", "am", "vn", "usb_mfg", "usb_mdl", "pi",
    }),
    RecordCategory.VERSION: frozenset({
        "fw", "fwv", "fv", "version", "vs", "vv", "ver", "srcvers", "pv", "ov", "txtvers",
    }),
    RecordCategory.NETWORK: frozenset({"acl", "pw", "dk", "et", "tp", "pk", "sh", "ek"}),
    RecordCategory.STATUS: frozenset({"act", "sf", "flags", "ff", "c#", "s#"}),
    RecordCategory.CAPABILITIES: frozenset({
        "pdl", "color", "duplex", "scan", "fax", "copies", "papermax", "ch", "cn",
        "sr", "ss", "features", "ft", "ci", "at",
    }),
    RecordCategory.CONFIGURATION: frozenset({
        "rp", "path", "u", "adminurl", "qtotal", "priority", "machine", "sys", "wg", "da",
    }),
}

# Category lookup is total: every key maps to exactly one category.
_KEY_CATEGORY: Dict[str, RecordCategory] = {
    key: category for category, keys in _CATEGORY_KEYS.items() for key in keys
}

READABLE_KEYS: Dict[str, str] = {
    # Identity & model
    "fn": "Friendly Name",
    "md": "Model",
    "model": "Model",
    "ty": "Device Type",
    "note": "Location/Note",
    "product": "Product Name",
    "name": "Name",
    "dn": "Display Name",
    "displayname": "Display Name",
    "id": "Identifier",
    "uid": "Unique ID",
    "deviceid": "Device ID",
    "pi": "Product ID",
    "usb_mfg": "USB Manufacturer",
    "usb_mdl": "USB Model",
    # Version & firmware
    "fw": "Firmware Version",
    "fwv": "Firmware Version",
    "fv": "Firmware Version",
    "vs": "Version",
    "ver": "Version",
    "version": "Version",
    "vv": "AirPlay Version",
    "srcvers": "Source Version",
    "ov": "OS Version",
    "pv": "Protocol Version",
    "txtvers": "TXT Record Version",
    # Network & security
    "acl": "Access Control Level",
    "dk": "Decryption Key",
    "et": "Encryption Type",
    "ek": "Encryption Key",
    "pw": "Password Required",
    "pk": "Public Key",
    "tp": "Transport Protocol",
    "sh": "Setup Hash",
    # Status
    "act": "Activity Status",
    "sf": "Status Flags",
    "flags": "Feature Flags",
    "ff": "Feature Flags",
    "c#": "Configuration Number",
    "s#": "State Number",
    # Printer
    "pdl": "Page Description Languages",
    "rp": "Resource Path",
    "qtotal": "Queue Total",
    "priority": "Priority",
    "adminurl": "Admin URL",
    "color": "Color Support",
    "duplex": "Duplex Printing",
    "scan": "Scanning Capable",
    "fax": "Fax Capable",
    "copies": "Copies Support",
    "papermax": "Max Paper Size",
    # AirPlay / RAOP
    "am": "AirPlay Model",
    "ch": "Audio Channels",
    "cn": "Audio Codecs",
    "da": "Device Announce",
    "sr": "Sample Rate",
    "ss": "Sample Size",
    "vn": "Vendor",
    "ft": "Features",
    "features": "Supported Features",
    "at": "Audio Types",
    # HomeKit
    "ci": "Category Identifier",
    # File sharing
    "machine": "Machine Type",
    "sys": "System",
    "wg": "Workgroup",
    # Web services
    "path": "URL Path",
    "u": "URL",
}

_TRUE_TOKENS = frozenset({"1", "t", "true", "yes"})
_FALSE_TOKENS = frozenset({"0", "f", "false", "no"})

# key -> (reading for a true token, reading for a false token)
BOOLEAN_READINGS: Dict[str, Tuple[str, str]] = {
    "pw": ("Password required", "No password required"),
    "color": ("Color printing supported", "Black & white only"),
    "duplex": ("Duplex printing supported", "Single-sided only"),
    "scan": ("Supported", "Not Supported"),
    "fax": ("Supported", "Not Supported"),
    "copies": ("Supported", "Not Supported"),
    "bind": ("Supported", "Not Supported"),
    "collate": ("Supported", "Not Supported"),
    "punch": ("Supported", "Not Supported"),
    "sort": ("Supported", "Not Supported"),
    "staple": ("Supported", "Not Supported"),
    "tls": ("Supported", "Not Supported"),
}

ENUMERATED_VALUES: Dict[str, Dict[str, str]] = {
    "act": {
        "0": "Idle",
        "1": "Active",
        "2": "Processing",
    },
    "acl": {
        "0": "Public (no restrictions)",
        "1": "Password protected",
        "2": "Device pin required",
    },
    "ci": {
        "1": "Other",
        "2": "Bridge",
        "3": "Fan",
        "4": "Garage Door Opener",
        "5": "Lightbulb",
        "6": "Door Lock",
        "7": "Outlet",
        "8": "Switch",
        "9": "Thermostat",
        "10": "Sensor",
        "11": "Security System",
        "12": "Door",
        "13": "Window",
        "14": "Window Covering",
        "15": "Programmable Switch",
        "16": "Range Extender",
        "17": "IP Camera",
        "18": "Video Doorbell",
        "19": "Air Purifier",
        "20": "Heater",
        "21": "Air Conditioner",
        "22": "Humidifier",
        "23": "Dehumidifier",
        "28": "Sprinkler",
        "29": "Faucet",
        "30": "Shower System",
        "31": "Television",
        "32": "Target Remote",
        "33": "Router",
    },
    "et": {
        "0": "No encryption",
        "1": "RSA (Legacy)",
        "2": "FairPlay",
        "3": "MFiSAP",
        "4": "FairPlay SAPv2.5",
    },
    "tp": {
        "udp": "UDP (User Datagram Protocol)",
        "tcp": "TCP (Transmission Control Protocol)",
    },
    "papermax": {
        "letter": "Letter (8.5\" × 11\")",
        "legal": "Legal (8.5\" × 14\")",
        "a4": "A4 (210mm × 297mm)",
        "a3": "A3 (297mm × 420mm)",
        "tabloid": "Tabloid (11\" × 17\")",
        "ledger": "Ledger (17\" × 11\")",
        "legal-a4": "Legal or A4",
        "isoc-a4": "ISO C / A4",
        "<legal-a4": "Smaller than Legal/A4",
    },
}

# Keys whose enumerated lookup ignores the case of the value.
_CASE_INSENSITIVE_VALUES = frozenset({"tp", "papermax"})

LIST_VALUES: Dict[str, Dict[str, str]] = {
    "pdl": {
        "POSTSCRIPT": "PostScript",
        "PCL": "PCL (HP Printer Language)",
        "PCLXL": "PCL XL",
        "VND.HP-PCL": "PCL (HP Printer Language)",
        "VND.HP-PCLXL": "PCL XL",
        "PDF": "PDF Direct",
        "URF": "URF (AirPrint)",
        "PWG": "PWG Raster",
        "PWG-RASTER": "PWG Raster",
        "OCTET-STREAM": "Raw",
        "JPEG": "JPEG",
    },
}

_MIME_PREFIXES = ("application/", "image/")


def _title_words(key: str) -> str:
    words = key.replace("_", " ").split()
    if not words:
        return key
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def _is_boolean(value: str) -> Optional[bool]:
    token = value.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    return None


class RecordInterpreter:
    """Categorizes TXT record keys and renders their values for people.

    The flag table decoding hex bitmask values is configurable because bit
    meanings are service specific.
    """

    def __init__(self, flag_labels: Optional[Mapping[int, str]] = None, flag_keys: Optional[Iterable[str]] = None):
        self.flag_labels: Dict[int, str] = dict(DEFAULT_FLAG_LABELS if flag_labels is None else flag_labels)
        self.flag_keys = frozenset(k.lower() for k in (flag_keys if flag_keys is not None else ("sf", "flags")))

    @classmethod
    def from_config(cls, config: InterpreterConfig) -> "RecordInterpreter":
        return cls(flag_labels=config.flag_labels, flag_keys=config.flag_keys)

    def categorize(self, key: str) -> RecordCategory:
        return _KEY_CATEGORY.get(key.lower(), RecordCategory.OTHER)

    def readable_key(self, key: str) -> str:
        return READABLE_KEYS.get(key.lower()) or _title_words(key)

    def interpret_value(self, key: str, value: str) -> str:
        """Returns a readable rendering of `value`.

        Rules are tried in order: empty value, boolean token, enumerated
        code, hex flag mask, comma separated list, and finally the raw value.
        """
        lower_key = key.lower()

        if value == "":
            return EMPTY_VALUE

        readings = BOOLEAN_READINGS.get(lower_key)
        if readings is not None:
            flag = _is_boolean(value)
            if flag is not None:
                return readings[0] if flag else readings[1]

        table = ENUMERATED_VALUES.get(lower_key)
        if table is not None:
            lookup = value.strip().lower() if lower_key in _CASE_INSENSITIVE_VALUES else value.strip()
            return table.get(lookup, value)

        if lower_key in self.flag_keys:
            return self._decode_flags(value)

        tokens = LIST_VALUES.get(lower_key)
        if tokens is not None:
            return self._map_list(value, tokens)

        return value

    def interpret(self, key: str, value: str) -> Tuple[str, str]:
        return self.readable_key(key), self.interpret_value(key, value)

    def describe(self, metadata: Mapping[str, str]) -> Dict[RecordCategory, List[Tuple[str, str, str]]]:
        """Groups records by category in `RecordCategory` order.

        Each entry is `(raw_key, readable_key, readable_value)`; within a group
        keys are sorted case-insensitively. Empty groups are left out.
        """
        groups: Dict[RecordCategory, List[Tuple[str, str, str]]] = {}
        for raw_key in sorted(metadata, key=str.lower):
            category = self.categorize(raw_key)
            readable_key, readable_value = self.interpret(raw_key, metadata[raw_key])
            groups.setdefault(category, []).append((raw_key, readable_key, readable_value))
        return {category: groups[category] for category in RecordCategory if category in groups}

    def _decode_flags(self, value: str) -> str:
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            mask = int(text, 16)
        except ValueError:
            return value
        labels = [label for bit, label in sorted(self.flag_labels.items()) if mask & (1 << bit)]
        if not labels:
            return value
        return f"{value} ({', '.join(labels)})"

    @staticmethod
    def _map_list(value: str, tokens: Mapping[str, str]) -> str:
        readable = []
        for item in value.split(","):
            token = item.strip()
            if not token:
                continue
            bare = token
            for prefix in _MIME_PREFIXES:
                if bare.lower().startswith(prefix):
                    bare = bare[len(prefix):]
                    break
            readable.append(tokens.get(bare.upper(), token))
        return ", ".join(readable) if readable else value


_default = RecordInterpreter()


def categorize(key: str) -> RecordCategory:
    return _default.categorize(key)


def readable_key(key: str) -> str:
    return _default.readable_key(key)


def interpret_value(key: str, value: str) -> str:
    return _default.interpret_value(key, value)


def interpret(key: str, value: str) -> Tuple[str, str]:
    """Returns `(readable_key, readable_value)` using the default flag table."""
    return _default.interpret(key, value)


def describe_records(metadata: Mapping[str, str]) -> Dict[RecordCategory, List[Tuple[str, str, str]]]:
    return _default.describe(metadata)
