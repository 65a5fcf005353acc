"""
Offline OUI (organizationally unique identifier) to vendor lookup.

The OUI is the first three octets of a hardware address; keys below are those
six hex characters, uppercase, without separators.
"""
from typing import Optional

OUI_VENDORS: dict[str, str] = {
    # Apple
    "0016CB": "Apple",
    "001451": "Apple",
    "001CB3": "Apple",
    "001B63": "Apple",
    "002332": "Apple",
    "002436": "Apple",
    "002500": "Apple",
    "00254B": "Apple",
    "3451C9": "Apple",
    "7C6D62": "Apple",
    "A4C361": "Apple",
    "B853AC": "Apple",
    "BCEC5D": "Apple",
    "F0DCE2": "Apple",

    # Networking equipment and single-board computers
    "B827EB": "Raspberry Pi Foundation",
    "DCA632": "Raspberry Pi Foundation",
    "E45F01": "Raspberry Pi Foundation",
    "F4F5E8": "Ubiquiti",
    "FC9FB6": "Ubiquiti",
    "80EA96": "Ubiquiti",
    "F0D1A9": "Cisco",
    "001E14": "Cisco",
    "0019E8": "Cisco",
    "D4E8B2": "Netgear",
    "A0040A": "Netgear",
    "10DA43": "TP-Link",
    "50C7BF": "TP-Link",

    # Printers
    "3C5A37": "Hewlett Packard",
    "A8667F": "Hewlett Packard",
    "00236C": "Canon",
    "002583": "Brother",
    "008004": "Epson",

    # Other
    "983B16": "Intel",
    "000C29": "VMware",
    "0050F2": "Microsoft",
    "00155D": "Microsoft",
    "18B169": "Synology",
    "001132": "Synology",
}

_SEPARATORS = (":", "-", ".", " ")


def normalize_mac(mac: str) -> str:
    """Strips separators and uppercases: 'aa:bb:cc:dd:ee:ff' -> 'AABBCCDDEEFF'."""
    hex_digits = mac.upper()
    for sep in _SEPARATORS:
        hex_digits = hex_digits.replace(sep, "")
    return hex_digits


def oui_prefix(mac: str) -> Optional[str]:
    hex_digits = normalize_mac(mac)
    if len(hex_digits) < 6:
        return None
    return hex_digits[:6]


def vendor_for_mac(mac: str | None) -> Optional[str]:
    """Vendor name for a hardware address, or None when the prefix is unknown."""
    if not mac:
        return None
    prefix = oui_prefix(mac)
    if prefix is None:
        return None
    return OUI_VENDORS.get(prefix)
