"""
Keyword lists used by the classification rules.

All matching is case-insensitive substring matching. The lists overlap and
produce occasional false positives ("cam" also matches "camper"); that is
accepted.
"""
from typing import Iterable, Mapping, Optional

PRINTER_TYPES = ("_ipp._tcp", "_ipps._tcp", "_printer._tcp", "_pdl-datastream._tcp")
STREAMING_TYPES = ("_airplay._tcp", "_raop._tcp")
WORKSTATION_TYPES = ("_workstation._tcp",)
FILE_SHARING_TYPES = ("_smb._tcp", "_afpovertcp._tcp", "_nfs._tcp")
REMOTE_SHELL_TYPES = ("_ssh._tcp", "_sftp-ssh._tcp")
SCREEN_SHARING_TYPES = ("_rfb._tcp",)
WEB_TYPES = ("_http._tcp", "_https._tcp")
HOME_AUTOMATION_TYPES = ("_hap._tcp",)
MEDIA_SERVER_TYPES = ("_plex._tcp", "_plexmediasvr._tcp")

# keyword -> label used when the vendor itself is unknown
DESKTOP_VENDOR_HINTS = {"apple": "Apple", "mac": "Mac"}
PRINTER_VENDOR_HINTS = {
    "hewlett": "Hewlett Packard",
    "hp": "HP",
    "canon": "Canon",
    "brother": "Brother",
    "epson": "Epson",
}
NETWORKING_VENDOR_HINTS = {
    "cisco": "Cisco",
    "ubiquiti": "Ubiquiti",
    "mikrotik": "MikroTik",
    "tp-link": "TP-Link",
    "netgear": "Netgear",
}
STORAGE_VENDOR_HINTS = {
    "synology": "Synology",
    "qnap": "QNAP",
    "western digital": "Western Digital",
}
CAMERA_VENDOR_HINTS = {
    "hikvision": "Hikvision",
    "arlo": "Arlo",
    "wyze": "Wyze",
    "nest": "Nest",
}
CAMERA_NAME_HINTS = ("cam",)
ROUTER_NAME_HINTS = ("router",)
TV_HINTS = ("tv",)


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def match_hint(hints: Mapping[str, str], *texts: Optional[str]) -> Optional[str]:
    """Label of the first hint keyword found in any of `texts`, else None."""
    for text in texts:
        if not text:
            continue
        lowered = text.lower()
        for keyword, label in hints.items():
            if keyword in lowered:
                return label
    return None
