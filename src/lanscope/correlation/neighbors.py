"""Neighbor (ARP) table providers used to map IP addresses to hardware addresses."""

import re
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple

import structlog

from ..config import CorrelationConfig
from ..exceptions import NeighborTableError

logger = structlog.get_logger(__name__)

NeighborEntry = Tuple[str, str]

# BSD/macOS: "? (192.168.1.1) at 3c:52:82:aa:bb:cc on en0 ifscope [ethernet]"
# Linux net-tools: "? (192.168.1.1) at 3c:52:82:aa:bb:cc [ether] on eth0"
_ARP_LINE = re.compile(r"\((?P<ip>[0-9a-fA-F:.%]+)\)\s+at\s+(?P<mac>\S+)")
_MAC = re.compile(r"^[0-9a-fA-F]{1,2}([:-][0-9a-fA-F]{1,2}){5}$")
_ZERO_MAC = "00:00:00:00:00:00"


class NeighborTableProvider(Protocol):
    def snapshot(self) -> List[NeighborEntry]:
        """Returns the current (address, hardware address) pairs."""
        ...


def format_mac(raw: str) -> Optional[str]:
    """Zero-pads each octet and lower-cases: '0:1b:63:8:45:e6' -> '00:1b:63:08:45:e6'.

    Returns None for anything that is not a six-octet hardware address.
    """
    if not _MAC.match(raw):
        return None
    octets = re.split(r"[:-]", raw)
    return ":".join(octet.zfill(2) for octet in octets).lower()


def parse_arp_output(output: str) -> List[NeighborEntry]:
    """Parses `arp -an` output, skipping incomplete entries."""
    entries: List[NeighborEntry] = []
    for line in output.splitlines():
        match = _ARP_LINE.search(line)
        if not match:
            continue
        mac = format_mac(match.group("mac"))
        if mac is None or mac == _ZERO_MAC:
            continue
        entries.append((match.group("ip"), mac))
    return entries


def parse_proc_arp(content: str) -> List[NeighborEntry]:
    """Parses /proc/net/arp (header line, then IP, HW type, flags, HW address, mask, device)."""
    entries: List[NeighborEntry] = []
    for line in content.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        ip, flags, raw_mac = parts[0], parts[2], parts[3]
        if flags == "0x0":  # incomplete
            continue
        mac = format_mac(raw_mac)
        if mac is None or mac == _ZERO_MAC:
            continue
        entries.append((ip, mac))
    return entries


class ArpTableProvider:
    """Reads the operating system's neighbor table.

    Prefers the kernel table file when it exists (Linux) and falls back to
    running the configured `arp` command.
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        self.config = config or CorrelationConfig()
        self.logger = logger.bind(provider="ArpTableProvider")

    def snapshot(self) -> List[NeighborEntry]:
        proc_path = Path(self.config.proc_arp_path)
        if proc_path.exists():
            try:
                entries = parse_proc_arp(proc_path.read_text())
                self.logger.debug("Read kernel ARP table", path=str(proc_path), entries=len(entries))
                return entries
            except OSError as e:
                self.logger.debug("Kernel ARP table unreadable, falling back to command", path=str(proc_path), error=str(e))
        return self._run_command()

    def _run_command(self) -> List[NeighborEntry]:
        command = list(self.config.neighbor_command)
        try:
            output = subprocess.check_output(
                command,
                universal_newlines=True,
                stderr=subprocess.DEVNULL,
                timeout=self.config.command_timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise NeighborTableError(f"Neighbor table command {command!r} failed: {e}") from e
        entries = parse_arp_output(output)
        self.logger.debug("Parsed ARP command output", command=command, entries=len(entries))
        return entries


class StaticNeighborTable:
    """Fixed in-memory neighbor table."""

    def __init__(self, entries: Iterable[NeighborEntry] = ()):
        self.entries: List[NeighborEntry] = list(entries)
        self.calls = 0

    def snapshot(self) -> List[NeighborEntry]:
        self.calls += 1
        return list(self.entries)
