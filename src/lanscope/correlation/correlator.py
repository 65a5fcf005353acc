"""
Correlates resolved IP addresses with hardware addresses and vendors.
"""
import asyncio
from typing import Dict, Iterable, NamedTuple, Optional

import structlog

from ..exceptions import NeighborTableError
from .neighbors import NeighborTableProvider
from .oui import vendor_for_mac

logger = structlog.get_logger(__name__)


class Correlation(NamedTuple):
    hardware_address: str
    vendor_name: Optional[str]


def _lookup_key(address: str) -> str:
    # Neighbor tables list addresses without an IPv6 zone qualifier.
    return address.split("%", 1)[0].lower()


class AddressCorrelator:
    """
    Maps addresses to (hardware address, vendor) through a session cache.

    The cache is refreshed on demand only: a full neighbor-table snapshot is
    requested when none of the candidate addresses is cached. Provider
    failures yield no result; the next correlation attempt tries again.
    """

    def __init__(self, provider: NeighborTableProvider):
        self.provider = provider
        self.logger = logger.bind(service="AddressCorrelator")
        self._cache: Dict[str, str] = {}
        self._refresh_lock = asyncio.Lock()

    @property
    def cache(self) -> Dict[str, str]:
        return dict(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def lookup(self, addresses: Iterable[str]) -> Optional[Correlation]:
        """Answers from the cache only."""
        for address in addresses:
            mac = self._cache.get(_lookup_key(address))
            if mac:
                return Correlation(mac, vendor_for_mac(mac))
        return None

    async def correlate(self, addresses: Iterable[str]) -> Optional[Correlation]:
        candidates = [a for a in addresses if a]
        if not candidates:
            return None

        hit = self.lookup(candidates)
        if hit is not None:
            return hit

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            hit = self.lookup(candidates)
            if hit is not None:
                return hit
            if not await self._refresh():
                return None

        hit = self.lookup(candidates)
        if hit is None:
            self.logger.debug("No neighbor table entry for addresses", addresses=candidates)
        return hit

    async def _refresh(self) -> bool:
        try:
            entries = await asyncio.to_thread(self.provider.snapshot)
        except NeighborTableError as e:
            self.logger.debug("Neighbor table unavailable", error=str(e))
            return False
        except Exception as e:
            self.logger.warning("Neighbor table provider raised unexpectedly", error=str(e))
            return False

        if not entries:
            self.logger.debug("Neighbor table snapshot was empty")
            return False

        self._cache = {_lookup_key(ip): mac for ip, mac in entries}
        self.logger.debug("Neighbor table cache refreshed", entries=len(self._cache))
        return True
