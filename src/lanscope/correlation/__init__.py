"""Address to hardware address correlation."""

from .correlator import AddressCorrelator, Correlation
from .neighbors import ArpTableProvider, NeighborTableProvider, StaticNeighborTable
from .oui import normalize_mac, vendor_for_mac

__all__ = [
    "AddressCorrelator",
    "ArpTableProvider",
    "Correlation",
    "NeighborTableProvider",
    "StaticNeighborTable",
    "normalize_mac",
    "vendor_for_mac",
]
