"""Lanscope - discovers devices advertised over mDNS/DNS-SD and classifies them.

The package reconciles asynchronous browse/resolve events into a device
registry, correlates addresses to hardware addresses and vendors, and turns
raw advertisements into a readable display name and icon.
"""

__version__ = "0.1.0"

from .config import Config

__all__ = ["Config"]
