"""
Custom exceptions for Lanscope.
"""
from typing import Optional


class LanscopeError(Exception):
    """Base class for all Lanscope errors."""
    pass

class DiscoveryError(LanscopeError):
    """Raised when the discovery substrate cannot start a browse or a resolve."""
    def __init__(self, message: str, service_type: Optional[str] = None):
        super().__init__(message)
        self.service_type = service_type

class NeighborTableError(LanscopeError):
    """Raised by a neighbor-table provider that could not produce a snapshot.
    The correlator treats it as 'no data' and never propagates it."""
    pass

class CoordinatorStateError(LanscopeError):
    """Raised when the coordinator is used outside a running event loop."""
    pass
