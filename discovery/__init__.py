"""
MAPLEAD — Discovery Package
Turns a rendered search page into the list of listing URLs it exposes.
"""
from .scroller import InfiniteScrollDiscoverer, DiscoveryResult, END_OF_LIST_MARKERS

__all__ = ["InfiniteScrollDiscoverer", "DiscoveryResult", "END_OF_LIST_MARKERS"]
