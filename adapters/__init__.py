"""MAPLEAD Adapters — provider-specific locators on a shared listing pipeline."""
from .base import (
    BaseMapsAdapter,
    BusinessListing,
    DiscoveryError,
    ListingIncomplete,
    PageNotReady,
)
from .google_maps import GoogleMapsAdapter

ADAPTER_MAP = {
    "google_maps": GoogleMapsAdapter,
    # Add new providers here as you build them
}

__all__ = [
    "ADAPTER_MAP",
    "BaseMapsAdapter",
    "BusinessListing",
    "DiscoveryError",
    "GoogleMapsAdapter",
    "ListingIncomplete",
    "PageNotReady",
]
