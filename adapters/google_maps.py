"""
MAPLEAD — Google Maps Adapter
Locator lists for Google Maps search and place pages.
Google ships several layouts at once, so every list goes from most
specific to most generic.
"""

from typing import Dict, List

from adapters.base import BaseMapsAdapter


PLACE_URL_PREFIX = "https://www.google.com/maps/place/"


class GoogleMapsAdapter(BaseMapsAdapter):
    """Google Maps search results → place detail pages."""

    def default_selectors(self) -> Dict[str, List[str]]:
        return {
            "consent": ['button:has-text("Accept all")'],
            "search_ready": [
                '[jstcache="3"]',
                'div[role="main"]',
                'div[aria-label*="Results"]',
                'div.section-result-content',
            ],
            "scroll_containers": [
                'div[role="feed"]',
                'div[aria-label*="Results"] > div',
                'div.section-scrollbox',
                'div[jsaction*="scrollable"]',
            ],
            "load_more": [
                'button:has-text("Show more results")',
                'span:has-text("Show more")',
            ],
            "detail_ready": [
                '[jstcache="3"]',
                'h1',
                'div[role="main"]',
            ],
            "name": [
                'h1',
                'div[role="main"] h1',
                'div[jstcache] h1',
                'div.section-hero-header-title-title',
            ],
            "category": [
                'button[jsaction*="pane.rating.category"]',
                'button[jsaction*="category"]',
                'span[jsan*="category"]',
                'button[aria-label*="business"]',
                'div.section-result-description',
                'div[jstcache] div.fontBodyMedium span',
            ],
            "address": [
                'button[data-tooltip="Copy address"]',
                'button[aria-label*="address"]',
                'button[data-item-id*="address"]',
                'div.section-info-line[data-tooltip*="address"]',
            ],
            "website": [
                'a[data-tooltip="Open website"], a[data-tooltip="Open menu link"]',
                'a[aria-label*="website"]',
                'a[jsaction*="website"]',
                'div.section-info-line a[data-metrics-click*="website"]',
            ],
            "phone": [
                'button[data-tooltip="Copy phone number"]',
                'button[aria-label*="phone"]',
                'button[data-item-id*="phone"]',
                'div.section-info-line[data-tooltip*="phone"]',
            ],
        }

    def is_item_url(self, href: str) -> bool:
        return href.startswith(PLACE_URL_PREFIX)
