"""
MAPLEAD — Base Maps Adapter
Abstract base class that every map/search provider adapter extends.
Handles the provider-independent work: opening a search page, draining its
results feed, and fetching one listing's details with retries.
Subclasses only supply locator lists and the item URL shape.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from adapters.retry import RetryPolicy
from adapters.selectors import clean_field, extract_first, query_first, wait_for_any
from discovery.scroller import InfiniteScrollDiscoverer, DiscoveryResult
from settings.loader import MapsCrawlConfig

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────
#  Errors
# ──────────────────────────────────────────────────

class PageNotReady(Exception):
    """Navigation failed or no readiness signal appeared in time."""


class ListingIncomplete(Exception):
    """The page loaded but the mandatory name field came back empty."""


class DiscoveryError(Exception):
    """A search page could not be opened; the query is skipped."""


# ──────────────────────────────────────────────────
#  Data Models
# ──────────────────────────────────────────────────

LISTING_FIELDS = ("name", "category", "address", "website", "phone")


@dataclass
class BusinessListing:
    """One business detail page, flattened to CSV-safe strings."""
    url: str
    name: str = ""
    category: str = ""
    address: str = ""
    website: str = ""
    phone: str = ""
    attempts: int = 0
    exhausted: bool = False

    @property
    def is_valid(self) -> bool:
        return bool(self.name.strip())

    def to_dict(self) -> dict:
        return asdict(self)

    def to_row(self) -> List[str]:
        """Cells in Name,Category,Address,Website,Phone,Url order."""
        return [self.name, self.category, self.address, self.website, self.phone, self.url]


# ──────────────────────────────────────────────────
#  Base Adapter
# ──────────────────────────────────────────────────

class BaseMapsAdapter(ABC):
    """
    Provider-independent listing pipeline pieces.

    Selector keys used by the base class:
      search_ready, detail_ready, scroll_containers, load_more, consent,
      and one list per entry in LISTING_FIELDS.
    """

    # Fields read from an attribute rather than rendered text
    FIELD_ATTRIBUTES: Dict[str, str] = {"website": "href"}

    def __init__(self, config: MapsCrawlConfig, behavior, retry: Optional[RetryPolicy] = None):
        self.config = config
        self.behavior = behavior
        self.retry = retry or RetryPolicy(
            max_retries=config.max_retries,
            base_delay=config.retry_base_s,
            jitter=config.retry_jitter_s,
        )
        self.selectors = {**self.default_selectors(), **(config.selectors or {})}
        self.screenshot_dir = Path(config.screenshot_dir)
        self._stats = {
            "listings_fetched": 0,
            "listings_exhausted": 0,
            "attempts": 0,
            "screenshots": 0,
        }

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def default_selectors(self) -> Dict[str, List[str]]:
        """Ordered candidate locators per logical key."""

    @abstractmethod
    def is_item_url(self, href: str) -> bool:
        """True if `href` points at a single listing's detail page."""

    # ── Diagnostics ──────────────────────────────

    async def snapshot(self, page, filename: str) -> Optional[Path]:
        """Save a screenshot of the current page state; never raises."""
        try:
            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            path = self.screenshot_dir / filename
            await page.screenshot(path=str(path))
            self._stats["screenshots"] += 1
            logger.info(f"  📸  Saved debug screenshot to {path}")
            return path
        except Exception as e:
            logger.error(f"  ❌  Error taking screenshot: {e}")
            return None

    @staticmethod
    async def _close(page):
        try:
            await page.close()
        except Exception as e:
            logger.debug(f"  Error closing page: {e}")

    # ── Search page ─────────────────────────────

    async def dismiss_consent(self, page):
        """Click through a cookie/consent wall if one is showing."""
        try:
            _, button = await query_first(page, self.selectors.get("consent", []))
            if button:
                await button.click()
                logger.info("  🍪  Accepted consent dialog")
                await self.behavior.settle(page, 1000)
        except Exception as e:
            logger.debug(f"  No consent dialog handled: {e}")

    async def open_search(self, page, url: str, label: str = ""):
        """Navigate to a search URL and wait until the results pane renders."""
        try:
            await page.goto(url, timeout=self.config.search_timeout_ms, wait_until="networkidle")
        except Exception as e:
            raise DiscoveryError(f"Error loading page {url}: {e}") from e

        await self.dismiss_consent(page)

        try:
            await wait_for_any(page, self.selectors["search_ready"], self.config.ready_timeout_ms)
        except Exception as e:
            await self.snapshot(page, f"debug_screenshot_{label}.png")
            raise DiscoveryError(f"Selector wait error on {url}: {e}") from e

        await self.behavior.settle(page, 3000)

    async def discover(self, page, label: str = "") -> DiscoveryResult:
        """Drain the results feed on an opened search page."""
        discoverer = InfiniteScrollDiscoverer(
            container_selectors=self.selectors["scroll_containers"],
            is_item_url=self.is_item_url,
            behavior=self.behavior,
            settings=self.config.scroll,
            load_more_selectors=self.selectors.get("load_more", []),
        )
        container = await discoverer.find_container(page)
        if container:
            result = await discoverer.scroll_to_end(page, container)
        else:
            logger.warning("  ⚠️  Could not find any scrollable element, extracting visible results")
            await self.snapshot(page, f"scrollable_debug_{label}.png")
            result = DiscoveryResult()

        try:
            result.urls = await discoverer.collect_identifiers(page)
        except Exception as e:
            await self.snapshot(page, f"urls_debug_{label}.png")
            raise DiscoveryError(f"Error extracting URLs: {e}") from e

        logger.info(
            f"  🔍  Found {len(result.urls)} raw listings "
            f"({result.iterations} scrolls, stop: {result.stop_reason})"
        )
        return result

    # ── Detail page ─────────────────────────────

    async def extract_fields(self, page) -> Dict[str, str]:
        """Run the fallback chain for every listing field independently."""
        fields = {}
        for field_name in LISTING_FIELDS:
            fields[field_name] = await extract_first(
                page,
                self.selectors.get(field_name, []),
                attribute=self.FIELD_ATTRIBUTES.get(field_name),
            )
        return fields

    async def _load_listing(self, page, url: str) -> BusinessListing:
        try:
            await page.goto(url, timeout=self.config.detail_timeout_ms, wait_until="domcontentloaded")
        except Exception as e:
            raise PageNotReady(f"navigation failed: {e}") from e

        try:
            await wait_for_any(page, self.selectors["detail_ready"], self.config.detail_ready_timeout_ms)
        except Exception as e:
            raise PageNotReady(f"page content not loaded properly: {e}") from e

        await self.behavior.settle(page, 1500)
        fields = await self.extract_fields(page)
        return BusinessListing(url=clean_field(url), **fields)

    async def fetch_listing(self, context, url: str, index: int = 0, tag: str = "") -> BusinessListing:
        """
        Fetch one listing in a fresh page, retrying per `self.retry`.

        Navigating → WaitingReady → Extracting; a failed wait or an empty
        name is retryable. When the budget runs out the returned listing
        carries only its URL and `exhausted=True`.
        """
        attempt = 0
        while True:
            attempt += 1
            self._stats["attempts"] += 1
            page = None
            try:
                if attempt > 1:
                    logger.info(f"  🔁  Retry attempt {attempt - 1} for {url}")
                page = await context.new_page()
                listing = await self._load_listing(page, url)
                listing.attempts = attempt
                if not listing.is_valid:
                    raise ListingIncomplete("Failed to extract business name")
                self._stats["listings_fetched"] += 1
                return listing
            except Exception as e:
                logger.warning(f"  ⚠️  Error scraping {url} (attempt {attempt}): {e}")
                if not self.retry.should_retry(attempt):
                    if page is not None:
                        await self.snapshot(page, f"error_listing_{tag}_{index}.png")
                    self._stats["listings_exhausted"] += 1
                    return BusinessListing(url=clean_field(url), attempts=attempt, exhausted=True)
            finally:
                if page is not None:
                    await self._close(page)

            delay = await self.retry.backoff(self.behavior)
            logger.debug(f"  Waited {delay:.1f}s before retry")

    @property
    def stats(self) -> dict:
        return dict(self._stats)
