"""
Tests for the Google Maps adapter's search and detail paths.
Covers: retry budget, exhausted records, diagnostics, field fallback,
search page failures.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters import BusinessListing, DiscoveryError, GoogleMapsAdapter
from adapters.retry import RetryPolicy
from settings.loader import MapsCrawlConfig
from stealth.behavior import HumanBehavior
from tests.fakes import FakeContext, FakeElement, FakePage

PLACE_URL = "https://www.google.com/maps/place/Muebles+Garcia/@39.86,-4.02"


def _adapter(tmp_path, **overrides):
    config = MapsCrawlConfig(screenshot_dir=str(tmp_path / "shots"), **overrides)
    return GoogleMapsAdapter(config, HumanBehavior(speed_factor=0))


def _good_page():
    return FakePage(
        ready={"h1": 0.0},
        selectors={
            "h1": FakeElement(text="Muebles García"),
            'button[jsaction*="category"]': FakeElement(text="Furniture store"),
            'button[data-tooltip="Copy address"]': FakeElement(text="Calle Comercio 12,\n45001 Toledo"),
            'a[aria-label*="website"]': FakeElement(attrs={"href": "https://mueblesgarcia.es/"}),
            'button[data-tooltip="Copy phone number"]': FakeElement(text="925 21 00 00"),
        },
    )


# ──────────────────────────────────────────────────
#  fetch_listing
# ──────────────────────────────────────────────────

@pytest.mark.anyio
async def test_successful_fetch_uses_fallbacks(tmp_path):
    adapter = _adapter(tmp_path)
    context = FakeContext(_good_page)
    listing = await adapter.fetch_listing(context, PLACE_URL, index=1, tag="0_0")

    assert listing.name == "Muebles García"
    assert listing.category == "Furniture store"
    assert listing.address == "Calle Comercio 12, 45001 Toledo"
    assert listing.website == "https://mueblesgarcia.es/"
    assert listing.phone == "925 21 00 00"
    assert listing.url == PLACE_URL
    assert listing.attempts == 1
    assert not listing.exhausted
    assert context.pages[0].closed


@pytest.mark.anyio
async def test_never_ready_exhausts_budget(tmp_path):
    adapter = _adapter(tmp_path, max_retries=2)
    context = FakeContext(lambda: FakePage())
    listing = await adapter.fetch_listing(context, PLACE_URL, index=4, tag="1_2")

    assert listing.exhausted
    assert listing.attempts == 3
    assert listing.url == PLACE_URL
    assert listing.name == listing.address == ""
    assert len(context.pages) == 3
    assert all(page.closed for page in context.pages)
    assert context.pages[-1].screenshots == [str(tmp_path / "shots" / "error_listing_1_2_4.png")]
    assert context.pages[0].screenshots == []


@pytest.mark.anyio
async def test_attempt_count_follows_retry_policy(tmp_path):
    adapter = _adapter(tmp_path)
    adapter.retry = RetryPolicy(max_retries=0, base_delay=0, jitter=0)
    context = FakeContext(lambda: FakePage())
    listing = await adapter.fetch_listing(context, PLACE_URL)
    assert listing.attempts == 1
    assert len(context.pages) == 1


@pytest.mark.anyio
async def test_empty_name_is_retried(tmp_path):
    pages = [FakePage(ready={"h1": 0.0}), _good_page()]
    context = FakeContext(lambda: pages.pop(0))
    listing = await _adapter(tmp_path).fetch_listing(context, PLACE_URL)
    assert listing.name == "Muebles García"
    assert listing.attempts == 2


@pytest.mark.anyio
async def test_navigation_error_is_retried(tmp_path):
    pages = [FakePage(goto_error=TimeoutError("30000ms")), _good_page()]
    context = FakeContext(lambda: pages.pop(0))
    adapter = _adapter(tmp_path)
    listing = await adapter.fetch_listing(context, PLACE_URL)
    assert listing.attempts == 2
    assert adapter.stats["listings_fetched"] == 1


class FlakyContext(FakeContext):
    """`new_page` raises for the first `failures` calls."""

    def __init__(self, page_factory, failures=1):
        super().__init__(page_factory)
        self.failures = failures

    async def new_page(self):
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("Target closed")
        return await super().new_page()


@pytest.mark.anyio
async def test_new_page_failure_is_retried(tmp_path):
    context = FlakyContext(_good_page)
    listing = await _adapter(tmp_path).fetch_listing(context, PLACE_URL)
    assert listing.name == "Muebles García"
    assert listing.attempts == 2
    assert len(context.pages) == 1


@pytest.mark.anyio
async def test_new_page_never_available_exhausts_budget(tmp_path):
    adapter = _adapter(tmp_path, max_retries=1)
    context = FlakyContext(_good_page, failures=5)
    listing = await adapter.fetch_listing(context, PLACE_URL, index=2, tag="0_0")
    assert listing.exhausted
    assert listing.url == PLACE_URL
    assert listing.attempts == 2
    assert context.pages == []
    assert adapter.stats["listings_exhausted"] == 1


def test_listing_row_order():
    listing = BusinessListing(url="u", name="n", category="c", address="a", website="w", phone="p")
    assert listing.to_row() == ["n", "c", "a", "w", "p", "u"]


# ──────────────────────────────────────────────────
#  Search page
# ──────────────────────────────────────────────────

@pytest.mark.anyio
async def test_open_search_navigation_failure(tmp_path):
    page = FakePage(goto_error=RuntimeError("net::ERR_TIMED_OUT"))
    with pytest.raises(DiscoveryError):
        await _adapter(tmp_path).open_search(page, "https://www.google.com/maps/search/x", "toledo_q0")


@pytest.mark.anyio
async def test_open_search_never_ready_saves_debug_screenshot(tmp_path):
    page = FakePage()
    with pytest.raises(DiscoveryError):
        await _adapter(tmp_path).open_search(page, "https://www.google.com/maps/search/x", "toledo_q0")
    assert page.screenshots == [str(tmp_path / "shots" / "debug_screenshot_toledo_q0.png")]


@pytest.mark.anyio
async def test_open_search_accepts_consent(tmp_path):
    consent = FakeElement(text="Accept all")
    page = FakePage(ready={'div[role="main"]': 0.0}, selectors={'button:has-text("Accept all")': consent})
    await _adapter(tmp_path).open_search(page, "https://www.google.com/maps/search/x", "toledo_q0")
    assert consent.clicks == 1


@pytest.mark.anyio
async def test_discover_without_container_snapshots_and_harvests(tmp_path):
    other = "https://www.google.com/maps/place/Tapiceria+Ruiz"
    page = FakePage(hrefs=[PLACE_URL, "https://www.google.com/maps/search/muebles", other, PLACE_URL])
    result = await _adapter(tmp_path).discover(page, "toledo_q1")
    assert result.container_found is False
    assert result.iterations == 0
    assert result.urls == [PLACE_URL, other]
    assert page.screenshots == [str(tmp_path / "shots" / "scrollable_debug_toledo_q1.png")]


@pytest.mark.anyio
async def test_discover_harvest_failure_raises(tmp_path):
    page = FakePage(hrefs=RuntimeError("detached"))
    with pytest.raises(DiscoveryError):
        await _adapter(tmp_path).discover(page, "toledo_q1")
    assert str(tmp_path / "shots" / "urls_debug_toledo_q1.png") in page.screenshots
