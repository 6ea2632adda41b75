"""
Tests for the infinite-scroll discoverer.
Covers: stagnation exit, iteration cap, end-of-list marker, missing container,
style-based container fallback, identifier harvest.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from discovery.scroller import InfiniteScrollDiscoverer
from settings.loader import ScrollConfig
from stealth.behavior import HumanBehavior
from tests.fakes import FakeElement, FakePage, FakeScrollContainer

PLACE = "https://www.google.com/maps/place/"


def _discoverer(settings=None, load_more=()):
    return InfiniteScrollDiscoverer(
        container_selectors=['div[role="feed"]'],
        is_item_url=lambda href: href.startswith(PLACE),
        behavior=HumanBehavior(speed_factor=0),
        settings=settings,
        load_more_selectors=load_more,
    )


@pytest.mark.anyio
async def test_stagnation_exit_after_growth_stops():
    container = FakeScrollContainer(growths=3)
    result = await _discoverer().scroll_to_end(FakePage(), container)
    assert result.stop_reason == "stagnation"
    assert result.iterations == 3 + 5


@pytest.mark.anyio
async def test_never_growing_container_stops_at_threshold():
    result = await _discoverer().scroll_to_end(FakePage(), FakeScrollContainer(growths=0))
    assert result.iterations == 5


@pytest.mark.anyio
async def test_iteration_cap_bounds_endless_feed():
    settings = ScrollConfig(max_iterations=12)
    result = await _discoverer(settings).scroll_to_end(FakePage(), FakeScrollContainer(growths=10_000))
    assert result.iterations == 12
    assert result.stop_reason == "max_iterations"


@pytest.mark.anyio
async def test_scroll_deltas_alternate_large_and_small():
    container = FakeScrollContainer(growths=100)
    await _discoverer(ScrollConfig(max_iterations=6)).scroll_to_end(FakePage(), container)
    assert container.scrolls == [1000, 300, 300, 300, 300, 1000]


@pytest.mark.anyio
async def test_end_marker_stops_immediately():
    page = FakePage(body_text="Results ... You've reached the end of the list.")
    result = await _discoverer().scroll_to_end(page, FakeScrollContainer(growths=100))
    assert result.stop_reason == "end_marker"
    assert result.iterations == 1


@pytest.mark.anyio
async def test_load_more_clicked_on_cadence():
    button = FakeElement(text="Show more results")
    page = FakePage(all_selectors={"button.more": [button]})
    await _discoverer(ScrollConfig(max_iterations=10), load_more=["button.more"]).scroll_to_end(
        page, FakeScrollContainer(growths=100)
    )
    assert button.clicks == 1


@pytest.mark.anyio
async def test_style_based_container_fallback():
    flat = FakeElement(scrollable=False)
    tall = FakeElement(scrollable=True)
    page = FakePage(all_selectors={'div[style*="overflow"]': [flat, tall]})
    assert await _discoverer().find_container(page) is tall


@pytest.mark.anyio
async def test_harvest_error_propagates():
    page = FakePage(hrefs=RuntimeError("context destroyed"))
    with pytest.raises(RuntimeError):
        await _discoverer().collect_identifiers(page)
