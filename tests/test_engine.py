"""
Tests for the maps crawl engine wiring.
Covers: cross-query de-duplication, per-query limit, query failure isolation,
location filtering, CLI overrides.
"""

import csv
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engine import MapsCrawlEngine, build_config, parse_args
from output.csv_writer import CSVWriter
from settings.loader import LocationConfig, MapsCrawlConfig
from stealth.behavior import HumanBehavior
from tests.fakes import FakeContext, FakeElement, FakePage, FakeScrollContainer

PLACE = "https://www.google.com/maps/place/"
SEARCH_1 = "https://www.google.com/maps/search/muebles+toledo"
SEARCH_2 = "https://www.google.com/maps/search/decoracion+toledo"


class MapsPage(FakePage):
    """Search pages expose a feed and links; place pages expose a name derived from the URL."""

    RESULTS = {
        SEARCH_1: [PLACE + "uno", PLACE + "dos"],
        SEARCH_2: [PLACE + "dos", PLACE + "tres"],
    }

    def __init__(self, broken=()):
        super().__init__(ready={'div[role="main"]': 0.0, "h1": 0.0})
        self.broken = broken

    async def goto(self, url, timeout=None, wait_until=None):
        self.visited.append(url)
        if url in self.broken:
            raise TimeoutError("90000ms exceeded")
        self.url = url
        self.hrefs = self.RESULTS.get(url, [])

    async def query_selector(self, selector):
        if selector == 'div[role="feed"]' and self.url in self.RESULTS:
            return FakeScrollContainer(growths=0)
        if selector == "h1" and self.url.startswith(PLACE):
            return FakeElement(text=self.url.rsplit("/", 1)[-1].title())
        return None


def _engine(tmp_path, **overrides):
    config = MapsCrawlConfig(
        data_dir=str(tmp_path),
        screenshot_dir=str(tmp_path / "shots"),
        locations=[LocationConfig(name="toledo", queries=[SEARCH_1, SEARCH_2])],
        **overrides,
    )
    engine = MapsCrawlEngine(
        config,
        csv_writer=CSVWriter(str(tmp_path), timestamp="t"),
        behavior=HumanBehavior(speed_factor=0),
    )
    engine.combined_sink = engine.csv_writer.combined_sink(config.base_name)
    return engine


def _names(path):
    with open(path, newline="", encoding="utf-8") as f:
        return [row[0] for row in list(csv.reader(f))[1:]]


@pytest.mark.anyio
async def test_location_dedupes_across_queries(tmp_path):
    engine = _engine(tmp_path)
    context = FakeContext(MapsPage)
    location = engine.config.locations[0]
    saved = await engine.crawl_location(context, location, 0, 1)

    assert saved == 3
    assert context.cookie_clears == 2
    assert _names(tmp_path / "home_dec_toledo_t.csv") == ["Uno", "Dos", "Tres"]
    combined = tmp_path / "home_dec_all_locations_t.csv"
    with open(combined, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "Location"
    assert {r[0] for r in rows[1:]} == {"toledo"}


@pytest.mark.anyio
async def test_max_listings_applies_per_query(tmp_path):
    engine = _engine(tmp_path, max_listings=1)
    await engine.crawl_location(FakeContext(MapsPage), engine.config.locations[0], 0, 1)
    assert sorted(_names(tmp_path / "home_dec_toledo_t.csv")) == ["Dos", "Uno"]


@pytest.mark.anyio
async def test_failed_query_is_skipped(tmp_path):
    engine = _engine(tmp_path)
    context = FakeContext(lambda: MapsPage(broken={SEARCH_1}))
    saved = await engine.crawl_location(context, engine.config.locations[0], 0, 1)

    assert saved == 2
    assert engine.stats["queries_failed"] == 1
    assert sorted(_names(tmp_path / "home_dec_toledo_t.csv")) == ["Dos", "Tres"]


class ClosedTargetPage(MapsPage):
    async def add_init_script(self, script):
        raise RuntimeError("Target page, context or browser has been closed")


@pytest.mark.anyio
async def test_unexpected_query_error_does_not_abort_location(tmp_path):
    engine = _engine(tmp_path)
    pages = [ClosedTargetPage()]
    context = FakeContext(lambda: pages.pop(0) if pages else MapsPage())
    saved = await engine.crawl_location(context, engine.config.locations[0], 0, 1)

    assert saved == 2
    assert engine.stats["queries"] == 2
    assert engine.stats["queries_failed"] == 1
    assert engine.stats["locations"] == 1
    assert context.pages[0].closed
    assert sorted(_names(tmp_path / "home_dec_toledo_t.csv")) == ["Dos", "Tres"]


def test_location_filter(tmp_path):
    engine = _engine(tmp_path)
    assert [loc.name for loc in engine.locations()] == ["toledo"]
    engine.location_filter = "madrid"
    with pytest.raises(ValueError):
        engine.locations()


def test_disabled_locations_skipped(tmp_path):
    engine = _engine(tmp_path)
    engine.config.locations.append(LocationConfig(name="avila", queries=[SEARCH_1], enabled=False))
    assert [loc.name for loc in engine.locations()] == ["toledo"]


def test_unknown_adapter_rejected(tmp_path):
    with pytest.raises(ValueError):
        MapsCrawlEngine(MapsCrawlConfig(adapter="bing_maps", data_dir=str(tmp_path)))


def test_cli_overrides(tmp_path):
    config_path = tmp_path / "maps.yaml"
    config_path.write_text("defaults:\n  batch_size: 10\nlocations:\n  toledo:\n    queries: [q]\n")
    args = parse_args(["--config", str(config_path), "--batch-size", "4", "--max-listings", "7", "--headed"])
    config = build_config(args)
    assert config.batch_size == 4
    assert config.max_listings == 7
    assert config.headless is False
