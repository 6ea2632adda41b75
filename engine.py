"""
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║   🗺️  MAPLEAD ENGINE — Business Listing Crawler              ║
║                                                              ║
║   Config-driven maps crawler: scroll every search feed,      ║
║   fetch each listing with retries, persist as you go.        ║
║                                                              ║
║   Usage:                                                     ║
║     python engine.py                        # All locations  ║
║     python engine.py --location toledo_spain                 ║
║     python engine.py --max-listings 20      # Quick sample   ║
║     python engine.py --headed               # Show browser   ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
"""

import asyncio
import argparse
import logging
import sys
import time
from datetime import datetime
from typing import List, Optional, Set

from dotenv import load_dotenv
from playwright.async_api import async_playwright

# ── Internal modules ──
from adapters import ADAPTER_MAP, DiscoveryError
from output.csv_writer import CSVWriter, IncrementalCSVSink, ListingSink
from scheduler import BatchScheduler
from settings.loader import CONFIG_DIR, LocationConfig, MapsCrawlConfig, load_maps_config
from stealth.behavior import HumanBehavior
from stealth.fingerprint import BROWSER_ARGS, FingerprintManager

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────
#  Engine
# ──────────────────────────────────────────────────

class MapsCrawlEngine:
    """
    Main orchestrator. Wires together:
    - Locations and search queries → Adapter (discovery + detail fetch)
    - Stealth layer (fingerprints, human pacing)
    - Batch scheduler → incremental CSV sinks
    """

    def __init__(
        self,
        config: MapsCrawlConfig,
        location: str = "",
        csv_writer: Optional[CSVWriter] = None,
        behavior: Optional[HumanBehavior] = None,
    ):
        adapter_class = ADAPTER_MAP.get(config.adapter)
        if not adapter_class:
            raise ValueError(f"No adapter found for '{config.adapter}'. Available: {', '.join(ADAPTER_MAP)}")

        self.config = config
        self.location_filter = location
        self.behavior = behavior or HumanBehavior(speed_factor=config.speed_factor)
        self.fingerprint_mgr = FingerprintManager()
        self.adapter = adapter_class(config, self.behavior)
        self.csv_writer = csv_writer or CSVWriter(config.data_dir)
        self.combined_sink: Optional[IncrementalCSVSink] = None
        self._stats = {
            "locations": 0,
            "queries": 0,
            "queries_failed": 0,
            "discovered": 0,
            "scheduled": 0,
            "persisted": 0,
            "gated": 0,
            "fetch_errors": 0,
        }

    def locations(self) -> List[LocationConfig]:
        """Enabled locations, narrowed to --location when given."""
        locations = [loc for loc in self.config.locations if loc.enabled]
        if self.location_filter:
            locations = [loc for loc in locations if loc.name == self.location_filter]
            if not locations:
                available = ", ".join(loc.name for loc in self.config.locations)
                raise ValueError(f"Location '{self.location_filter}' not found in config. Available: {available}")
        return locations

    # ── Per query ───────────────────────────────

    async def crawl_query(
        self,
        context,
        location: LocationConfig,
        location_index: int,
        query_index: int,
        search_url: str,
        seen: Set[str],
        sink: ListingSink,
    ) -> int:
        """Discover, de-duplicate against earlier queries, then fetch and persist. Returns rows saved."""
        label = f"{location.name}_q{query_index}"
        logger.info(f"\n  🔎  Query {query_index + 1}/{len(location.queries)} for {location.name}")
        logger.info(f"  🌐  {search_url}")

        await context.clear_cookies()
        page = await context.new_page()
        try:
            await self.fingerprint_mgr.apply_js_overrides(page)
            await self.adapter.open_search(page, search_url, label)
            result = await self.adapter.discover(page, label)
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"  Error closing search page: {e}")

        self._stats["discovered"] += len(result.urls)
        new_urls = [url for url in result.urls if url not in seen]
        logger.info(f"  🆕  {len(new_urls)} are new unique listings (not seen in previous queries)")

        if self.config.max_listings > 0 and len(new_urls) > self.config.max_listings:
            new_urls = new_urls[:self.config.max_listings]
            logger.info(f"  ✂️  Limited to first {len(new_urls)} listings")
        seen.update(new_urls)
        self._stats["scheduled"] += len(new_urls)

        tag = f"{location_index}_{query_index}"
        scheduler = BatchScheduler(
            fetch=lambda url, i: self.adapter.fetch_listing(context, url, i, tag=tag),
            behavior=self.behavior,
            batch_size=self.config.batch_size,
            gate=self.config.persist_gate,
            sink=sink,
            batch_delay_s=self.config.batch_delay_s,
            batch_jitter_s=self.config.batch_jitter_s,
        )
        saved = 0
        async for batch in scheduler.run(new_urls):
            saved += batch.persisted

        sched = scheduler.stats
        self._stats["persisted"] += sched["persisted"]
        self._stats["gated"] += sched["gated"]
        self._stats["fetch_errors"] += sched["errors"]
        logger.info(f"  ✅  Completed query {query_index + 1} for {location.name}, saved {saved} businesses")
        return saved

    # ── Per location ────────────────────────────

    async def crawl_location(self, context, location: LocationConfig, location_index: int, total: int) -> int:
        logger.info(f"\n  📍  [{location_index + 1}/{total}] Processing location: {location.name}")
        sink = self.csv_writer.location_sink(self.config.base_name, location.name, self.combined_sink)
        seen: Set[str] = set()
        saved = 0

        for query_index, search_url in enumerate(location.queries):
            self._stats["queries"] += 1
            try:
                saved += await self.crawl_query(
                    context, location, location_index, query_index, search_url, seen, sink
                )
            except DiscoveryError as e:
                self._stats["queries_failed"] += 1
                logger.error(f"  ❌  Skipping query {query_index + 1}: {e}")
            except Exception as e:
                self._stats["queries_failed"] += 1
                logger.error(f"  ❌  Script error for query {query_index + 1}: {e}", exc_info=True)

            if query_index < len(location.queries) - 1:
                delay = await self.behavior.pause(self.config.query_delay_s, self.config.query_jitter_s)
                logger.info(f"  ⏸️  Waited {delay:.1f}s before next query")

        self._stats["locations"] += 1
        logger.info(f"  🏁  Completed all queries for {location.name}, {len(seen)} unique businesses")
        return saved

    # ── Run ─────────────────────────────────────

    async def run(self, playwright):
        """Crawl every selected location in one browser session."""
        start_time = time.time()
        locations = self.locations()
        self._print_banner(locations)

        browser = await playwright.chromium.launch(headless=self.config.headless, args=BROWSER_ARGS)
        try:
            context = await browser.new_context(**self.fingerprint_mgr.generate())
            self.combined_sink = self.csv_writer.combined_sink(self.config.base_name)

            for location_index, location in enumerate(locations):
                await self.crawl_location(context, location, location_index, len(locations))
                if location_index < len(locations) - 1:
                    delay = await self.behavior.pause(self.config.location_delay_s, self.config.location_jitter_s)
                    logger.info(f"  ⏸️  Waited {delay:.1f}s before next location")
        finally:
            try:
                await browser.close()
            except Exception as e:
                logger.error(f"  ❌  Error closing browser: {e}")
            self._print_summary(time.time() - start_time)

    async def main(self):
        async with async_playwright() as p:
            await self.run(p)

    @property
    def stats(self) -> dict:
        return dict(self._stats)

    def _print_banner(self, locations: List[LocationConfig]):
        print(f"\n{'='*60}")
        print("  🗺️  MAPLEAD — Business Listing Crawler")
        print(f"{'='*60}")
        print(f"  ⏰  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  📍  Locations: {', '.join(loc.name for loc in locations) or 'NONE'}")
        print(f"  📦  Batch size: {self.config.batch_size}")
        limit = self.config.max_listings if self.config.max_listings > 0 else "no limit"
        print(f"  🎯  Max listings per query: {limit}")
        print(f"  🖥️  Headless: {'YES' if self.config.headless else 'NO'}")
        print()

    def _print_summary(self, elapsed: float):
        print(f"\n{'='*60}")
        print("  📊  CRAWL SUMMARY")
        print(f"{'='*60}")
        print(f"  ⏱️  Duration: {elapsed:.1f}s")
        print(f"  📍  Locations: {self._stats['locations']}")
        print(f"  🔎  Queries: {self._stats['queries']} ({self._stats['queries_failed']} failed)")
        print(f"  🔗  Listings discovered: {self._stats['discovered']} ({self._stats['scheduled']} fetched)")
        print(f"  💾  Rows saved: {self._stats['persisted']} ({self._stats['gated']} below content gate)")
        adapter_stats = self.adapter.stats
        print(f"  🔁  Fetch attempts: {adapter_stats['attempts']}, exhausted: {adapter_stats['listings_exhausted']}")
        if self.combined_sink is not None:
            sink_stats = self.combined_sink.stats
            print(f"  📝  Combined file: {sink_stats['rows_written']} written, {sink_stats['rows_failed']} failed")
        print(f"  🎭  Fingerprints used: {self.fingerprint_mgr.stats['total_fingerprints_generated']}")
        print()


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="🗺️ MAPLEAD — Business Listing Crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", type=str, default=str(CONFIG_DIR / "maps.yaml"),
        help="Path to the maps crawl YAML config",
    )
    parser.add_argument(
        "--location", type=str, default="",
        help="Crawl a single configured location only (e.g. toledo_spain)",
    )
    parser.add_argument(
        "--batch-size", type=int, default=None,
        help="Concurrent listing pages per batch (default from config: 10)",
    )
    parser.add_argument(
        "--max-listings", type=int, default=None,
        help="Max new listings per query, 0 = no limit",
    )
    parser.add_argument(
        "--headed", action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Debug logging with tracebacks",
    )
    return parser.parse_args(argv)


def build_config(args) -> MapsCrawlConfig:
    config = load_maps_config(args.config)
    if args.batch_size is not None:
        config.batch_size = args.batch_size
    if args.max_listings is not None:
        config.max_listings = args.max_listings
    if args.headed:
        config.headless = False
    config.validate()
    return config


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(message)s",
    )

    try:
        engine = MapsCrawlEngine(build_config(args), location=args.location)
        asyncio.run(engine.main())
    except Exception as e:
        logger.error(f"  ❌  Fatal error in main process: {e}", exc_info=args.verbose)
        sys.exit(1)


if __name__ == "__main__":
    main()
