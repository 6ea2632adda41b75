"""
MAPLEAD — Website Email Crawler
Second pass over a listings CSV: visit each business website, pull the
best contact emails, and write an enriched copy with an Emails column.

Usage:
    python website_crawl.py                          # config/websites.yaml
    python website_crawl.py --input shops.csv --limit 50
    python website_crawl.py --parallel 4 --keep-empty
"""

import asyncio
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from playwright.async_api import async_playwright

from enrichment.email_cache import DomainCache
from enrichment.site_scraper import NO_EMAILS, WebsiteEmailScraper
from enrichment.worker_pool import EmailWorkerPool
from output.csv_writer import CSVWriter
from settings.loader import CONFIG_DIR, EmailCrawlConfig, load_email_config
from sources.csv_input import EMAILS_COLUMN, find_website_column, headers_with_emails, load_website_table

logger = logging.getLogger(__name__)


def apply_results(
    headers: Sequence[str],
    rows: List[Dict[str, str]],
    results: Dict[str, str],
    limit: int = 0,
    remove_rows_without_emails: bool = True,
) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Merge resolved emails into the table.

    Rows past `limit` pass through untouched. Processed rows get an Emails
    cell ("NA" when the site had none or was never resolved) and are dropped
    on "NA" when `remove_rows_without_emails` is set.
    """
    website_col = find_website_column(headers)
    if limit > 0:
        processed, remaining = rows[:limit], rows[limit:]
    else:
        processed, remaining = rows, []

    for row in processed:
        website = row.get(website_col) or ""
        row[EMAILS_COLUMN] = results.get(website, NO_EMAILS) if website else NO_EMAILS

    kept = processed
    if remove_rows_without_emails:
        kept = [row for row in processed if row[EMAILS_COLUMN] and row[EMAILS_COLUMN] != NO_EMAILS]
        logger.info(f"  🧹  Removed {len(processed) - len(kept)} rows without valid emails")

    return headers_with_emails(headers, website_col), kept + remaining


class WebsiteEmailCrawler:
    """
    Loads the input table, resolves every website through the worker pool
    (one browser per worker, shared domain cache) and writes the result.
    """

    def __init__(self, config: EmailCrawlConfig, scraper_factory=None,
                 csv_writer: Optional[CSVWriter] = None, cache: Optional[DomainCache] = None):
        self.config = config
        self.scraper_factory = scraper_factory
        self.csv_writer = csv_writer or CSVWriter(config.data_dir)
        self.cache = cache if cache is not None else DomainCache()
        self._playwright = None
        self._stats = {"rows": 0, "processed": 0, "websites": 0, "written": 0}

    async def _launch_scraper(self) -> WebsiteEmailScraper:
        return await WebsiteEmailScraper.launch(self._playwright, self.config)

    def website_urls(self, headers: Sequence[str], rows: List[Dict[str, str]]) -> List[str]:
        website_col = find_website_column(headers)
        return [row.get(website_col, "") for row in rows if row.get(website_col)]

    async def run(self) -> Path:
        start_time = time.time()
        headers, rows = load_website_table(self.config.input_path)
        self._stats["rows"] = len(rows)

        processed = rows
        if 0 < self.config.limit < len(rows):
            processed = rows[:self.config.limit]
            logger.info(f"  🎯  Processing {len(processed)} websites (limited from {len(rows)})...")
        else:
            logger.info(f"  🎯  Processing {len(rows)} websites...")
        self._stats["processed"] = len(processed)

        urls = self.website_urls(headers, processed)
        self._stats["websites"] = len(urls)
        logger.info(f"  🔗  Found {len(urls)} websites to scrape")

        pool = EmailWorkerPool(
            scraper_factory=self.scraper_factory or self._launch_scraper,
            cache=self.cache,
            worker_count=self.config.worker_count,
            use_cache=self.config.cache_results,
            debug=self.config.debug,
        )
        logger.info(f"  👷  Using {self.config.worker_count} worker(s) for parallel scraping")
        results = await pool.resolve_all(urls)

        out_headers, out_rows = apply_results(
            headers, rows, results,
            limit=self.config.limit,
            remove_rows_without_emails=self.config.remove_rows_without_emails,
        )
        path = self.csv_writer.write_table(self.config.output_path, out_headers, out_rows)
        self._stats["written"] = len(out_rows)

        self._print_summary(time.time() - start_time, pool.stats)
        return path

    async def main(self) -> Path:
        async with async_playwright() as p:
            self._playwright = p
            return await self.run()

    @property
    def stats(self) -> dict:
        return dict(self._stats)

    def _print_summary(self, elapsed: float, pool_stats: dict):
        print(f"\n{'='*60}")
        print("  📊  EMAIL CRAWL SUMMARY")
        print(f"{'='*60}")
        print(f"  ⏱️  Duration: {elapsed:.1f}s")
        print(f"  📄  Rows: {self._stats['rows']} ({self._stats['processed']} processed)")
        print(f"  🔗  Websites: {self._stats['websites']}")
        print(f"  🚀  Dispatched: {pool_stats['dispatched']}, cache hits: {pool_stats['cache_hits']}")
        print(f"  ⚠️  Invalid URLs: {pool_stats['invalid']}, missing: {pool_stats['missing']}")
        print(f"  💾  Rows written: {self._stats['written']} → {self.config.output_path}")
        print()


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="MAPLEAD Website Email Crawler — add contact emails to a listings CSV")
    parser.add_argument("--config", default=str(CONFIG_DIR / "websites.yaml"), help="Path to the email crawl YAML config")
    parser.add_argument("--limit", type=int, default=None, help="Only process the first N rows (0 = all)")
    parser.add_argument("--max-emails", type=int, default=None, help="Max emails kept per site (0 = unlimited)")
    parser.add_argument("--input", default=None, help="Input CSV filename inside the data dir")
    parser.add_argument("--output", default=None, help="Output CSV filename inside the data dir")
    parser.add_argument("--parallel", type=int, default=None, help="Number of parallel workers (1-8)")
    parser.add_argument("--no-limit", action="store_true", help="Keep every email found per site")
    parser.add_argument("--keep-empty", action="store_true", help="Keep rows without emails in the output")
    parser.add_argument("--no-workers", action="store_true", help="Use a single sequential worker")
    parser.add_argument("--no-cache", action="store_true", help="Disable per-domain result caching")
    parser.add_argument("--headed", action="store_true", help="Run with browser visible")
    parser.add_argument("--verbose", action="store_true", help="Debug logging with tracebacks")
    return parser.parse_args(argv)


def build_config(args) -> EmailCrawlConfig:
    config = load_email_config(args.config)
    if args.limit is not None and args.limit > 0:
        config.limit = args.limit
    if args.max_emails is not None and args.max_emails >= 0:
        config.max_emails_per_site = args.max_emails
    if args.input:
        config.input_filename = args.input
    if args.output:
        config.output_filename = args.output
    if args.parallel is not None and args.parallel > 0:
        config.parallel_scrapers = args.parallel
    if args.no_limit:
        config.max_emails_per_site = 0
    if args.keep_empty:
        config.remove_rows_without_emails = False
    if args.no_workers:
        config.use_workers = False
    if args.no_cache:
        config.cache_results = False
    if args.headed:
        config.headless = False
    return config


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(message)s",
    )

    try:
        config = build_config(args)
        Path(config.data_dir).mkdir(parents=True, exist_ok=True)
        if not config.input_path.exists():
            raise FileNotFoundError(f"Input file not found: {config.input_path}")
        logger.info("  🚀  Starting website email crawl...")
        crawler = WebsiteEmailCrawler(config)
        asyncio.run(crawler.main())
        logger.info("  🎉  Email crawl completed successfully!")
    except Exception as e:
        logger.error(f"  ❌  Error: {e}", exc_info=args.verbose)
        sys.exit(1)


if __name__ == "__main__":
    main()
