"""
MAPLEAD — Website Email Scraper
Visits one business website and returns its best contact addresses.
Homepage first; a single contact/about page only when the homepage is thin.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup

from enrichment.email_extractor import (
    THIN_YIELD,
    collect_candidates,
    find_contact_link,
    rank_emails,
)
from settings.loader import EmailCrawlConfig
from stealth.fingerprint import BROWSER_ARGS, FingerprintManager

logger = logging.getLogger(__name__)

NO_EMAILS = "NA"


@dataclass
class PageSnapshot:
    """What the extractor needs from one rendered page."""
    url: str
    text: str = ""
    html: str = ""
    mailto_hrefs: List[str] = field(default_factory=list)
    anchors: List[Tuple[str, str]] = field(default_factory=list)


async def read_page(page, url: str) -> PageSnapshot:
    """Rendered text plus the links parsed out of the page source."""
    html = await page.content()
    soup = BeautifulSoup(html, "html.parser")
    try:
        text = await page.inner_text("body")
    except Exception:
        text = soup.get_text(" ", strip=True)

    anchors = []
    mailto = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith("mailto:"):
            mailto.append(href)
        else:
            anchors.append((a.get_text(" ", strip=True), href))

    return PageSnapshot(url=url, text=text or "", html=html, mailto_hrefs=mailto, anchors=anchors)


class WebsiteEmailScraper:
    """
    Owns one browser session. Each URL gets a fresh context so cookies and
    storage never leak between sites. Errors on a site resolve to "NA".
    """

    def __init__(self, browser, config: EmailCrawlConfig,
                 fingerprints: Optional[FingerprintManager] = None,
                 http_session: Optional[aiohttp.ClientSession] = None):
        self.browser = browser
        self.config = config
        self.fingerprints = fingerprints or FingerprintManager()
        self._http = http_session
        self._owns_http = http_session is None
        self._stats = {"sites": 0, "with_emails": 0, "contact_pages": 0, "errors": 0}

    @classmethod
    async def launch(cls, playwright, config: EmailCrawlConfig) -> "WebsiteEmailScraper":
        browser = await playwright.chromium.launch(headless=config.headless, args=BROWSER_ARGS)
        return cls(browser, config)

    async def _session(self) -> aiohttp.ClientSession:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self._http

    # ── Contact page lookup ──────────────────────

    async def _path_exists(self, url: str) -> bool:
        session = await self._session()
        try:
            async with session.head(
                url,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=self.config.probe_timeout_s),
            ) as resp:
                return resp.status == 200
        except Exception as e:
            logger.debug(f"  Probe failed for {url}: {e}")
            return False

    async def find_contact_page(self, snapshot: PageSnapshot, base_url: str) -> Optional[str]:
        """Keyword-matching link on the page, else the first conventional path that answers 200."""
        link = find_contact_link(snapshot.anchors, base_url, self.config.contact_page_keywords)
        if link:
            return link
        for path in self.config.contact_paths:
            candidate = urljoin(base_url, path)
            if await self._path_exists(candidate):
                return candidate
        return None

    # ── Per-site flow ────────────────────────────

    async def _goto(self, page, url: str):
        await page.goto(url, wait_until="domcontentloaded", timeout=self.config.navigation_timeout_ms)

    async def find_emails_on_site(self, page, url: str) -> List[str]:
        await self._goto(page, url)
        home = await read_page(page, url)
        emails = [c.email for c in collect_candidates(home.text, home.html, home.mailto_hrefs)]

        if len(emails) < THIN_YIELD:
            contact_url = await self.find_contact_page(home, url)
            if contact_url and contact_url.rstrip("/") != url.rstrip("/"):
                try:
                    await self._goto(page, contact_url)
                    contact = await read_page(page, contact_url)
                    self._stats["contact_pages"] += 1
                    for c in collect_candidates(contact.text, contact.html, contact.mailto_hrefs):
                        if c.email not in emails:
                            emails.append(c.email)
                except Exception as e:
                    logger.debug(f"  Contact page failed for {contact_url}: {e}")

        return rank_emails(emails, url, self.config.max_emails_per_site)

    async def scrape(self, url: str) -> str:
        """Comma-joined ranked emails for `url`, or "NA"."""
        self._stats["sites"] += 1
        context = None
        try:
            context = await self.browser.new_context(**self.fingerprints.generate())
            page = await context.new_page()
            if self.config.block_resources:
                await self.fingerprints.block_heavy_resources(page)
            emails = await self.find_emails_on_site(page, url)
        except Exception as e:
            self._stats["errors"] += 1
            logger.debug(f"  Email scrape failed for {url}: {e}")
            emails = []
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug(f"  Error closing context: {e}")

        if emails:
            self._stats["with_emails"] += 1
            return ", ".join(emails)
        return NO_EMAILS

    async def close(self):
        if self._owns_http and self._http is not None:
            await self._http.close()
        try:
            await self.browser.close()
        except Exception as e:
            logger.debug(f"  Error closing browser: {e}")

    @property
    def stats(self) -> dict:
        return dict(self._stats)
