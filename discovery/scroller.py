"""
MAPLEAD — Infinite-Scroll List Discoverer
Drives a lazily-loaded results feed to exhaustion, then harvests item URLs.

Stops on whichever comes first:
  - `stagnation_threshold` consecutive scrolls with no growth in scrollHeight
  - an explicit end-of-list text marker
  - `max_iterations` scrolls
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from settings.loader import ScrollConfig

logger = logging.getLogger(__name__)


END_OF_LIST_MARKERS = [
    "You've reached the end of the list",
    "No more results",
    "End of results",
]

_SCROLL_HEIGHT_JS = "node => node.scrollHeight"
_SCROLL_BY_JS = "(node, delta) => node.scrollBy(0, delta)"
_IS_SCROLLABLE_JS = "node => node.scrollHeight > node.clientHeight"
_BODY_TEXT_JS = "() => document.body ? document.body.innerText : ''"
_ALL_HREFS_JS = "links => links.map(link => link.href)"


@dataclass
class DiscoveryResult:
    """Identifiers found on one search page plus how the scroll loop ended."""
    urls: List[str] = field(default_factory=list)
    container_found: bool = False
    iterations: int = 0
    stop_reason: str = "no_container"


class InfiniteScrollDiscoverer:
    """
    Scrolls a results container until it stops producing new content.
    Small and large scroll deltas alternate on a fixed cadence, since some
    lazy loaders only react to one magnitude or the other.
    """

    def __init__(
        self,
        container_selectors: Sequence[str],
        is_item_url: Callable[[str], bool],
        behavior,
        settings: Optional[ScrollConfig] = None,
        load_more_selectors: Sequence[str] = (),
        end_markers: Sequence[str] = tuple(END_OF_LIST_MARKERS),
    ):
        self.container_selectors = list(container_selectors)
        self.is_item_url = is_item_url
        self.behavior = behavior
        self.settings = settings or ScrollConfig()
        self.load_more_selectors = list(load_more_selectors)
        self.end_markers = list(end_markers)

    # ── Container lookup ──────────────────────────

    async def find_container(self, page):
        """Structural locators first, then any overflow div taller than its viewport."""
        for selector in self.container_selectors:
            try:
                element = await page.query_selector(selector)
            except Exception:
                continue
            if element:
                logger.info(f"  📜  Found scrollable element with selector: {selector}")
                return element

        try:
            candidates = await page.query_selector_all('div[style*="overflow"]')
            for element in candidates:
                if await element.evaluate(_IS_SCROLLABLE_JS):
                    logger.info("  📜  Found scrollable element with style-based detection")
                    return element
        except Exception as e:
            logger.debug(f"  Style-based scroll detection failed: {e}")
        return None

    # ── Scroll loop ──────────────────────────────

    async def _reached_end(self, page) -> bool:
        text = await page.evaluate(_BODY_TEXT_JS) or ""
        return any(marker in text for marker in self.end_markers)

    async def _try_load_more(self, page) -> bool:
        for selector in self.load_more_selectors:
            try:
                buttons = await page.query_selector_all(selector)
                if buttons:
                    await buttons[0].click()
                    logger.info("  🖱️  Clicked 'Show more results'")
                    await self.behavior.pause(2.0)
                    return True
            except Exception:
                continue
        return False

    async def scroll_to_end(self, page, container) -> DiscoveryResult:
        """Run the bounded scroll loop against `container`."""
        s = self.settings
        result = DiscoveryResult(container_found=True, stop_reason="max_iterations")
        stagnation = 0
        iteration = 0

        while iteration < s.max_iterations:
            try:
                previous = await container.evaluate(_SCROLL_HEIGHT_JS)
                delta = s.large_delta if iteration % s.large_every == 0 else s.small_delta
                await container.evaluate(_SCROLL_BY_JS, delta)

                await self.behavior.pause(s.pause_s, s.pause_jitter_s)

                if s.load_more_every and iteration % s.load_more_every == s.load_more_offset:
                    await self._try_load_more(page)

                current = await container.evaluate(_SCROLL_HEIGHT_JS)
                end_of_results = await self._reached_end(page)
                iteration += 1

                if iteration % 10 == 0:
                    logger.info(f"  📜  Scrolled {iteration} times, still loading results...")

                if current == previous:
                    stagnation += 1
                    logger.debug(f"  No new content loaded, attempt {stagnation}/{s.stagnation_threshold}")
                else:
                    stagnation = 0

                if end_of_results:
                    logger.info("  🏁  Reached end of results message")
                    result.stop_reason = "end_marker"
                    break
            except Exception as e:
                logger.warning(f"  ⚠️  Error during scrolling: {e}")
                iteration += 1
                stagnation += 1

            if stagnation >= s.stagnation_threshold:
                result.stop_reason = "stagnation"
                break

        result.iterations = iteration
        return result

    # ── Harvest ──────────────────────────────────

    async def collect_identifiers(self, page) -> List[str]:
        """All rendered anchors that look like item URLs, de-duplicated in order."""
        hrefs = await page.eval_on_selector_all("a", _ALL_HREFS_JS)
        seen = set()
        urls = []
        for href in hrefs or []:
            if href and self.is_item_url(href) and href not in seen:
                seen.add(href)
                urls.append(href)
        return urls
