"""
MAPLEAD — Email Worker Pool
Coordinator for the website email pass.

  urls ──▶ normalize ──▶ cache lookup ──▶ de-dup by host ──▶ round-robin
       partitions ──▶ N worker tasks (own browser each, sequential inside)
       ──▶ queue of progress/complete/error messages ──▶ coordinator
       writes through to the cache and fills the result map

Workers never see the cache. A worker that dies keeps whatever it already
reported; its remaining URLs are simply missing from the result map.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from enrichment.email_cache import DomainCache, extract_host, normalize_url
from enrichment.site_scraper import NO_EMAILS

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROGRESS = "progress"
COMPLETE = "complete"
ERROR = "error"

# Returns a ready scraper: `await scrape(url) -> str` and `await close()`
ScraperFactory = Callable[[], Awaitable[object]]


@dataclass
class WorkerMessage:
    kind: str
    worker_id: int
    key: str = ""
    url: str = ""
    result: str = ""
    error: str = ""

    @property
    def terminal(self) -> bool:
        return self.kind in (COMPLETE, ERROR)


@dataclass
class WorkItem:
    """One dispatch: the URL sent to a worker plus every input URL it answers for."""
    key: str
    dispatch_url: str
    urls: List[str] = field(default_factory=list)


def partition_round_robin(items: Sequence[T], workers: int) -> List[List[T]]:
    """Item i goes to partition i % workers. Never returns empty partitions."""
    if workers < 1:
        raise ValueError(f"worker count must be >= 1, got {workers}")
    workers = min(workers, len(items))
    return [list(items[w::workers]) for w in range(workers)]


class EmailWorkerPool:
    """Resolves a list of site URLs to email strings across `worker_count` workers."""

    def __init__(
        self,
        scraper_factory: ScraperFactory,
        cache: Optional[DomainCache] = None,
        worker_count: int = 1,
        use_cache: bool = True,
        debug: bool = False,
    ):
        self.scraper_factory = scraper_factory
        self.cache = cache if cache is not None else DomainCache()
        self.worker_count = max(1, worker_count)
        self.use_cache = use_cache
        self.debug = debug
        self._stats = {
            "invalid": 0,
            "cache_hits": 0,
            "dispatched": 0,
            "resolved": 0,
            "missing": 0,
            "worker_errors": 0,
        }

    # ── Worker side ──────────────────────────────

    async def _worker(self, worker_id: int, jobs: List[Tuple[str, str]], queue: asyncio.Queue):
        """`jobs` are (key, url) pairs, scraped one after another."""
        scraper = None
        finished = False
        try:
            scraper = await self.scraper_factory()
            for key, url in jobs:
                result = await scraper.scrape(url)
                queue.put_nowait(WorkerMessage(PROGRESS, worker_id, key=key, url=url, result=result))
            queue.put_nowait(WorkerMessage(COMPLETE, worker_id))
            finished = True
        except Exception as e:
            logger.warning(f"  ⚠️  Worker {worker_id} failed: {e}")
            queue.put_nowait(WorkerMessage(ERROR, worker_id, error=str(e)))
            finished = True
        finally:
            if not finished:
                queue.put_nowait(WorkerMessage(ERROR, worker_id, error="worker exited"))
            if scraper is not None:
                try:
                    await scraper.close()
                except Exception as e:
                    logger.debug(f"  Worker {worker_id} close failed: {e}")

    # ── Coordinator side ─────────────────────────

    def _plan(self, urls: Sequence[str], results: Dict[str, str]) -> List[WorkItem]:
        """Resolve what can be resolved without a browser; group the rest into work items."""
        items: Dict[str, WorkItem] = {}
        for position, url in enumerate(urls):
            origin = normalize_url(url)
            if origin is None:
                results[url] = NO_EMAILS
                self._stats["invalid"] += 1
                continue

            raw = url.strip()
            dispatch_url = raw if raw.startswith("http") else f"https://{raw}"

            if not self.use_cache:
                items[f"#{position}"] = WorkItem(f"#{position}", dispatch_url, [url])
                continue

            host = extract_host(origin)
            cached = self.cache.get(host)
            if cached is not None:
                results[url] = cached
                self._stats["cache_hits"] += 1
                continue

            if host in items:
                items[host].urls.append(url)
            else:
                items[host] = WorkItem(host, dispatch_url, [url])
        return list(items.values())

    async def resolve_all(self, urls: Sequence[str]) -> Dict[str, str]:
        """Map each input URL to its email string ("NA" when none were found)."""
        results: Dict[str, str] = {}
        items = self._plan(urls, results)
        if not items:
            return results

        partitions = partition_round_robin(items, self.worker_count)
        by_key = {item.key: item for item in items}
        self._stats["dispatched"] += len(items)
        logger.info(f"  🚀  {len(items)} sites across {len(partitions)} worker(s)")

        queue: asyncio.Queue = asyncio.Queue()
        tasks = [
            asyncio.create_task(self._worker(w, [(i.key, i.dispatch_url) for i in part], queue))
            for w, part in enumerate(partitions)
        ]

        running = len(tasks)
        while running:
            message: WorkerMessage = await queue.get()
            if message.terminal:
                running -= 1
                if message.kind == ERROR:
                    self._stats["worker_errors"] += 1
                continue

            item = by_key.get(message.key)
            if item is None:
                continue
            if self.use_cache:
                self.cache.set(item.key, message.result)
            for url in item.urls:
                results[url] = message.result
            self._stats["resolved"] += 1
            log = logger.info if self.debug else logger.debug
            log(f"  Worker {message.worker_id}: processed {message.url} ({message.result})")

        await asyncio.gather(*tasks, return_exceptions=True)

        missing = [url for url in urls if url not in results]
        if missing:
            self._stats["missing"] += len(missing)
            logger.warning(f"  ⚠️  {len(missing)} URLs left unresolved by failed workers")
        return results

    @property
    def stats(self) -> dict:
        return dict(self._stats)
