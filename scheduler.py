"""
MAPLEAD — Batch Scheduler
Runs detail fetches in fixed-size concurrent batches and persists each
batch as soon as it settles.

Ordering: items inside a batch settle in any order; batch N (including its
writes and the cool-down after it) finishes before batch N+1 starts.
Batch size is the only concurrency bound.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from adapters.base import BusinessListing
from settings.loader import ContentGate

logger = logging.getLogger(__name__)

FetchFn = Callable[[str, int], Awaitable[BusinessListing]]
Outcome = Tuple[str, Union[BusinessListing, BaseException]]


@dataclass
class BatchResult:
    """Outcomes of one batch, in input order. Failures never void the batch."""
    number: int
    outcomes: List[Outcome] = field(default_factory=list)
    persisted: int = 0

    @property
    def listings(self) -> List[BusinessListing]:
        return [o for _, o in self.outcomes if isinstance(o, BusinessListing)]

    @property
    def failures(self) -> List[Outcome]:
        return [(url, o) for url, o in self.outcomes if isinstance(o, BaseException)]


def partition(items: Sequence[str], size: int) -> List[List[str]]:
    """Consecutive fixed-size chunks, order preserved; the last may be short."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchScheduler:
    """
    Fetch → gate → persist, one batch at a time.
    `sink` is anything with `write(listing)`; None disables persistence.
    """

    def __init__(
        self,
        fetch: FetchFn,
        behavior,
        batch_size: int = 10,
        gate: Optional[ContentGate] = None,
        sink=None,
        batch_delay_s: float = 3.0,
        batch_jitter_s: float = 2.0,
    ):
        self.fetch = fetch
        self.behavior = behavior
        self.batch_size = batch_size
        self.gate = gate or ContentGate()
        self.sink = sink
        self.batch_delay_s = batch_delay_s
        self.batch_jitter_s = batch_jitter_s
        self._stats = {"processed": 0, "persisted": 0, "gated": 0, "errors": 0}

    def _persist(self, listing: BusinessListing) -> bool:
        if not self.gate.passes(listing.to_dict()):
            self._stats["gated"] += 1
            return False
        if self.sink is not None:
            self.sink.write(listing)
        self._stats["persisted"] += 1
        return True

    async def run(self, identifiers: Sequence[str]) -> AsyncIterator[BatchResult]:
        """Yield one BatchResult per batch, after that batch has been persisted."""
        batches = partition(identifiers, self.batch_size)
        total = len(identifiers)

        for number, batch in enumerate(batches, start=1):
            offset = (number - 1) * self.batch_size
            logger.info(f"  📦  Starting batch {number}/{len(batches)} ({len(batch)} listings)")

            settled = await asyncio.gather(
                *(self.fetch(url, offset + i + 1) for i, url in enumerate(batch)),
                return_exceptions=True,
            )

            result = BatchResult(number=number)
            for url, outcome in zip(batch, settled):
                result.outcomes.append((url, outcome))
                if isinstance(outcome, BaseException):
                    self._stats["errors"] += 1
                    logger.error(f"  ❌  Fetch crashed for {url}: {outcome}")
                    continue
                self._stats["processed"] += 1
                if self._persist(outcome):
                    result.persisted += 1

            done = self._stats["processed"] + self._stats["errors"]
            logger.info(
                f"  ✅  Completed {done}/{total} listings "
                f"({100 * done / total:.1f}%), {result.persisted} saved this batch"
            )

            yield result

            if number < len(batches):
                delay = await self.behavior.pause(self.batch_delay_s, self.batch_jitter_s)
                logger.info(f"  ⏸️  Paused {delay:.1f}s before next batch")

    async def run_all(self, identifiers: Sequence[str]) -> List[BatchResult]:
        """Drain `run` and return every BatchResult."""
        return [result async for result in self.run(identifiers)]

    @property
    def stats(self) -> dict:
        return dict(self._stats)
