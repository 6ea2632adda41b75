"""
MAPLEAD — Human Pacing
Jittered delays used between scrolls, retries, batches, queries and locations.
Every pause is `base + uniform(0, jitter)` seconds, scaled by speed_factor.
"""

import asyncio
import random


class HumanBehavior:
    """
    Central source of every deliberate delay in a run:
    - Scroll pacing while draining a results feed
    - Backoff between detail-fetch attempts
    - Cool-downs between batches, queries and locations
    """

    def __init__(self, speed_factor: float = 1.0):
        """
        Args:
            speed_factor: Multiplier for all delays.
                          1.0 = normal, 0.5 = faster, 2.0 = more cautious,
                          0 disables waiting entirely (tests, dry checks)
        """
        self.speed_factor = speed_factor
        self._total_waited = 0.0
        self._pauses = 0

    # ── Delays ──────────────────────────────────────

    def jitter(self, base: float, jitter: float = 0.0) -> float:
        """Return a delay in seconds drawn from [base, base + jitter]."""
        delay = base + (random.uniform(0, jitter) if jitter > 0 else 0.0)
        return max(0.0, delay * self.speed_factor)

    async def pause(self, base: float, jitter: float = 0.0) -> float:
        """Sleep for a jittered duration and return how long was slept."""
        delay = self.jitter(base, jitter)
        self._pauses += 1
        self._total_waited += delay
        if delay > 0:
            await asyncio.sleep(delay)
        return delay

    async def settle(self, page, ms: int):
        """Give a freshly loaded page time to render dynamic content."""
        wait_ms = int(ms * self.speed_factor)
        if wait_ms > 0:
            await page.wait_for_timeout(wait_ms)

    @property
    def stats(self) -> dict:
        return {
            "pauses": self._pauses,
            "total_waited_s": round(self._total_waited, 1),
        }
