"""
MAPLEAD — Retry Policy
Attempt budget plus jittered backoff, independent of what is being retried.
"""

from dataclasses import dataclass


@dataclass
class RetryPolicy:
    """
    `max_retries` retries after the first attempt (2 → 3 attempts total).
    Backoff before attempt n+1 is `base_delay + uniform(0, jitter)` seconds.
    """

    max_retries: int = 2
    base_delay: float = 2.0
    jitter: float = 2.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay < 0 or self.jitter < 0:
            raise ValueError("backoff delays must be non-negative")

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """True if another attempt is allowed after `attempt` (1-based) failed."""
        return attempt < self.attempts

    async def backoff(self, behavior) -> float:
        """Sleep for one jittered backoff interval via the run's pacing source."""
        return await behavior.pause(self.base_delay, self.jitter)
