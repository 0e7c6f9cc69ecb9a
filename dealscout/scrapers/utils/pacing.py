"""Jittered pauses between source fetches.

A fixed interval between requests is an easy fingerprint, so every pause is
drawn uniformly from [min_seconds, max_seconds]. Both the random source and
the sleep function are injectable so tests run instantly and deterministically.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class HumanPacer:
    """Randomized delay source for human-like request pacing."""

    def __init__(
        self,
        min_seconds: float,
        max_seconds: float,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize pacer.

        Args:
            min_seconds: Shortest pause
            max_seconds: Longest pause
            rng: Random source (seeded in tests)
            sleep: Awaitable sleep function (asyncio.sleep by default)
        """
        if min_seconds < 0 or max_seconds < min_seconds:
            raise ValueError(f"invalid delay range: [{min_seconds}, {max_seconds}]")
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self.total_slept = 0.0

    def next_delay(self) -> float:
        """Draw the next pause length in seconds."""
        return self.rng.uniform(self.min_seconds, self.max_seconds)

    async def pause(self) -> float:
        """Sleep for a freshly drawn delay.

        Returns:
            The delay that was slept, in seconds
        """
        delay = self.next_delay()
        logger.info("waiting_before_next_request", seconds=round(delay, 1))
        await self.sleep(delay)
        self.total_slept += delay
        return delay
