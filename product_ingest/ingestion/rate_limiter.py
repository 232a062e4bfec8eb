"""
Rate Limiter Module
===================

Fixed-interval pacing for adapters that call external APIs. Each call to
``delay()`` waits one full interval; there is no bucket or burst allowance.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

DEFAULT_REQUESTS_PER_MINUTE = 10

SleepFunc = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Sleep-based pacer derived from a requests-per-minute setting.

    Args:
        requests_per_minute: Allowed request rate; must be positive.
        sleep: Awaitable sleep function, replaceable in tests.
    """

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if requests_per_minute <= 0:
            raise ValueError(
                f"requests_per_minute must be positive, got {requests_per_minute}"
            )
        self.requests_per_minute = requests_per_minute
        self._sleep = sleep

    @property
    def delay_ms(self) -> float:
        """Interval between requests in milliseconds."""
        return 60000 / self.requests_per_minute

    async def delay(self) -> None:
        """Wait one full interval."""
        await self._sleep(self.delay_ms / 1000)

    async def pause(self, ms: float) -> None:
        """Wait a fixed number of milliseconds (used between sub-calls)."""
        await self._sleep(ms / 1000)

    def __repr__(self) -> str:
        return f"RateLimiter(requests_per_minute={self.requests_per_minute})"
