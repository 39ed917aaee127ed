"""Token bucket rate limiter for Home Connect API reads.

The Home Connect API allows 50 requests per minute and a small burst per
second. A single :class:`RateLimiter` is shared by every client talking to
the API so that all appliances draw from the same budget.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .const import (
    BURST_LIMIT_CAPACITY,
    BURST_LIMIT_INITIAL_TOKENS,
    BURST_LIMIT_PERIOD,
    RATE_LIMIT_CAPACITY,
    RATE_LIMIT_INITIAL_TOKENS,
    RATE_LIMIT_MAX_WAIT,
    RATE_LIMIT_PERIOD,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)

_UNSET = object()


class RateLimiterTimeoutError(Exception):
    """Raised when no token became available within the allowed wait."""


@dataclass
class Bandwidth:
    """A bucket refilled in whole intervals.

    ``refill_tokens`` are added at the end of each ``period``, never above
    ``capacity``.
    """

    capacity: int
    refill_tokens: int
    period: float
    tokens: int
    last_refill: float

    def refill(self, now: float) -> None:
        elapsed_periods = math.floor((now - self.last_refill) / self.period)
        if elapsed_periods <= 0:
            return
        self.tokens = min(
            self.capacity, self.tokens + elapsed_periods * self.refill_tokens
        )
        self.last_refill += elapsed_periods * self.period

    def delay_until_token(self, now: float) -> float:
        if self.tokens > 0:
            return 0.0
        return max(self.last_refill + self.period - now, 0.0)


class RateLimiter:
    """Two superimposed token buckets; a request needs a token from both.

    The sustained limit also holds over any sliding window: no more than
    ``RATE_LIMIT_CAPACITY`` grants within ``RATE_LIMIT_PERIOD`` seconds.
    """

    def __init__(
        self,
        *,
        max_wait: float | None = RATE_LIMIT_MAX_WAIT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._max_wait = max_wait
        self._lock = asyncio.Lock()
        self._grants: deque[float] = deque(maxlen=RATE_LIMIT_CAPACITY)
        now = clock()
        self._bandwidths = (
            Bandwidth(
                capacity=RATE_LIMIT_CAPACITY,
                refill_tokens=RATE_LIMIT_CAPACITY,
                period=RATE_LIMIT_PERIOD,
                tokens=RATE_LIMIT_INITIAL_TOKENS,
                last_refill=now,
            ),
            Bandwidth(
                capacity=BURST_LIMIT_CAPACITY,
                refill_tokens=BURST_LIMIT_CAPACITY,
                period=BURST_LIMIT_PERIOD,
                tokens=BURST_LIMIT_INITIAL_TOKENS,
                last_refill=now,
            ),
        )

    def _window_delay(self, now: float) -> float:
        if len(self._grants) < RATE_LIMIT_CAPACITY:
            return 0.0
        return max(self._grants[0] + RATE_LIMIT_PERIOD - now, 0.0)

    def available_tokens(self) -> int:
        """Return how many requests could proceed right now."""
        now = self._clock()
        for bandwidth in self._bandwidths:
            bandwidth.refill(now)
        window_free = RATE_LIMIT_CAPACITY - sum(
            1 for granted in self._grants if now - granted < RATE_LIMIT_PERIOD
        )
        return min(window_free, *(bandwidth.tokens for bandwidth in self._bandwidths))

    async def async_acquire(self, timeout: float | None | object = _UNSET) -> None:
        """Wait until both buckets and the sliding window allow a request.

        Args:
            timeout: Maximum seconds to wait. Defaults to the limiter's
                ``max_wait``; ``None`` waits indefinitely.

        Raises:
            RateLimiterTimeoutError: If no token became available in time.
                No token is consumed in that case, nor on cancellation.

        """
        max_wait = self._max_wait if timeout is _UNSET else timeout
        deadline = None if max_wait is None else self._clock() + max_wait

        try:
            if deadline is None:
                await self._lock.acquire()
            else:
                await asyncio.wait_for(self._lock.acquire(), timeout=max_wait)
        except TimeoutError as err:
            error_msg = f"No rate limit token available within {max_wait} seconds"
            raise RateLimiterTimeoutError(error_msg) from err

        try:
            while True:
                now = self._clock()
                for bandwidth in self._bandwidths:
                    bandwidth.refill(now)

                delay = max(
                    self._window_delay(now),
                    *(bw.delay_until_token(now) for bw in self._bandwidths),
                )
                if delay <= 0:
                    for bandwidth in self._bandwidths:
                        bandwidth.tokens -= 1
                    self._grants.append(now)
                    return

                if deadline is not None and now + delay > deadline:
                    error_msg = (
                        f"No rate limit token available within {max_wait} seconds"
                    )
                    raise RateLimiterTimeoutError(error_msg)

                _LOGGER.debug("Rate limit reached, waiting %.2f seconds", delay)
                await self._sleep(delay)
        finally:
            self._lock.release()
