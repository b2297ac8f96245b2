"""
Token-bucket rate limiter for outbound RPC requests.

Capacity and refill rate both equal the configured requests per second.
Waiters are granted tokens strictly in arrival order by a single drain task.
"""

import asyncio
import math
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, TypeVar

from ..utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Pause between consecutive grants while callers are queued
DEFAULT_SMOOTHING_DELAY = 0.01
MIN_WAIT_SECONDS = 0.01


class RateLimiter:
    """
    Classic token bucket with FIFO waiters.

    There is no maximum queue length; backpressure is the caller's job.
    """

    def __init__(
        self,
        requests_per_second: float,
        smoothing_delay: float = DEFAULT_SMOOTHING_DELAY,
    ):
        if requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive: {requests_per_second}"
            )

        self.max_tokens = float(requests_per_second)
        self.refill_rate = float(requests_per_second)
        self.smoothing_delay = smoothing_delay
        self.tokens = self.max_tokens
        self.last_refill = time.monotonic()

        self._queue: Deque[asyncio.Future] = deque()
        self._drain_task: Optional[asyncio.Task] = None

        logger.info(f"RateLimiter initialized (max_rps={requests_per_second})")

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    async def acquire(self) -> None:
        """Suspend until a token is available, then consume it."""
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._queue.append(waiter)

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain_queue())

        await waiter

    async def _drain_queue(self) -> None:
        while self._queue:
            # Cancelled callers give up their place without consuming a token
            if self._queue[0].done():
                self._queue.popleft()
                continue

            self._refill_tokens()

            if self.tokens >= 1:
                self.tokens -= 1
                self._queue.popleft().set_result(None)

                if self._queue and self.smoothing_delay > 0:
                    await asyncio.sleep(self.smoothing_delay)
            else:
                wait_time = max(MIN_WAIT_SECONDS, (1 - self.tokens) / self.refill_rate)
                await asyncio.sleep(wait_time)

    async def execute_with_limit(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Acquire a token, then run the coroutine factory."""
        await self.acquire()
        return await fn()

    def status(self) -> Dict[str, Any]:
        """Current token count (two decimals, floored) and queue depth."""
        self._refill_tokens()
        return {
            "tokens": math.floor(self.tokens * 100) / 100,
            "queue_length": sum(1 for waiter in self._queue if not waiter.done()),
        }
