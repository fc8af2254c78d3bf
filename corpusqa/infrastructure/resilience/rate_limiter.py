"""Implementation of the shared client-side rate limiter.

Controls the frequency of outgoing requests to stay inside a provider quota of
N requests per rolling minute. Uses a token bucket drained by a single
processing task that grants waiting callers strictly in arrival order.
"""

import asyncio
import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Optional

from corpusqa.infrastructure.resilience.delay import SleepFunc, delay

logger = logging.getLogger(__name__)

DEFAULT_REQUESTS_PER_MINUTE = 3 # OpenAI free-tier limit
DEFAULT_WINDOW_SECONDS = 60.0


class RateLimiterError(Exception):
    """Base class for admission failures (only raised when limits are opted into)."""


class QueueFullError(RateLimiterError):
    """Raised when the wait queue already holds `max_queue_size` callers."""
    def __init__(self, max_queue_size: int):
        self.max_queue_size = max_queue_size
        super().__init__(f"Rate limiter queue is full ({max_queue_size} waiting)")


class AdmissionTimeoutError(RateLimiterError):
    """Raised when a caller is not granted a token within its timeout."""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No rate limit token granted within {timeout:.2f}s")


class RateLimiter:
    """Token bucket with a FIFO wait queue.

    Callers only enqueue and await. The bucket and the queue are drained by a
    single processing task, so two callers can never both observe the last
    token. Must be used from a single event loop.
    """

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_queue_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = delay,
    ):
        """Initializes the rate limiter with a full bucket.

        Args:
            requests_per_minute: Bucket capacity, requests allowed per window.
            window_seconds: Length of the refill window in seconds.
            max_queue_size: Optional bound on waiting callers (None = unbounded).
            clock: Monotonic clock returning seconds.
            sleep: Delay primitive used while the bucket is empty.
        """
        if isinstance(requests_per_minute, bool) or not isinstance(requests_per_minute, int) or requests_per_minute <= 0:
            raise ValueError(f"requests_per_minute must be a positive integer, got {requests_per_minute!r}")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive.")
        if max_queue_size is not None and max_queue_size <= 0:
            raise ValueError("max_queue_size must be positive when set.")

        self.capacity = requests_per_minute
        self.window_seconds = float(window_seconds)
        self.max_queue_size = max_queue_size
        self._clock = clock
        self._sleep = sleep
        self._available = requests_per_minute
        self._last_refill = clock()
        self._waiters: Deque[asyncio.Future] = deque()
        self._processor: Optional[asyncio.Task] = None
        logger.info(f"RateLimiter initialized: {self.capacity} requests / {self.window_seconds:g} seconds")

    @property
    def available_tokens(self) -> int:
        """Tokens left after the last recomputation."""
        return self._available

    @property
    def queue_depth(self) -> int:
        """Number of callers currently waiting for a token."""
        return len(self._waiters)

    @property
    def refill_interval(self) -> float:
        """Seconds needed for one token to accrue, rounded up to the millisecond."""
        return math.ceil(self.window_seconds * 1000 / self.capacity) / 1000

    def _tokens_accrued(self, now: float) -> int:
        elapsed = max(0.0, now - self._last_refill)
        return math.floor(elapsed * self.capacity / self.window_seconds)

    def _refill(self) -> None:
        """Adds accrued tokens and moves the refill timestamp to now."""
        now = self._clock()
        self._available = min(self.capacity, self._available + self._tokens_accrued(now))
        self._last_refill = now

    async def wait_for_token(self, timeout: Optional[float] = None) -> None:
        """Waits until a token has been allocated to this caller.

        Args:
            timeout: Optional limit in seconds; None waits indefinitely.

        Raises:
            QueueFullError: If `max_queue_size` callers are already waiting.
            AdmissionTimeoutError: If `timeout` elapses first. The caller's
                place in the queue is withdrawn.
        """
        if self.max_queue_size is not None and len(self._waiters) >= self.max_queue_size:
            logger.warning(f"Rejecting request: {len(self._waiters)} callers already waiting.")
            raise QueueFullError(self.max_queue_size)

        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._waiters.append(waiter)
        if self._processor is None or self._processor.done():
            self._processor = loop.create_task(self._process_queue())

        try:
            if timeout is None:
                await waiter
            else:
                await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            self._abandon(waiter)
            logger.warning(f"Admission timed out after {timeout:.2f}s; request withdrawn.")
            raise AdmissionTimeoutError(timeout) from None
        except asyncio.CancelledError:
            self._abandon(waiter)
            raise

    def _withdraw(self, waiter: asyncio.Future) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass # Already popped by the processing task

    def _abandon(self, waiter: asyncio.Future) -> None:
        """Undoes a wait that ended in a timeout or cancellation.

        A caller can be interrupted after its token was granted but before it
        resumed; that token goes back into the bucket.
        """
        if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
            self._available = min(self.capacity, self._available + 1)
            logger.debug(f"Returned unused token. {self._available} token(s) available.")
        else:
            self._withdraw(waiter)
        if self._waiters and (self._processor is None or self._processor.done()):
            self._processor = asyncio.get_running_loop().create_task(self._process_queue())

    async def _process_queue(self) -> None:
        """Grants tokens to queued callers in arrival order until the queue is empty."""
        try:
            while self._waiters:
                self._refill()
                if self._available < 1:
                    wait_time = self.refill_interval
                    logger.info(
                        f"Rate limit reached, waiting {wait_time:.2f} seconds... "
                        f"({len(self._waiters)} request(s) queued)"
                    )
                    await self._sleep(wait_time)
                    continue

                waiter = self._waiters.popleft()
                if waiter.done():
                    # Withdrawn by a timeout or cancellation; keep the token
                    continue
                self._available -= 1
                waiter.set_result(None)
                logger.debug(f"Rate limit token granted. {self._available} token(s) left.")
        except Exception as e:
            logger.error(f"Rate limiter processing failed: {e}", exc_info=True)
            while self._waiters:
                waiter = self._waiters.popleft()
                if not waiter.done():
                    waiter.set_exception(e)

    def get_wait_time(self) -> float:
        """Estimates how long a caller arriving now would wait for a token."""
        tokens = min(self.capacity, self._available + self._tokens_accrued(self._clock()))
        shortfall = len(self._waiters) + 1 - tokens
        if shortfall <= 0:
            return 0.0
        return shortfall * self.refill_interval
