"""Service for executing API calls behind the shared rate limiter with retries.

Every attempt first acquires a token from the RateLimiter. Provider-side
throttling (HTTP 429) is retried after a fixed cooldown, up to a bounded number
of attempts; any other error propagates to the caller unchanged.
"""

import logging
import time
from typing import Any, Callable, Coroutine, Optional

from openai import RateLimitError as OpenAIRateLimitError

from corpusqa.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    RetryScheduled,
)
from corpusqa.infrastructure.resilience.delay import SleepFunc, delay
from corpusqa.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_COOLDOWN_SECONDS = 25.0
RATE_LIMITED_STATUS = 429


# --- Custom Exceptions ---
class MaxRetryError(Exception):
    """Exception raised when every attempt was throttled by the provider."""
    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Max retries ({attempts}) exceeded. Last error: {original_exception}")


def is_rate_limited(error: BaseException) -> bool:
    """Returns True if the error means the provider throttled the request."""
    if isinstance(error, OpenAIRateLimitError):
        return True
    for attr in ("status_code", "status"):
        if getattr(error, attr, None) == RATE_LIMITED_STATUS:
            return True
    return False


def log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


# --- Retry Service ---

class ApiRetryService:
    """Handles API call execution with rate limiting and throttling retries."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        admission_timeout: Optional[float] = None,
        sleep: SleepFunc = delay,
        event_sink: Callable[[DomainEvent], None] = log_event,
    ):
        """Initializes the ApiRetryService.

        Args:
            rate_limiter: The shared rate limiter every attempt goes through.
            max_attempts: Attempts per call before giving up.
            cooldown_seconds: Fixed wait after the provider throttles a call.
            admission_timeout: Optional limit on waiting for a rate limit token.
            sleep: Delay primitive used for the cooldown.
            event_sink: Receives the domain events published for each call.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.cooldown_seconds = cooldown_seconds
        self.admission_timeout = admission_timeout
        self._sleep = sleep
        self._publish = event_sink

        logger.info(
            f"ApiRetryService initialized: max_attempts={max_attempts}, "
            f"cooldown={cooldown_seconds}s"
        )

    async def execute_with_retry(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        endpoint_name: Optional[str] = None,
        max_attempts: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Executes an async API call with rate limiting and throttling retries.

        Args:
            func: The async function (API call) to execute.
            *args: Positional arguments for the function.
            endpoint_name: Name used in logs and events (defaults to func.__name__).
            max_attempts: Overrides the service default for this call.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the function call, unchanged.

        Raises:
            MaxRetryError: If every attempt was throttled by the provider.
            Exception: Any other error from the call, propagated immediately.
        """
        attempts_allowed = self.max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1.")
        endpoint = endpoint_name or getattr(func, "__name__", "call")
        last_exception: Optional[Exception] = None

        for attempt in range(1, attempts_allowed + 1):
            # 1. Wait for rate limit permission
            wait_duration = self.rate_limiter.get_wait_time()
            if wait_duration > 0:
                self._publish(ApiCallDeferred(
                    endpoint=endpoint,
                    wait_time_seconds=wait_duration,
                    queue_depth=self.rate_limiter.queue_depth,
                ))
            await self.rate_limiter.wait_for_token(timeout=self.admission_timeout)

            # 2. Execute the function
            self._publish(ApiCallInitiated(endpoint=endpoint, attempt_number=attempt))
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if not is_rate_limited(e):
                    logger.error(f"Non-retryable error calling {endpoint} on attempt {attempt}: {e}")
                    self._publish(ApiCallFailed(
                        endpoint=endpoint, error_type=type(e).__name__,
                        error_message=str(e), attempts=attempt,
                    ))
                    raise

                last_exception = e
                if attempt == attempts_allowed:
                    logger.error(f"Rate limited on final attempt {attempt}/{attempts_allowed} for {endpoint}.")
                    break
                logger.warning(
                    f"Rate limited, waiting {self.cooldown_seconds:g} seconds before retry "
                    f"{attempt}/{attempts_allowed} of {endpoint}"
                )
                self._publish(RetryScheduled(
                    endpoint=endpoint, attempt_number=attempt, delay_seconds=self.cooldown_seconds,
                ))
                await self._sleep(self.cooldown_seconds)
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            if hasattr(result, 'latency_ms') and result.latency_ms is None:
                result.latency_ms = latency_ms
            self._publish(ApiCallSucceeded(endpoint=endpoint, attempt_number=attempt, latency_ms=latency_ms))
            return result

        # --- Loop finished without returning: every attempt was throttled ---
        self._publish(ApiCallFailed(
            endpoint=endpoint, error_type=type(last_exception).__name__,
            error_message=str(last_exception), attempts=attempts_allowed,
        ))
        raise MaxRetryError(last_exception, attempts_allowed)
