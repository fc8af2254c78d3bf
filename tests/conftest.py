import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from corpusqa.domain.interfaces.ai_model import AIModel
from corpusqa.domain.interfaces.vector_store import VectorStore
from corpusqa.infrastructure.config import settings
from corpusqa.infrastructure.resilience.api_retry import ApiRetryService
from corpusqa.infrastructure.resilience.rate_limiter import RateLimiter


class FakeClock:
    """Monotonic clock whose time only moves when `sleep` is awaited."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        # Let callers granted before this sleep observe the old time
        await asyncio.sleep(0)
        self.now += seconds


class SleepRecorder:
    """Sleep that only records durations (and yields once)."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


class Throttled(Exception):
    """Provider error carrying an HTTP 429 status."""
    status_code = 429


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cooldown_sleep():
    return SleepRecorder()


@pytest.fixture
def item_sleep():
    return SleepRecorder()


@pytest.fixture
def rate_limiter(clock):
    """A roomy limiter driven by the fake clock."""
    return RateLimiter(requests_per_minute=100, clock=clock, sleep=clock.sleep)


@pytest.fixture
def events():
    return []


@pytest.fixture
def retry_service(rate_limiter, cooldown_sleep, events):
    return ApiRetryService(
        rate_limiter=rate_limiter,
        max_attempts=3,
        cooldown_seconds=25.0,
        sleep=cooldown_sleep,
        event_sink=events.append,
    )


@pytest.fixture
def mock_ai_model():
    mock = MagicMock(spec=AIModel)
    mock.create_embedding = AsyncMock(return_value=[0.1, 0.2, 0.3])
    mock.send_messages = AsyncMock()
    return mock


@pytest.fixture
def mock_vector_store():
    mock = MagicMock(spec=VectorStore)
    mock.insert_record = AsyncMock()
    mock.match_records = AsyncMock(return_value=[])
    mock.has_records = AsyncMock(return_value=False)
    return mock


@pytest.fixture(autouse=True)
def reset_settings():
    """Each test starts with no test overrides and an unloaded config."""
    settings.clear_test_config()
    yield
    settings.clear_test_config()
    settings._loaded = False
    settings._config.clear()
