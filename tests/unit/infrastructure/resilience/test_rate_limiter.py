import asyncio

import pytest

from corpusqa.infrastructure.resilience.rate_limiter import (
    AdmissionTimeoutError,
    QueueFullError,
    RateLimiter,
)
from conftest import FakeClock


class GatedClock(FakeClock):
    """Fake clock whose sleep blocks until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await self.gate.wait()


async def _timed_admission(limiter: RateLimiter, clock: FakeClock, name: str, grants: list) -> None:
    await limiter.wait_for_token()
    grants.append((name, clock.now))


@pytest.mark.parametrize("capacity", [0, -1, 2.5, True, "3"])
def test_capacity_must_be_positive_integer(capacity):
    with pytest.raises(ValueError):
        RateLimiter(requests_per_minute=capacity)


def test_refill_interval_rounds_up_to_millisecond():
    assert RateLimiter(requests_per_minute=3).refill_interval == 20.0
    assert RateLimiter(requests_per_minute=7).refill_interval == 8.572


@pytest.mark.asyncio
async def test_capacity_admissions_granted_without_waiting(clock):
    limiter = RateLimiter(requests_per_minute=3, clock=clock, sleep=clock.sleep)

    await asyncio.gather(*(limiter.wait_for_token() for _ in range(3)))

    assert clock.sleeps == []
    assert limiter.available_tokens == 0
    assert limiter.queue_depth == 0


@pytest.mark.asyncio
async def test_fourth_caller_waits_for_one_refill_interval(clock):
    """capacity=3: three callers at t=0 pass, the fourth at t>=20s."""
    limiter = RateLimiter(requests_per_minute=3, clock=clock, sleep=clock.sleep)
    grants = []

    await asyncio.gather(*(_timed_admission(limiter, clock, f"c{i}", grants) for i in range(4)))

    assert grants[:3] == [("c0", 0.0), ("c1", 0.0), ("c2", 0.0)]
    assert grants[3][0] == "c3"
    assert grants[3][1] >= 20.0
    assert clock.sleeps == [20.0]
    assert limiter.available_tokens == 0


@pytest.mark.asyncio
async def test_admission_order_matches_arrival_order(clock):
    limiter = RateLimiter(requests_per_minute=1, clock=clock, sleep=clock.sleep)
    grants = []

    await asyncio.gather(*(_timed_admission(limiter, clock, name, grants) for name in "abcde"))

    assert [name for name, _ in grants] == list("abcde")
    times = [t for _, t in grants]
    assert times == sorted(times)
    assert times == [0.0, 60.0, 120.0, 180.0, 240.0]


@pytest.mark.asyncio
async def test_late_arrival_queues_behind_waiting_callers(clock):
    limiter = RateLimiter(requests_per_minute=2, clock=clock, sleep=clock.sleep)
    grants = []

    early = [asyncio.create_task(_timed_admission(limiter, clock, n, grants)) for n in ("a", "b", "c")]
    await asyncio.sleep(0)
    late = asyncio.create_task(_timed_admission(limiter, clock, "d", grants))
    await asyncio.gather(*early, late)

    assert [name for name, _ in grants] == ["a", "b", "c", "d"]


@pytest.mark.asyncio
async def test_tokens_stay_within_bounds(clock):
    limiter = RateLimiter(requests_per_minute=2, clock=clock, sleep=clock.sleep)
    observed = []

    async def caller():
        await limiter.wait_for_token()
        observed.append(limiter.available_tokens)

    for burst in (1, 4, 2, 5):
        await asyncio.gather(*(caller() for _ in range(burst)))
        clock.now += 45.0 # idle gap between bursts

    assert len(observed) == 12
    assert all(0 <= tokens <= limiter.capacity for tokens in observed)


@pytest.mark.asyncio
async def test_refill_never_exceeds_capacity(clock):
    limiter = RateLimiter(requests_per_minute=3, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_token()

    clock.now += 3600.0
    await limiter.wait_for_token()

    assert limiter.available_tokens == 2


@pytest.mark.asyncio
async def test_get_wait_time_estimates_shortfall(clock):
    limiter = RateLimiter(requests_per_minute=3, clock=clock, sleep=clock.sleep)
    assert limiter.get_wait_time() == 0.0

    await asyncio.gather(*(limiter.wait_for_token() for _ in range(3)))

    assert limiter.get_wait_time() == 20.0


@pytest.mark.asyncio
async def test_timed_out_caller_is_withdrawn():
    clock = GatedClock()
    limiter = RateLimiter(requests_per_minute=1, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_token()

    with pytest.raises(AdmissionTimeoutError):
        await limiter.wait_for_token(timeout=0.05)
    assert limiter.queue_depth == 0

    # The next caller still gets the refilled token once the wait ends
    follower = asyncio.create_task(limiter.wait_for_token())
    await asyncio.sleep(0)
    clock.gate.set()
    await asyncio.wait_for(follower, timeout=1)
    assert limiter.available_tokens == 0


@pytest.mark.asyncio
async def test_cancelled_caller_is_withdrawn():
    clock = GatedClock()
    limiter = RateLimiter(requests_per_minute=1, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_token()

    waiter = asyncio.create_task(limiter.wait_for_token())
    await asyncio.sleep(0)
    assert limiter.queue_depth == 1

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert limiter.queue_depth == 0

    clock.gate.set()
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_caller_cancelled_after_grant_returns_token(clock):
    limiter = RateLimiter(requests_per_minute=2, clock=clock, sleep=clock.sleep)

    caller = asyncio.create_task(limiter.wait_for_token())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert limiter.available_tokens == 1

    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    assert limiter.available_tokens == 2
    await limiter.wait_for_token()
    await limiter.wait_for_token()
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_full_queue_rejects_new_callers():
    clock = GatedClock()
    limiter = RateLimiter(requests_per_minute=1, max_queue_size=1, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_token()

    waiter = asyncio.create_task(limiter.wait_for_token())
    await asyncio.sleep(0)

    with pytest.raises(QueueFullError):
        await limiter.wait_for_token()

    clock.gate.set()
    await asyncio.wait_for(waiter, timeout=1)
