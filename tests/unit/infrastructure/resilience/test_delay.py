import asyncio
import time

import pytest

from corpusqa.infrastructure.resilience.delay import delay


@pytest.mark.asyncio
async def test_delay_waits_at_least_duration():
    start = time.monotonic()
    await delay(0.05)
    assert time.monotonic() - start >= 0.045


@pytest.mark.asyncio
async def test_delay_does_not_block_other_tasks():
    ticks = []

    async def ticker():
        for i in range(3):
            ticks.append(i)
            await asyncio.sleep(0)

    await asyncio.gather(delay(0.02), ticker())
    assert ticks == [0, 1, 2]


@pytest.mark.asyncio
async def test_negative_delay_returns_immediately():
    await asyncio.wait_for(delay(-5), timeout=0.5)
