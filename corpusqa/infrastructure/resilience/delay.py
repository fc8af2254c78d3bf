"""Delay primitive shared by the rate limiter, retry service and ingestion."""

import asyncio
from typing import Awaitable, Callable

# Signature of every injectable sleep used in this package
SleepFunc = Callable[[float], Awaitable[None]]


async def delay(seconds: float) -> None:
    """Suspends the calling coroutine for at least `seconds`.

    Schedules exactly one timer and never blocks the event loop.
    Negative durations are treated as zero.
    """
    await asyncio.sleep(max(0.0, seconds))
