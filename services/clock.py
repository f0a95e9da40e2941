"""Clocks driving the reveal schedule.

All times are milliseconds. ``LoopClock`` follows the running asyncio loop;
``VirtualClock`` jumps forward on every sleep so a full reveal runs instantly
and deterministically under test.
"""

from __future__ import annotations

import asyncio
from typing import List, Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...

    async def sleep(self, delay_ms: float) -> None:
        ...


class LoopClock:
    """Wall clock backed by the event loop's monotonic time."""

    def now(self) -> float:
        return asyncio.get_running_loop().time() * 1000.0

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


class VirtualClock:
    """Simulated clock; ``sleep`` advances time and yields once to the loop."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self._now

    def advance(self, delay_ms: float) -> None:
        self._now += max(0.0, delay_ms)

    async def sleep(self, delay_ms: float) -> None:
        self.sleeps.append(delay_ms)
        self.advance(delay_ms)
        # Yield so cancellation and other tasks get a chance to run
        await asyncio.sleep(0)
