"""Utilities to execute coroutines on the main asyncio loop from sync contexts."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar


_loop: Optional[asyncio.AbstractEventLoop] = None
T = TypeVar("T")


def set_main_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _loop
    _loop = loop


def get_main_loop() -> asyncio.AbstractEventLoop:
    if _loop is None:
        raise RuntimeError("Asyncio loop is not initialized")
    return _loop


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = None) -> T:
    future = asyncio.run_coroutine_threadsafe(coro, get_main_loop())
    return future.result(timeout)


def call_in_loop(func: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> T:
    """Run a plain function on the main loop and return its result.

    Engine state belongs to the loop thread; request threads mutate it only
    through this helper. Exceptions raised by ``func`` propagate to the caller.
    """
    async def _call() -> T:
        return func(*args, **kwargs)

    return run_coroutine_sync(_call(), timeout)
