"""In-process event bus connecting the draw engine to its consumers."""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Set

from core import get_logger
from core.constants import EngineEvent

logger = get_logger(__name__)

Handler = Callable[..., Any]


class EventBus:
    """Fan-out of engine events to subscribers.

    Handlers run inline on the engine's loop. Coroutine handlers are scheduled
    as tasks. A failing handler is logged and never interrupts the emitter or
    the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: Dict[EngineEvent, List[Handler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, event: EngineEvent, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event`` and return a callable that removes it."""
        event = EngineEvent(event)
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: EngineEvent, *args: Any, **kwargs: Any) -> None:
        event = EngineEvent(event)
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(*args, **kwargs)
                if inspect.isawaitable(result):
                    self._schedule(event, result)
            except Exception as e:
                logger.error(f"Handler for '{event.value}' failed: {e}", exc_info=True)

    def _schedule(self, event: EngineEvent, awaitable) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(
                    f"Async handler for '{event.value}' failed: {finished.exception()}",
                    exc_info=finished.exception(),
                )

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for scheduled coroutine handlers to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
