"""Draw orchestrator: select, reveal, commit, undo and reset.

One :class:`DrawEngine` instance owns the whole draw state of a process.
Consumers read it through :meth:`DrawEngine.snapshot` or subscribe to its
:class:`~services.events.EventBus`; commands are plain methods, except
:meth:`DrawEngine.draw_next` which suspends while the reveal plays.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, NoReturn, Optional, Sequence, Tuple

from core import get_logger
from core.constants import DrawDefaults, DrawMode, DrawState, EngineEvent, RevealPhase, RevealTimings
from core.exceptions import (
    ConfigurationError,
    DrawEngineError,
    EmptyHistoryError,
    ExhaustedPoolError,
    InvalidSpecError,
    NotAvailableError,
    PrizesCompleteError,
    SessionError,
)
from services.clock import Clock, LoopClock
from services.entry_pool import EntryPool
from services.events import EventBus
from services.history import DrawBatch, HistoryLedger
from services.lottery import RandomSelector
from services.prizes import Prize, PrizeSequencer
from services.reveal import RevealAnimator, RevealFrame, describe_schedule
from utils.performance import PerformanceMonitor
from utils.validators import validate_winners_per_prize

if TYPE_CHECKING:
    from config import Config

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrawSnapshot:
    """Immutable read model of the engine."""
    state: DrawState
    phase: Optional[RevealPhase]
    display_value: str
    current_prize_name: str
    remaining_count: int
    total_count: int
    history: Tuple[DrawBatch, ...]
    digit_width: int
    mode: DrawMode
    winners_per_prize: int
    prizes: Tuple[Prize, ...]

    @property
    def all_prizes_drawn(self) -> bool:
        return len(self.history) >= len(self.prizes)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "phase": self.phase.value if self.phase is not None else None,
            "display_value": self.display_value,
            "current_prize_name": self.current_prize_name,
            "remaining_count": self.remaining_count,
            "total_count": self.total_count,
            "history": [batch.to_dict() for batch in self.history],
            "digit_width": self.digit_width,
            "mode": self.mode.value,
            "winners_per_prize": self.winners_per_prize,
            "prizes": [prize.to_dict() for prize in self.prizes],
        }


class DrawEngine:
    """Coordinates the entry pool, selector, reveal animator and history.

    Only one draw may be in flight; requests made meanwhile are ignored.
    Rejections raise :class:`~core.exceptions.DrawEngineError` subclasses
    before anything is mutated.
    """

    def __init__(
        self,
        pool: Optional[EntryPool] = None,
        prizes: Optional[PrizeSequencer] = None,
        winners_per_prize: int = DrawDefaults.WINNERS_PER_PRIZE,
        *,
        selector: Optional[RandomSelector] = None,
        clock: Optional[Clock] = None,
        events: Optional[EventBus] = None,
        monitor: Optional[PerformanceMonitor] = None,
        input_value: str = "",
        title: str = DrawDefaults.TITLE,
    ) -> None:
        if not validate_winners_per_prize(winners_per_prize):
            raise InvalidSpecError("Winners per prize must be a positive whole number.")

        self.pool = pool if pool is not None else EntryPool()
        self.prizes = prizes if prizes is not None else PrizeSequencer.default()
        self.history = HistoryLedger(capacity=len(self.prizes))
        self.winners_per_prize = winners_per_prize
        self.selector = selector or RandomSelector()
        self.clock: Clock = clock or LoopClock()
        self.events = events or EventBus()
        self.monitor = monitor or PerformanceMonitor()
        self.input_value = input_value
        self.title = title

        self.state = DrawState.IDLE
        self.phase: Optional[RevealPhase] = None
        self.display_value = self._idle_display()
        self._draw_task: Optional[asyncio.Task] = None
        self._in_flight: Tuple[str, ...] = ()
        self._generation = 0
        self.monitor.record_pool(self.pool.remaining_count, self.pool.total_count)

    @classmethod
    def from_config(cls, config: "Config", **kwargs) -> "DrawEngine":
        """Build an engine from the default entries, prizes and seed in ``config``.

        Raises:
            ConfigurationError: If the configured entries or prizes are invalid
        """
        try:
            pool = EntryPool.configure(config.default_entries, config.default_mode)
            prizes = PrizeSequencer.from_names(config.default_prizes)
        except InvalidSpecError as e:
            raise ConfigurationError(f"Invalid default draw configuration: {e}") from e

        kwargs.setdefault("selector", RandomSelector(seed=config.draw_seed))
        return cls(
            pool=pool,
            prizes=prizes,
            winners_per_prize=config.winners_per_prize,
            input_value=config.default_entries,
            title=config.draw_title,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def is_idle(self) -> bool:
        return self.state is DrawState.IDLE

    @property
    def mode(self) -> DrawMode:
        return self.pool.mode

    def current_prize_name(self) -> str:
        return self.prizes.current_name(len(self.history))

    def snapshot(self) -> DrawSnapshot:
        return DrawSnapshot(
            state=self.state,
            phase=self.phase,
            display_value=self.display_value,
            current_prize_name=self.current_prize_name(),
            remaining_count=self.pool.remaining_count,
            total_count=self.pool.total_count,
            history=self.history.batches,
            digit_width=self.pool.digit_width,
            mode=self.pool.mode,
            winners_per_prize=self.winners_per_prize,
            prizes=self.prizes.prizes,
        )

    # ------------------------------------------------------------------
    # Draw
    # ------------------------------------------------------------------

    async def draw_next(self) -> Optional[DrawBatch]:
        """Draw and reveal the winners of the current prize tier.

        Returns:
            The committed batch, or ``None`` when a draw was already in flight
            or this draw was cancelled before it committed

        Raises:
            ExhaustedPoolError: If no entries remain
            PrizesCompleteError: If every prize tier has been awarded
        """
        generation = self._generation
        task = self.begin_draw()
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            if generation != self._generation:
                # Cancelled through reset(), cancel_draw() or a reconfiguration
                return None
            self._discard_in_flight("caller cancelled")
            raise

    def begin_draw(self) -> Optional["asyncio.Task[DrawBatch]"]:
        """Select the winners of the current tier and start their reveal.

        Runs synchronously up to the point where winners are removed from the
        pool, so a second call made before the reveal starts is already a
        no-op. Must be called on the event loop thread.

        Returns:
            The reveal task, or ``None`` when a draw is already in flight
        """
        # Exhaustion and completion are reported even while a draw is in flight
        if self.pool.is_exhausted:
            self._reject(ExhaustedPoolError("All entries have been drawn!"))
        if self.prizes.is_complete(len(self.history)):
            self._reject(PrizesCompleteError("All prizes have been awarded!"))
        if not self.is_idle:
            logger.debug(f"Draw request ignored while {self.state.value}")
            return None

        prize_index = len(self.history)
        prize_name = self.current_prize_name()
        is_final_prize = self.prizes.is_final(prize_index)

        self._set_state(DrawState.SELECTING)
        count = min(self.winners_per_prize, self.pool.remaining_count)
        try:
            winners = self.selector.select_winners(self.pool.remaining, count)
            self.pool.remove(winners)
        except NotAvailableError:
            logger.error("Selected entries were not in the pool", exc_info=True)
            self._set_state(DrawState.IDLE)
            raise

        self._in_flight = tuple(winners)
        logger.info(
            f"Drawing {len(winners)} winner(s) for '{prize_name}', "
            f"{self.pool.remaining_count} entries left"
        )

        task = asyncio.ensure_future(
            self._reveal_and_commit(prize_name, winners, is_final_prize, self._generation)
        )
        task.add_done_callback(self._on_draw_done)
        self._draw_task = task
        return task

    def _on_draw_done(self, task: "asyncio.Task[DrawBatch]") -> None:
        if self._draw_task is task:
            self._draw_task = None
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Draw failed: {error}", exc_info=error)

    async def _reveal_and_commit(
        self,
        prize_name: str,
        winners: Sequence[str],
        is_final_prize: bool,
        generation: int,
    ) -> DrawBatch:
        pool = self.pool
        self._set_state(DrawState.REVEALING)
        with self.monitor.track_reveal():
            for position, winner in enumerate(winners):
                is_last = position == len(winners) - 1
                animator = RevealAnimator(
                    winner,
                    mode=pool.mode,
                    selector=self.selector,
                    digit_width=pool.digit_width,
                    pool_entries=pool.entries,
                    is_final_reveal=is_final_prize and is_last,
                )
                logger.debug(describe_schedule(animator))
                await animator.run(self.clock, self._on_frame)
                if not is_last:
                    await self.clock.sleep(RevealTimings.WINNER_PAUSE_MS)

        # A handler may have cancelled the draw during the last frame
        if generation != self._generation:
            raise asyncio.CancelledError()

        self._set_state(DrawState.COMMITTING)
        batch = DrawBatch(prize_name=prize_name, entries=tuple(winners))
        self.history.append(batch)
        self._in_flight = ()
        self.monitor.record_draw("committed")
        logger.info(f"Committed {prize_name}: {', '.join(batch.entries)}")

        self.events.emit(EngineEvent.BATCH_COMMITTED, batch, is_final_prize)
        if self.prizes.is_complete(len(self.history)):
            logger.info("All prizes have been awarded")
            self.events.emit(EngineEvent.ALL_PRIZES_COMPLETE)

        self.phase = None
        self._set_state(DrawState.IDLE)
        return batch

    def _on_frame(self, frame: RevealFrame) -> None:
        self.display_value = frame.value
        self.phase = frame.phase
        self.events.emit(EngineEvent.DISPLAY_CHANGED, frame.value)
        if frame.tick:
            self.events.emit(EngineEvent.TICK, frame.value)

    def cancel_draw(self) -> bool:
        """Abort the reveal in flight without committing it.

        The selected entries stay out of the pool and no history record is
        written; use :meth:`reset` to return them.

        Returns:
            True if a draw was cancelled
        """
        if self._draw_task is None:
            return False
        self._discard_in_flight("cancelled")
        return True

    def _discard_in_flight(self, reason: str) -> None:
        task = self._draw_task
        self._draw_task = None
        self._generation += 1
        if task is not None and not task.done():
            task.cancel()
        if self._in_flight:
            logger.warning(
                f"Draw {reason} before commit; {len(self._in_flight)} selected "
                f"entries stay removed without a history record: {', '.join(self._in_flight)}"
            )
            self.monitor.record_draw("cancelled")
        self._in_flight = ()
        self.phase = None
        self._set_state(DrawState.IDLE)

    # ------------------------------------------------------------------
    # Undo / reset
    # ------------------------------------------------------------------

    def undo(self) -> Optional[DrawBatch]:
        """Reverse the most recent batch and return its entries to the pool.

        Returns:
            The removed batch, or ``None`` when a draw is in flight

        Raises:
            EmptyHistoryError: If nothing has been drawn yet
        """
        last = self.history.last
        if last is None:
            self._reject(EmptyHistoryError("There is no draw to undo."))
        if not self.is_idle:
            logger.debug(f"Undo ignored while {self.state.value}")
            return None

        # Validate the restore before popping so a failure leaves both untouched
        self.pool.restore(last.entries)
        batch = self.history.pop_last()
        self.display_value = batch.entries[0]
        self.monitor.record_undo()
        logger.info(f"Undid {batch.prize_name}: {', '.join(batch.entries)} returned to the pool")
        self._set_state(DrawState.IDLE)
        return batch

    def reset(self) -> None:
        """Cancel any draw in flight, clear the history and refill the pool."""
        if self._draw_task is not None:
            self._discard_in_flight("reset")
        self.history.clear()
        self.pool.reset()
        self.display_value = self._idle_display()
        logger.info(f"Draw reset: {self.pool.total_count} entries, {len(self.prizes)} prizes")
        self._set_state(DrawState.IDLE)

    async def close(self) -> None:
        """Tear down: stop the reveal in flight and wait for event handlers."""
        if self._draw_task is not None:
            self._discard_in_flight("shutdown")
        await self.events.drain()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure_entries(self, spec: str, mode: Optional[DrawMode] = None) -> EntryPool:
        """Replace the pool from a raw specification and reset the draw.

        Raises:
            InvalidSpecError: If the specification is invalid; the previous
                pool and history are kept
        """
        pool = EntryPool.configure(spec, mode or self.pool.mode)
        self._replace_pool(pool, input_value=spec)
        return pool

    def configure_entries_from_lines(self, lines: Iterable[str], mode: Optional[DrawMode] = None) -> EntryPool:
        """Replace the pool from imported lines (one entry per line) and reset."""
        pool = EntryPool.from_entries(lines, mode or self.pool.mode)
        self._replace_pool(pool, input_value=", ".join(pool.entries))
        return pool

    def _replace_pool(self, pool: EntryPool, input_value: str) -> None:
        if self._draw_task is not None:
            self._discard_in_flight("reconfigured")
        self.pool = pool
        self.input_value = input_value
        self.reset()

    def configure_prizes(self, names: Iterable[str]) -> PrizeSequencer:
        """Replace the prize tiers, keeping the draws already committed.

        Raises:
            InvalidSpecError: If the list is invalid, shorter than the history,
                or a draw is in flight
        """
        if not self.is_idle:
            raise InvalidSpecError("Prizes cannot change while a draw is in progress.")
        prizes = PrizeSequencer.from_names(names)
        if len(prizes) < len(self.history):
            raise InvalidSpecError(
                f"{len(self.history)} prizes have already been drawn; keep at least that many."
            )
        self.prizes = prizes
        self.history.capacity = len(prizes)
        logger.info(f"Configured prizes: {', '.join(prize.name for prize in prizes.prizes)}")
        self._set_state(self.state)
        return prizes

    def set_winners_per_prize(self, count: int) -> None:
        """Set how many winners each later draw selects.

        Raises:
            InvalidSpecError: If ``count`` is not a positive integer
        """
        if not validate_winners_per_prize(count):
            raise InvalidSpecError("Winners per prize must be a positive whole number.")
        self.winners_per_prize = count
        logger.info(f"Winners per prize set to {count}")
        self._set_state(self.state)

    def restore_state(
        self,
        pool: EntryPool,
        prizes: PrizeSequencer,
        batches: Sequence[DrawBatch],
        winners_per_prize: int,
        input_value: str = "",
        title: Optional[str] = None,
    ) -> None:
        """Adopt a previously saved pool, prize list and history.

        Raises:
            SessionError: If the parts are inconsistent with each other or a
                draw is in flight
        """
        if not self.is_idle:
            raise SessionError("A session cannot be restored while a draw is in progress.")
        if not validate_winners_per_prize(winners_per_prize):
            raise SessionError("Saved winners per prize is not a positive whole number.")
        if len(batches) > len(prizes):
            raise SessionError("Saved history has more batches than prizes.")

        history = HistoryLedger(batches, capacity=len(prizes))
        drawn = history.drawn_entries()
        if len(set(drawn)) != len(drawn):
            raise SessionError("Saved history lists the same entry twice.")
        if set(drawn) & set(pool.remaining):
            raise SessionError("Saved history overlaps the remaining entries.")
        if not set(drawn) <= set(pool.entries):
            raise SessionError("Saved history lists entries that are not in the pool.")
        unaccounted = set(pool.entries) - set(drawn) - set(pool.remaining)
        if unaccounted:
            # Left behind by a draw cancelled before it committed
            logger.warning(
                f"{len(unaccounted)} saved entries are neither remaining nor in the history"
            )

        self.pool = pool
        self.prizes = prizes
        self.history = history
        self.winners_per_prize = winners_per_prize
        self.input_value = input_value
        if title:
            self.title = title
        self.display_value = (
            pool.remaining[0] if pool.remaining else self._idle_display()
        )
        logger.info(
            f"Restored session: {pool.remaining_count}/{pool.total_count} entries remaining, "
            f"{len(batches)} of {len(prizes)} prizes drawn"
        )
        self._set_state(DrawState.IDLE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _idle_display(self) -> str:
        if self.pool.entries:
            return self.pool.entries[0]
        if self.pool.mode is DrawMode.NUMBERS:
            return DrawDefaults.EMPTY_NUMERIC_DISPLAY
        return DrawDefaults.EMPTY_NAME_DISPLAY

    def _reject(self, error: DrawEngineError) -> NoReturn:
        self.monitor.record_rejection(error.kind)
        logger.info(f"Rejected: {error}")
        raise error

    def _set_state(self, state: DrawState) -> None:
        self.state = state
        self.monitor.record_pool(self.pool.remaining_count, self.pool.total_count)
        self.events.emit(EngineEvent.STATE_CHANGED, self.snapshot())
