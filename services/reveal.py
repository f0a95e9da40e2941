"""Reveal animation: turns a known winner into a timed sequence of display values.

The winner is decided before the reveal starts. The animator only produces
frames; it never touches the pool or the history.

Numbers mode
    High digits spin and freeze one by one (``800 ms + 400 ms * i``). The low
    digit then decelerates along ``ease(p) = 1 - (1 - p)**2`` and lands on the
    target digit. The final winner of the final prize gets a longer
    deceleration and a single fake-out frame showing a wrong low digit.

Names mode
    The whole value is replaced by a random pool entry every frame until the
    slow-motion duration has elapsed, then it snaps to the winner.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Sequence

from core import get_logger
from core.constants import DrawMode, RevealPhase, RevealTimings
from services.clock import Clock
from services.lottery import RandomSelector

logger = get_logger(__name__)


def ease_out(progress: float) -> float:
    """Quadratic ease-out, clamped to ``[0, 1]``."""
    progress = min(1.0, max(0.0, progress))
    return 1.0 - (1.0 - progress) ** 2


def frame_delay(eased: float) -> float:
    """Delay before the next frame once deceleration has started."""
    return RevealTimings.MIN_DELAY_MS + eased * RevealTimings.DELAY_SPREAD_MS


@dataclass(frozen=True)
class RevealFrame:
    """One display update produced by the animator."""
    value: str
    phase: RevealPhase
    delay_ms: float
    tick: bool = False

    @property
    def settled(self) -> bool:
        return self.phase is RevealPhase.SETTLED


class RevealAnimator:
    """State machine for one winner reveal.

    :meth:`frame_at` advances the machine for a given elapsed time and is
    what tests drive directly; :meth:`run` loops it against a clock.
    """

    def __init__(
        self,
        target: str,
        *,
        mode: DrawMode,
        selector: RandomSelector,
        digit_width: int = 0,
        pool_entries: Sequence[str] = (),
        is_final_reveal: bool = False,
    ) -> None:
        self.mode = DrawMode(mode)
        self.selector = selector
        self.is_final_reveal = is_final_reveal
        self.slow_mo_duration = (
            RevealTimings.FINAL_SLOW_MO_MS if is_final_reveal else RevealTimings.SLOW_MO_MS
        )
        self.phase = RevealPhase.SPINNING

        if self.mode is DrawMode.NUMBERS:
            if digit_width < 1:
                raise ValueError("digit_width must be at least 1 in numbers mode")
            if len(target) > digit_width or not target.isdigit():
                raise ValueError(f"Target {target!r} does not fit a {digit_width}-digit display")
            self.target = target.zfill(digit_width)
            self.digit_width = digit_width
            self.lock_times: List[float] = [
                RevealTimings.FIRST_LOCK_MS + index * RevealTimings.LOCK_STEP_MS
                for index in range(digit_width - 1)
            ]
            self.slow_mo_start = self.lock_times[-1] if self.lock_times else RevealTimings.FIRST_LOCK_MS
            self._fake_out_pending = is_final_reveal
        else:
            if not pool_entries:
                raise ValueError("Names mode needs the pool entries to spin through")
            self.target = target
            self.digit_width = 0
            self.lock_times = []
            self.slow_mo_start = 0.0
            self._fake_out_pending = False
        self._pool_entries = tuple(pool_entries)

    @property
    def total_duration_ms(self) -> float:
        """Scheduled time from the first frame to the settled frame."""
        return self.slow_mo_start + self.slow_mo_duration

    @property
    def settled(self) -> bool:
        return self.phase is RevealPhase.SETTLED

    def frame_at(self, elapsed_ms: float) -> RevealFrame:
        """Produce the frame for ``elapsed_ms`` since the reveal started.

        Raises:
            RuntimeError: If the reveal has already settled
        """
        if self.settled:
            raise RuntimeError("Reveal has already settled")
        if self.mode is DrawMode.NAMES:
            frame = self._name_frame(elapsed_ms)
        else:
            frame = self._numeric_frame(elapsed_ms)
        self.phase = frame.phase
        return frame

    async def run(self, clock: Clock, on_frame: Callable[[RevealFrame], None]) -> str:
        """Play the reveal to completion and return the winner.

        ``on_frame`` receives every frame; the settled frame is delivered
        right before this coroutine returns and nothing follows it.
        """
        started = clock.now()
        while True:
            frame = self.frame_at(clock.now() - started)
            on_frame(frame)
            if frame.settled:
                return self.target
            await clock.sleep(frame.delay_ms)

    def _settle(self) -> RevealFrame:
        return RevealFrame(value=self.target, phase=RevealPhase.SETTLED, delay_ms=0.0)

    def _name_frame(self, elapsed_ms: float) -> RevealFrame:
        if elapsed_ms >= self.slow_mo_duration:
            return self._settle()
        eased = ease_out(elapsed_ms / self.slow_mo_duration)
        return RevealFrame(
            value=self.selector.choice(self._pool_entries),
            phase=RevealPhase.SPINNING,
            delay_ms=frame_delay(eased),
            tick=True,
        )

    def _numeric_frame(self, elapsed_ms: float) -> RevealFrame:
        if elapsed_ms < self.slow_mo_start:
            return self._spin_frame(elapsed_ms)

        slow_elapsed = elapsed_ms - self.slow_mo_start
        if slow_elapsed >= self.slow_mo_duration:
            return self._settle()

        high_digits = self.target[:-1]
        target_digit = int(self.target[-1])

        if self._fake_out_pending and slow_elapsed >= self.slow_mo_duration - RevealTimings.FAKE_OUT_LEAD_MS:
            self._fake_out_pending = False
            fake_digit = self.selector.random_digit(exclude=target_digit)
            logger.debug(f"Fake-out shows {fake_digit} instead of {target_digit}")
            return RevealFrame(
                value=f"{high_digits}{fake_digit}",
                phase=RevealPhase.FAKE_OUT,
                delay_ms=RevealTimings.FAKE_OUT_HOLD_MS + RevealTimings.FAKE_OUT_RESUME_MS,
            )

        eased = ease_out(slow_elapsed / self.slow_mo_duration)
        steps = RevealTimings.EASING_STEPS
        current_step = math.floor(eased * steps)
        low_digit = (target_digit + steps - current_step) % 10
        return RevealFrame(
            value=f"{high_digits}{low_digit}",
            phase=RevealPhase.DECELERATING,
            delay_ms=frame_delay(eased),
            tick=True,
        )

    def _spin_frame(self, elapsed_ms: float) -> RevealFrame:
        digits: List[str] = []
        locked_any = False
        for index, digit in enumerate(self.target):
            if index < len(self.lock_times) and elapsed_ms >= self.lock_times[index]:
                digits.append(digit)
                locked_any = True
            else:
                digits.append(str(self.selector.random_digit()))
        return RevealFrame(
            value="".join(digits),
            phase=RevealPhase.LOCKING if locked_any else RevealPhase.SPINNING,
            delay_ms=RevealTimings.SPIN_DELAY_MS,
            tick=True,
        )


def describe_schedule(animator: RevealAnimator) -> str:
    """Human readable summary of the reveal timing, used in debug logs."""
    if animator.mode is DrawMode.NAMES:
        return f"names reveal over {animator.slow_mo_duration:.0f} ms"
    return (
        f"{animator.digit_width}-digit reveal: locks at {animator.lock_times or '-'}, "
        f"decelerates from {animator.slow_mo_start:.0f} ms for {animator.slow_mo_duration:.0f} ms"
        + (" with fake-out" if animator.is_final_reveal else "")
    )
