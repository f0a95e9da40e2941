"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Entry limits
class EntryLimits:
    """Bounds applied when parsing entry specifications."""
    MAX_ENTRIES = 40000
    MAX_DIGITS = 10


# Reveal timings (milliseconds)
class RevealTimings:
    """Timing schedule of the reveal animation."""
    FIRST_LOCK_MS = 800
    LOCK_STEP_MS = 400
    SPIN_DELAY_MS = 75
    MIN_DELAY_MS = 50
    DELAY_SPREAD_MS = 400
    SLOW_MO_MS = 4000
    FINAL_SLOW_MO_MS = 14000
    FAKE_OUT_LEAD_MS = 2000
    FAKE_OUT_HOLD_MS = 800
    FAKE_OUT_RESUME_MS = 50
    WINNER_PAUSE_MS = 2000
    EASING_STEPS = 10


# Draw defaults
class DrawDefaults:
    """Defaults used when no configuration or session is available."""
    ENTRY_SPEC = "1-50"
    PRIZES = ("3rd Prize", "2nd Prize", "1st Prize")
    WINNERS_PER_PRIZE = 1
    TITLE = "Live Lucky Draw"
    ALL_PRIZES_DRAWN = "All prizes drawn!"
    EMPTY_NUMERIC_DISPLAY = "1"
    EMPTY_NAME_DISPLAY = "Winner"


class DrawMode(str, Enum):
    """Kind of entries held by the pool."""
    NUMBERS = "numbers"
    NAMES = "names"


class DrawState(str, Enum):
    """Orchestrator state."""
    IDLE = "idle"
    SELECTING = "selecting"
    REVEALING = "revealing"
    COMMITTING = "committing"


class RevealPhase(str, Enum):
    """Phase of a single winner reveal."""
    SPINNING = "spinning"
    LOCKING = "locking"
    DECELERATING = "decelerating"
    FAKE_OUT = "fake_out"
    SETTLED = "settled"


class EngineEvent(str, Enum):
    """Events emitted by the draw engine."""
    TICK = "tick"
    DISPLAY_CHANGED = "display_changed"
    BATCH_COMMITTED = "batch_committed"
    ALL_PRIZES_COMPLETE = "all_prizes_complete"
    STATE_CHANGED = "state_changed"
