"""Services package."""

from .async_runner import set_main_loop, get_main_loop, run_coroutine_sync, call_in_loop
from .clock import Clock, LoopClock, VirtualClock
from .entry_pool import EntryPool, parse_entry_spec
from .prizes import Prize, PrizeSequencer
from .lottery import RandomSelector
from .reveal import RevealAnimator, RevealFrame
from .history import DrawBatch, HistoryLedger
from .events import EventBus
from .draw_engine import DrawEngine, DrawSnapshot
from .session_store import SessionData, SessionStore, apply_session, capture_session
from .export import iter_winners_csv, winners_csv, write_winners_csv, public_board, export_filename

__all__ = [
    "set_main_loop",
    "get_main_loop",
    "run_coroutine_sync",
    "call_in_loop",
    # Draw engine
    "Clock",
    "LoopClock",
    "VirtualClock",
    "EntryPool",
    "parse_entry_spec",
    "Prize",
    "PrizeSequencer",
    "RandomSelector",
    "RevealAnimator",
    "RevealFrame",
    "DrawBatch",
    "HistoryLedger",
    "EventBus",
    "DrawEngine",
    "DrawSnapshot",
    # Persistence and export
    "SessionData",
    "SessionStore",
    "apply_session",
    "capture_session",
    "iter_winners_csv",
    "winners_csv",
    "write_winners_csv",
    "public_board",
    "export_filename",
]
