"""Session persistence: JSON save/load of the draw state with autosave."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from core import get_logger
from core.constants import DrawDefaults, DrawMode, DrawState, EngineEvent
from core.exceptions import DrawEngineError, SessionError
from services.entry_pool import EntryPool
from services.history import DrawBatch
from services.prizes import PrizeSequencer
from utils.validators import is_numeric_token, validate_winners_per_prize

if TYPE_CHECKING:
    from services.draw_engine import DrawEngine, DrawSnapshot

logger = get_logger(__name__)


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return list(value)


# Sessions exported from browser clients use camelCase keys
_KEY_ALIASES = {
    "initialEntries": "initial_entries",
    "remainingEntries": "remaining_entries",
    "winnersHistory": "winners_history",
    "winnersPerPrize": "winners_per_prize",
    "inputValue": "input_value",
    "maxDigits": "max_digits",
    "drawMode": "draw_mode",
}


def _normalize_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(raw)
    for alias, key in _KEY_ALIASES.items():
        if alias in raw and key not in raw:
            normalized[key] = normalized.pop(alias)
    return normalized


@dataclass
class SessionData:
    """Saved draw session.

    Field names follow the JSON document written to disk.
    """
    initial_entries: List[str] = field(default_factory=list)
    remaining_entries: List[str] = field(default_factory=list)
    winners_history: List[Dict[str, Any]] = field(default_factory=list)
    prizes: List[Dict[str, Any]] = field(default_factory=list)
    winners_per_prize: int = DrawDefaults.WINNERS_PER_PRIZE
    input_value: str = ""
    max_digits: int = 0
    draw_mode: DrawMode = DrawMode.NUMBERS
    title: str = DrawDefaults.TITLE

    @classmethod
    def defaults(cls) -> "SessionData":
        """Empty pool with the default prize list."""
        return cls(prizes=[{"id": index, "name": name} for index, name in enumerate(DrawDefaults.PRIZES, start=1)])

    @classmethod
    def from_dict(cls, raw: Any) -> "SessionData":
        """Read a session document, filling missing optional fields with defaults.

        camelCase keys are accepted as aliases of the snake_case ones.

        Raises:
            SessionError: If the document is not an object or has no entry list
        """
        if isinstance(raw, dict):
            raw = _normalize_keys(raw)
        if not isinstance(raw, dict) or _string_list(raw.get("initial_entries")) is None:
            raise SessionError("Invalid session data structure.")

        data = cls.defaults()
        data.initial_entries = _string_list(raw["initial_entries"]) or []
        remaining = _string_list(raw.get("remaining_entries"))
        data.remaining_entries = remaining if remaining is not None else list(data.initial_entries)

        history = raw.get("winners_history")
        if isinstance(history, list):
            data.winners_history = history
        prizes = raw.get("prizes")
        if isinstance(prizes, list) and prizes:
            data.prizes = prizes
        if validate_winners_per_prize(raw.get("winners_per_prize")):
            data.winners_per_prize = raw["winners_per_prize"]
        if isinstance(raw.get("input_value"), str):
            data.input_value = raw["input_value"]
        if isinstance(raw.get("max_digits"), int):
            data.max_digits = raw["max_digits"]
        try:
            data.draw_mode = DrawMode(raw.get("draw_mode", DrawMode.NUMBERS.value))
        except ValueError:
            data.draw_mode = DrawMode.NUMBERS
        if isinstance(raw.get("title"), str) and raw["title"].strip():
            data.title = raw["title"]
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initial_entries": list(self.initial_entries),
            "remaining_entries": list(self.remaining_entries),
            "winners_history": list(self.winners_history),
            "prizes": list(self.prizes),
            "winners_per_prize": self.winners_per_prize,
            "input_value": self.input_value,
            "max_digits": self.max_digits,
            "draw_mode": self.draw_mode.value,
            "title": self.title,
        }


def capture_session(engine: "DrawEngine") -> SessionData:
    """Build a :class:`SessionData` from the engine's current state.

    Entries of a draw still in flight are already out of ``remaining`` but not
    in the history yet, so only idle engines produce restorable sessions.
    """
    snapshot: "DrawSnapshot" = engine.snapshot()
    return SessionData(
        initial_entries=list(engine.pool.entries),
        remaining_entries=list(engine.pool.remaining),
        winners_history=[batch.to_dict() for batch in snapshot.history],
        prizes=[prize.to_dict() for prize in snapshot.prizes],
        winners_per_prize=snapshot.winners_per_prize,
        input_value=engine.input_value,
        max_digits=snapshot.digit_width,
        draw_mode=snapshot.mode,
        title=engine.title,
    )


def apply_session(engine: "DrawEngine", data: SessionData) -> None:
    """Validate ``data`` and load it into ``engine``.

    Raises:
        SessionError: If the saved parts are malformed or inconsistent
    """
    mode = data.draw_mode
    entries = list(dict.fromkeys(data.initial_entries))
    if len(entries) != len(data.initial_entries):
        raise SessionError("Saved entries contain duplicates.")
    if mode is DrawMode.NUMBERS and not all(is_numeric_token(entry) for entry in entries):
        raise SessionError("Saved tickets must contain digits only.")
    width = max((len(entry) for entry in entries), default=0) if mode is DrawMode.NUMBERS else 0
    if mode is DrawMode.NUMBERS and any(len(entry) != width for entry in entries):
        raise SessionError("Saved tickets must all have the same number of digits.")

    batches: List[DrawBatch] = []
    for group in data.winners_history:
        if not isinstance(group, dict) or not isinstance(group.get("prize"), str):
            raise SessionError("Saved history entry is malformed.")
        tickets = _string_list(group.get("tickets"))
        if not tickets:
            raise SessionError("Saved history entry has no tickets.")
        batches.append(DrawBatch(prize_name=group["prize"], entries=tuple(tickets)))

    try:
        names = [prize["name"] for prize in data.prizes]
        prizes = PrizeSequencer.from_names(names)
        pool = EntryPool(entries, mode=mode, digit_width=width, remaining=data.remaining_entries)
    except (KeyError, TypeError, DrawEngineError) as e:
        raise SessionError(f"Saved session is invalid: {e}") from e

    engine.restore_state(
        pool,
        prizes,
        batches,
        data.winners_per_prize,
        input_value=data.input_value,
        title=data.title,
    )


class SessionStore:
    """JSON file holding the latest session, rewritten on every state change."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._unsubscribe: Optional[Callable[[], None]] = None

    def save(self, data: SessionData) -> bool:
        """Write the session atomically.

        Returns:
            True if saved successfully
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(temp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to save session to {self.path}: {e}", exc_info=True)
            return False

    def load(self) -> Optional[SessionData]:
        """Read the saved session.

        Returns:
            The session, ``None`` when no file exists, or
            :meth:`SessionData.defaults` when the file is unreadable or malformed
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            data = SessionData.from_dict(raw)
        except (OSError, ValueError, SessionError) as e:
            logger.warning(f"Ignoring unreadable session {self.path}: {e}")
            return SessionData.defaults()

        logger.info(f"Loaded session from {self.path}")
        return data

    def restore_into(self, engine: "DrawEngine") -> bool:
        """Load the saved session into ``engine``.

        An inconsistent session is replaced by the defaults (empty pool,
        default prizes).

        Returns:
            True if a saved session was found
        """
        data = self.load()
        if data is None:
            return False
        try:
            apply_session(engine, data)
        except SessionError as e:
            logger.warning(f"Saved session rejected, using defaults: {e}")
            apply_session(engine, SessionData.defaults())
        return True

    def attach(self, engine: "DrawEngine") -> None:
        """Autosave whenever the engine settles into a new state."""
        def _autosave(snapshot: "DrawSnapshot") -> None:
            if snapshot.state is DrawState.IDLE:
                self.save(capture_session(engine))

        self.detach()
        self._unsubscribe = engine.events.subscribe(EngineEvent.STATE_CHANGED, _autosave)
        logger.info(f"Autosave enabled: {self.path}")

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
