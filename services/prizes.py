"""Prize tiers and their draw order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from core.constants import DrawDefaults
from core.exceptions import InvalidSpecError
from utils.validators import validate_prize_name


@dataclass(frozen=True)
class Prize:
    """One prize tier."""
    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class PrizeSequencer:
    """Ordered prize tiers; index 0 is drawn first.

    The sequencer holds no cursor of its own: the current tier is always the
    number of committed batches, which the caller passes in.
    """

    def __init__(self, prizes: Sequence[Prize]) -> None:
        self._prizes: Tuple[Prize, ...] = tuple(prizes)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "PrizeSequencer":
        """Build tiers from display names, numbering them from 1.

        Raises:
            InvalidSpecError: If the list is empty or contains a blank name
        """
        cleaned: List[str] = []
        for name in names:
            if not isinstance(name, str) or not validate_prize_name(name):
                raise InvalidSpecError("Prize names must be between 1 and 100 characters.")
            cleaned.append(name.strip())
        if not cleaned:
            raise InvalidSpecError("Please provide at least one prize.")
        return cls([Prize(id=index, name=name) for index, name in enumerate(cleaned, start=1)])

    @classmethod
    def default(cls) -> "PrizeSequencer":
        return cls.from_names(DrawDefaults.PRIZES)

    @property
    def prizes(self) -> Tuple[Prize, ...]:
        return self._prizes

    def __len__(self) -> int:
        return len(self._prizes)

    def is_complete(self, awarded: int) -> bool:
        return awarded >= len(self._prizes)

    def is_final(self, index: int) -> bool:
        """Return True when ``index`` is the last prize tier."""
        return index == len(self._prizes) - 1

    def prize_at(self, index: int) -> Optional[Prize]:
        if 0 <= index < len(self._prizes):
            return self._prizes[index]
        return None

    def current_name(self, awarded: int) -> str:
        """Name of the tier drawn next, or the terminal sentinel when all are awarded."""
        prize = self.prize_at(awarded)
        return prize.name if prize is not None else DrawDefaults.ALL_PRIZES_DRAWN
