"""History ledger of committed draw batches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from core.exceptions import EmptyHistoryError


@dataclass(frozen=True)
class DrawBatch:
    """Winners of one draw operation for one prize tier."""
    prize_name: str
    entries: Tuple[str, ...]

    def to_dict(self) -> dict:
        # Same shape as the saved session and the public board
        return {"prize": self.prize_name, "tickets": list(self.entries)}


class HistoryLedger:
    """Append-only record of batches that supports removing the last one."""

    def __init__(self, batches: Iterable[DrawBatch] = (), capacity: Optional[int] = None) -> None:
        self._batches: List[DrawBatch] = list(batches)
        self.capacity = capacity

    def append(self, batch: DrawBatch) -> None:
        """Record a committed batch.

        Raises:
            ValueError: If the ledger already holds one batch per prize tier
        """
        if self.capacity is not None and len(self._batches) >= self.capacity:
            raise ValueError(
                f"History already holds {len(self._batches)} batches for {self.capacity} prizes"
            )
        self._batches.append(batch)

    def pop_last(self) -> DrawBatch:
        """Remove and return the most recent batch.

        Raises:
            EmptyHistoryError: If nothing has been drawn yet
        """
        if not self._batches:
            raise EmptyHistoryError("There is no draw to undo.")
        return self._batches.pop()

    def clear(self) -> None:
        self._batches.clear()

    @property
    def batches(self) -> Tuple[DrawBatch, ...]:
        return tuple(self._batches)

    @property
    def last(self) -> Optional[DrawBatch]:
        return self._batches[-1] if self._batches else None

    def drawn_entries(self) -> List[str]:
        return [entry for batch in self._batches for entry in batch.entries]

    def __len__(self) -> int:
        return len(self._batches)

    def __iter__(self) -> Iterator[DrawBatch]:
        return iter(tuple(self._batches))
