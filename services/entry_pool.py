"""Entry pool: parsing of entry specifications and tracking of undrawn entries."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from core import get_logger
from core.constants import DrawMode, EntryLimits
from core.exceptions import InvalidSpecError, NotAvailableError
from utils.validators import (
    RANGE_RE,
    is_numeric_token,
    is_range_spec,
    split_entry_list,
    unique_in_order,
)

logger = get_logger(__name__)


def _parse_range(raw: str) -> List[str]:
    match = RANGE_RE.match(raw)
    if match is None:
        raise InvalidSpecError('Invalid range format. Please use "start-end".')

    start_token, end_token = match.group(1), match.group(2)
    start, end = int(start_token), int(end_token)
    if start >= end:
        raise InvalidSpecError("Invalid range. Start must be less than end.")
    if len(start_token) > EntryLimits.MAX_DIGITS:
        raise InvalidSpecError(
            f"Ticket numbers cannot exceed {EntryLimits.MAX_DIGITS} digits."
        )
    if end - start + 1 > EntryLimits.MAX_ENTRIES:
        raise InvalidSpecError(
            f"Range is too large. Please use a range of {EntryLimits.MAX_ENTRIES:,} tickets or less."
        )

    width = len(start_token)
    return [str(number).zfill(width) for number in range(start, end + 1)]


def normalize_entries(tokens: Iterable[str], mode: DrawMode) -> Tuple[List[str], int]:
    """Validate a token list and return ``(entries, digit_width)``.

    Tokens are trimmed and deduplicated in order. In numbers mode every token
    must be digits only and the whole set is padded to the widest token.
    ``digit_width`` is 0 in names mode.

    Raises:
        InvalidSpecError: If the list is empty, too long, or holds invalid tickets
    """
    entries = unique_in_order(token.strip() for token in tokens if token and token.strip())

    if not entries:
        raise InvalidSpecError("Please provide at least one valid entry.")
    if len(entries) > EntryLimits.MAX_ENTRIES:
        raise InvalidSpecError(
            f"Too many entries. Please provide {EntryLimits.MAX_ENTRIES:,} or less."
        )

    if mode is not DrawMode.NUMBERS:
        return entries, 0

    invalid = [entry for entry in entries if not is_numeric_token(entry)]
    if invalid:
        raise InvalidSpecError(f"Ticket numbers must contain digits only: {invalid[0]!r}")

    width = max(len(entry) for entry in entries)
    if width > EntryLimits.MAX_DIGITS:
        raise InvalidSpecError(
            f"Ticket numbers cannot exceed {EntryLimits.MAX_DIGITS} digits."
        )

    # Padding can merge tokens such as "7" and "07"
    padded = unique_in_order(entry.zfill(width) for entry in entries)
    return padded, width


def parse_entry_spec(raw: str, mode: DrawMode) -> Tuple[List[str], int]:
    """Parse a raw entry specification typed by the host.

    Numbers mode accepts either a single inclusive range ``"start-end"`` or a
    comma-separated list. Names mode always reads a comma-separated list.

    Args:
        raw: Entry specification, e.g. ``"001-250"`` or ``"Ann, Bob"``
        mode: Draw mode the pool is built for

    Returns:
        Tuple of (entries in canonical order, digit width)

    Raises:
        InvalidSpecError: If the specification is malformed or out of bounds
    """
    mode = DrawMode(mode)
    text = (raw or "").strip()

    if mode is DrawMode.NUMBERS and is_range_spec(text):
        return normalize_entries(_parse_range(text), mode)
    return normalize_entries(split_entry_list(text), mode)


class EntryPool:
    """Canonical entry set plus the entries that have not been drawn yet."""

    def __init__(
        self,
        entries: Sequence[str] = (),
        mode: DrawMode = DrawMode.NUMBERS,
        digit_width: int = 0,
        remaining: Optional[Iterable[str]] = None,
    ) -> None:
        self.entries: Tuple[str, ...] = tuple(entries)
        self.mode = DrawMode(mode)
        self.digit_width = digit_width
        self._remaining: List[str] = []
        self._remaining_set: set[str] = set()
        if remaining is None:
            self.reset()
        else:
            self._set_remaining(remaining)

    @classmethod
    def configure(cls, raw: str, mode: DrawMode) -> "EntryPool":
        """Build a fresh pool from a raw entry specification."""
        entries, width = parse_entry_spec(raw, mode)
        logger.info(f"Configured {len(entries)} entries in {DrawMode(mode).value} mode")
        return cls(entries, mode=mode, digit_width=width)

    @classmethod
    def from_entries(cls, tokens: Iterable[str], mode: DrawMode) -> "EntryPool":
        """Build a fresh pool from pre-split entries, e.g. lines of an imported file."""
        entries, width = normalize_entries(tokens, DrawMode(mode))
        logger.info(f"Imported {len(entries)} entries in {DrawMode(mode).value} mode")
        return cls(entries, mode=mode, digit_width=width)

    @property
    def remaining(self) -> Tuple[str, ...]:
        return tuple(self._remaining)

    @property
    def remaining_count(self) -> int:
        return len(self._remaining)

    @property
    def total_count(self) -> int:
        return len(self.entries)

    @property
    def is_exhausted(self) -> bool:
        return not self._remaining

    def __contains__(self, entry: str) -> bool:
        return entry in self._remaining_set

    def reset(self) -> None:
        """Put every entry back into the remaining set."""
        self._set_remaining(self.entries)

    def remove(self, entries: Iterable[str]) -> None:
        """Remove drawn entries from the remaining set.

        Raises:
            NotAvailableError: If any entry is not currently remaining; the pool
                is left untouched in that case
        """
        to_remove = list(entries)
        missing = [entry for entry in to_remove if entry not in self._remaining_set]
        if missing or len(set(to_remove)) != len(to_remove):
            raise NotAvailableError(f"Entries are not available for drawing: {missing or to_remove}")

        removed = set(to_remove)
        self._remaining = [entry for entry in self._remaining if entry not in removed]
        self._remaining_set -= removed

    def restore(self, entries: Iterable[str]) -> None:
        """Return entries to the remaining set, keeping it in sorted order."""
        to_restore = unique_in_order(entry for entry in entries if entry not in self._remaining_set)
        unknown = [entry for entry in to_restore if entry not in self.entries]
        if unknown:
            raise NotAvailableError(f"Entries do not belong to this pool: {unknown}")
        self._set_remaining(sorted(self._remaining + to_restore))

    def drawn(self) -> Tuple[str, ...]:
        """Entries no longer remaining, in canonical order."""
        return tuple(entry for entry in self.entries if entry not in self._remaining_set)

    def _set_remaining(self, entries: Iterable[str]) -> None:
        remaining = list(entries)
        known = set(self.entries)
        stray = [entry for entry in remaining if entry not in known]
        if stray:
            raise NotAvailableError(f"Entries do not belong to this pool: {stray}")
        if len(set(remaining)) != len(remaining):
            raise NotAvailableError("Remaining entries contain duplicates.")
        self._remaining = remaining
        self._remaining_set = set(remaining)

    def __repr__(self) -> str:
        return (
            f"<EntryPool(mode={self.mode.value}, total={self.total_count}, "
            f"remaining={self.remaining_count}, width={self.digit_width})>"
        )
