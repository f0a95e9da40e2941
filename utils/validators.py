"""Input validation helpers."""

import re
from typing import Iterable, List


DIGITS_RE = re.compile(r"^[0-9]+$")
RANGE_RE = re.compile(r"^\s*([0-9]+)\s*-\s*([0-9]+)\s*$")


def is_range_spec(value: str) -> bool:
    """Return True when ``value`` should be read as a ``start-end`` range."""
    stripped = value.strip()
    return "-" in stripped and "," not in stripped


def is_numeric_token(value: str) -> bool:
    return bool(value and DIGITS_RE.match(value))


def split_entry_list(value: str, separator: str = ",") -> List[str]:
    """Split a separated list into trimmed, non-empty tokens."""
    if not value:
        return []
    return [token.strip() for token in value.split(separator) if token.strip()]


def unique_in_order(tokens: Iterable[str]) -> List[str]:
    """Deduplicate tokens while keeping their first-seen order."""
    return list(dict.fromkeys(tokens))


def validate_prize_name(value: str) -> bool:
    if not value:
        return False
    stripped = value.strip()
    return 1 <= len(stripped) <= 100


def validate_winners_per_prize(value) -> bool:
    # bool is an int subclass; reject it explicitly
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1
