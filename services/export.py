"""Winner exports: CSV download and the read-only public board."""

from __future__ import annotations

import csv
import re
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator

from core import get_logger
from services.history import DrawBatch

if TYPE_CHECKING:
    from services.draw_engine import DrawSnapshot

logger = get_logger(__name__)


CSV_HEADER = ("prize", "position", "entry")


def _csv_line(row: Iterable) -> str:
    buffer = StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(row)
    return buffer.getvalue()


def iter_winners_csv(history: Iterable[DrawBatch]) -> Iterator[str]:
    """Yield the winners CSV line by line, suitable for a streamed response.

    The first chunk is a UTF-8 BOM so spreadsheet tools detect the encoding.
    """
    yield "\ufeff"
    yield _csv_line(CSV_HEADER)
    for batch in history:
        for position, entry in enumerate(batch.entries, start=1):
            yield _csv_line((batch.prize_name, position, entry))


def winners_csv(history: Iterable[DrawBatch]) -> str:
    return "".join(iter_winners_csv(history))


def public_board(snapshot: "DrawSnapshot", title: str) -> dict:
    """Payload of the public display: title plus winners grouped by prize."""
    return {
        "title": title,
        "current_prize_name": snapshot.current_prize_name,
        "all_prizes_drawn": snapshot.all_prizes_drawn,
        "winners": [batch.to_dict() for batch in snapshot.history],
    }


def export_filename(title: str, extension: str = "csv") -> str:
    """File name for an export, e.g. ``all-winners-Live-Lucky-Draw.csv``."""
    slug = re.sub(r"\s+", "-", title.strip()) or "draw"
    slug = re.sub(r"[^\w\-]", "", slug)
    return f"all-winners-{slug}.{extension}"


def write_winners_csv(history: Iterable[DrawBatch], folder: str, title: str) -> Path:
    """Write the winners CSV into ``folder`` and return its path.

    An existing export for the same title is overwritten.
    """
    path = Path(folder) / export_filename(title)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.writelines(iter_winners_csv(history))
    logger.info(f"Winners exported to {path}")
    return path
