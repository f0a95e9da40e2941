"""Unit tests for winner exports."""

import csv
from io import StringIO

from services.export import export_filename, iter_winners_csv, public_board, winners_csv, write_winners_csv
from services.history import DrawBatch


HISTORY = (
    DrawBatch("3rd Prize", ("017",)),
    DrawBatch("Grand Prize, Car", ("004", "250")),
)


def test_csv_starts_with_bom_and_header():
    """Test the export opens cleanly in spreadsheet tools."""
    chunks = list(iter_winners_csv(HISTORY))
    assert chunks[0] == "\ufeff"
    assert chunks[1] == "prize,position,entry\n"


def test_csv_rows():
    """Test one row per winner with its position in the batch."""
    text = winners_csv(HISTORY).lstrip("\ufeff")
    rows = list(csv.reader(StringIO(text)))
    assert rows == [
        ["prize", "position", "entry"],
        ["3rd Prize", "1", "017"],
        ["Grand Prize, Car", "1", "004"],
        ["Grand Prize, Car", "2", "250"],
    ]


def test_csv_without_winners():
    """Test an empty history still has the header."""
    assert winners_csv(()) == "\ufeffprize,position,entry\n"


def test_public_board(engine):
    """Test the audience payload."""
    board = public_board(engine.snapshot(), "Gala Night")
    assert board == {
        "title": "Gala Night",
        "current_prize_name": "3rd Prize",
        "all_prizes_drawn": False,
        "winners": [],
    }


def test_export_filename():
    """Test titles become safe file names."""
    assert export_filename("Live Lucky Draw") == "all-winners-Live-Lucky-Draw.csv"
    assert export_filename("  Gala: 2026!  ") == "all-winners-Gala-2026.csv"
    assert export_filename("", extension="json") == "all-winners-draw.json"


def test_write_winners_csv(tmp_path):
    """Test the final results file written to the export folder."""
    path = write_winners_csv(HISTORY, str(tmp_path / "exports"), "Gala Night")
    assert path.name == "all-winners-Gala-Night.csv"
    text = path.read_text(encoding="utf-8-sig")
    assert text.splitlines()[0] == "prize,position,entry"
    assert len(text.splitlines()) == 4
