# tests/test_excel_backup.py
"""Tests for spreadsheet export and import."""
import io

import pytest
from openpyxl import Workbook, load_workbook

from marknotes.backup.excel import (
    COLUMNS,
    SHEET_TITLE,
    export_notes,
    export_notes_bytes,
    import_notes,
    split_tags,
)
from marknotes.exceptions import ErrorCode, SerializationError
from marknotes.models.schema import Note


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    for row in rows:
        ws.append(row)
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


class TestExport:
    def test_header_and_rows(self, seed_store):
        data = export_notes_bytes(seed_store.all())
        ws = load_workbook(io.BytesIO(data))[SHEET_TITLE]
        rows = list(ws.iter_rows(values_only=True))
        assert list(rows[0]) == COLUMNS
        assert len(rows) == 4
        assert rows[1][0] == "1"
        assert rows[2][1] == "Markdown Syntax Guide"
        assert rows[3][3] == "projects, ideas, development, todo"

    def test_export_to_file(self, seed_store, tmp_path):
        target = tmp_path / "out" / "personal-notes.xlsx"
        written = export_notes(seed_store.all(), target)
        assert written == target
        assert target.exists()
        assert len(import_notes(target)) == 3

    def test_export_empty_collection(self, tmp_path):
        path = export_notes([], tmp_path / "empty.xlsx")
        ws = load_workbook(path)[SHEET_TITLE]
        assert ws.max_row == 1

    def test_export_to_unwritable_location(self, seed_store, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(SerializationError) as exc_info:
            export_notes(seed_store.all(), blocker / "notes.xlsx")
        assert exc_info.value.code == ErrorCode.EXPORT_FAILED

    def test_formula_like_text_stays_text(self):
        note = Note(id="f", title="=SUM(1,2)", content="=cmd|' /C calc'!A0")
        restored = import_notes(export_notes_bytes([note]))[0]
        assert restored.title == "=SUM(1,2)"
        assert restored.content == "=cmd|' /C calc'!A0"


class TestImport:
    def test_round_trip_preserves_fields(self, seed_store):
        originals = seed_store.all() + [
            Note(
                id="crlf",
                title="  padded  ",
                content="line1\r\nline2  \n_x000D_ stays literal\r",
                tags=["windows"],
            )
        ]
        restored = import_notes(export_notes_bytes(originals))
        assert [n.id for n in restored] == [n.id for n in originals]
        for before, after in zip(originals, restored):
            assert after.title == before.title
            assert after.content == before.content
            assert after.tags == before.tags
            assert after.created_at == before.created_at
            assert after.updated_at == before.updated_at

    def test_reordered_columns(self):
        data = _workbook_bytes([
            ["Title", "ID", "Tags", "Content", "Updated At", "Created At"],
            ["Shuffled", "9", "a, b", "text", "2025-08-09T15:00:00+00:00", "2025-08-09T14:00:00+00:00"],
        ])
        note = import_notes(data)[0]
        assert note.id == "9"
        assert note.title == "Shuffled"
        assert note.tags == ["a", "b"]

    def test_empty_rows_skipped(self):
        data = _workbook_bytes([
            COLUMNS,
            ["1", "One", "", "", "2025-08-09T14:00:00+00:00", "2025-08-09T14:00:00+00:00"],
            [None, None, None, None, None, None],
        ])
        assert len(import_notes(data)) == 1

    def test_numeric_cells_become_text(self):
        data = _workbook_bytes([
            COLUMNS,
            [7, 2024, 42, None, "2025-08-09T14:00:00+00:00", "2025-08-09T14:00:00+00:00"],
        ])
        note = import_notes(data)[0]
        assert (note.id, note.title, note.content, note.tags) == ("7", "2024", "42", [])

    def test_missing_columns(self):
        data = _workbook_bytes([["ID", "Title"], ["1", "x"]])
        with pytest.raises(SerializationError) as exc_info:
            import_notes(data)
        assert exc_info.value.code == ErrorCode.IMPORT_FAILED
        assert "Content" in exc_info.value.message

    def test_bad_timestamp(self):
        data = _workbook_bytes([
            COLUMNS,
            ["1", "x", "", "", "yesterday", "2025-08-09T14:00:00+00:00"],
        ])
        with pytest.raises(SerializationError) as exc_info:
            import_notes(data)
        assert "row 2" in exc_info.value.message

    def test_not_a_spreadsheet(self):
        with pytest.raises(SerializationError) as exc_info:
            import_notes(b"definitely not a zip file")
        assert exc_info.value.code == ErrorCode.IMPORT_FAILED

    def test_missing_file(self, tmp_path):
        with pytest.raises(SerializationError):
            import_notes(tmp_path / "nope.xlsx")


def test_split_tags():
    assert split_tags("a, b ,, c") == ["a", "b", "c"]
    assert split_tags(None) == []
    assert split_tags("") == []
