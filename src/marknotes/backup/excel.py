"""Spreadsheet export and import of the note collection (openpyxl)."""
import datetime
import io
import logging
import re
import zipfile
from pathlib import Path
from typing import IO, Iterable, List, Optional, Union

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException
from pydantic import ValidationError as PydanticValidationError

from marknotes.config import config
from marknotes.exceptions import ErrorCode, SerializationError
from marknotes.models.schema import Note, ensure_timezone_aware
from marknotes.observability import timed_operation

logger = logging.getLogger(__name__)

SHEET_TITLE = "Notes"
COLUMNS = ["ID", "Title", "Content", "Tags", "Created At", "Updated At"]
TAG_SEPARATOR = ", "

# OOXML character escapes: "_x000D_" is a carriage return, "_x005F_" a
# literal underscore. XML parsers fold "\r\n" into "\n", so "\r" has to
# travel escaped, and so does any "_x" already present in the text.
_OOXML_ESCAPE = re.compile(r"_x(005F|000D)_", re.IGNORECASE)
_OOXML_CHARS = {"005F": "_", "000D": "\r"}


def escape_text(text: str) -> str:
    """Escape note text so it survives the XML inside an .xlsx file."""
    return text.replace("_x", "_x005F_x").replace("\r", "_x000D_")


def unescape_text(text: str) -> str:
    """Reverse ``escape_text``."""
    return _OOXML_ESCAPE.sub(lambda m: _OOXML_CHARS[m.group(1).upper()], text)


def _note_row(note: Note) -> list:
    return [
        escape_text(note.id),
        escape_text(note.title),
        escape_text(note.content),
        escape_text(TAG_SEPARATOR.join(note.tags)),
        note.created_at.isoformat(),
        note.updated_at.isoformat(),
    ]


def build_workbook(notes: Iterable[Note]) -> Workbook:
    """Build a one-sheet workbook with a header row and one row per note."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(COLUMNS)
    for note in notes:
        ws.append(_note_row(note))
        # Note text is data, never a formula
        for cell in ws[ws.max_row]:
            if isinstance(cell.value, str) and cell.value.startswith("="):
                cell.data_type = "s"
    return wb


def export_notes_bytes(notes: Iterable[Note]) -> bytes:
    """Serialize notes to an in-memory .xlsx file.

    Raises:
        SerializationError: If a value cannot be written to the sheet.
    """
    notes = list(notes)
    with timed_operation("export_bytes", count=len(notes)):
        try:
            wb = build_workbook(notes)
            bio = io.BytesIO()
            wb.save(bio)
        except (IllegalCharacterError, ValueError, TypeError) as e:
            raise SerializationError(
                "Failed to export notes to spreadsheet",
                code=ErrorCode.EXPORT_FAILED,
                original_error=e,
            ) from e
    return bio.getvalue()


def export_notes(
    notes: Iterable[Note], path: Optional[Union[str, Path]] = None
) -> Path:
    """Write notes to an .xlsx file.

    Args:
        notes: The notes to export, in display order.
        path: Destination file. Defaults to ``personal-notes.xlsx`` in the
            configured export directory.

    Returns:
        The path written.

    Raises:
        SerializationError: If the workbook cannot be built or written.
    """
    notes = list(notes)
    target = Path(path) if path else config.get_export_path()
    with timed_operation("export", count=len(notes)) as op:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            wb = build_workbook(notes)
            wb.save(target)
        except (IllegalCharacterError, ValueError, TypeError, OSError) as e:
            raise SerializationError(
                "Failed to export notes to spreadsheet",
                path=str(target),
                code=ErrorCode.EXPORT_FAILED,
                original_error=e,
            ) from e
        op["path"] = target
    logger.info(f"Exported {len(notes)} notes to {target}")
    return target


def _parse_timestamp(value) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return ensure_timezone_aware(value)
    return ensure_timezone_aware(datetime.datetime.fromisoformat(str(value).strip()))


def _text(value) -> str:
    return "" if value is None else str(value)


def split_tags(value) -> List[str]:
    """Split a comma-joined tag cell back into trimmed tags."""
    if value is None:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def import_notes(source: Union[str, Path, bytes, IO[bytes]]) -> List[Note]:
    """Read notes back from a spreadsheet written by ``export_notes``.

    Columns are located by header name, so reordered sheets still load.

    Args:
        source: A path, raw .xlsx bytes, or a binary file object.

    Returns:
        The notes in sheet order.

    Raises:
        SerializationError: If the file is unreadable, a column is missing,
            or a row does not form a valid note.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
        raise SerializationError(
            "Could not open spreadsheet",
            path=str(source) if isinstance(source, (str, Path)) else None,
            code=ErrorCode.IMPORT_FAILED,
            original_error=e,
        ) from e

    try:
        ws = wb[SHEET_TITLE] if SHEET_TITLE in wb.sheetnames else wb.active
        rows = ws.iter_rows(values_only=True)
        header = [str(cell).strip() if cell is not None else "" for cell in next(rows, ())]
        missing = [name for name in COLUMNS if name not in header]
        if missing:
            raise SerializationError(
                f"Spreadsheet is missing columns: {', '.join(missing)}",
                code=ErrorCode.IMPORT_FAILED,
            )
        position = {name: header.index(name) for name in COLUMNS}

        notes: List[Note] = []
        for line, row in enumerate(rows, start=2):
            if row is None or all(cell is None for cell in row):
                continue
            try:
                notes.append(
                    Note(
                        id=unescape_text(_text(row[position["ID"]])),
                        title=unescape_text(_text(row[position["Title"]])),
                        content=unescape_text(_text(row[position["Content"]])),
                        tags=split_tags(unescape_text(_text(row[position["Tags"]]))),
                        created_at=_parse_timestamp(row[position["Created At"]]),
                        updated_at=_parse_timestamp(row[position["Updated At"]]),
                    )
                )
            except (PydanticValidationError, ValueError, TypeError, IndexError) as e:
                raise SerializationError(
                    f"Invalid note in spreadsheet row {line}",
                    code=ErrorCode.IMPORT_FAILED,
                    original_error=e,
                ) from e
    finally:
        wb.close()

    logger.info(f"Imported {len(notes)} notes from spreadsheet")
    return notes
