# tests/test_exceptions.py
"""Tests for the structured error hierarchy."""
from marknotes.exceptions import (
    ConfigurationError,
    ErrorCode,
    ExternalServiceError,
    NotesError,
    NoteValidationError,
    SerializationError,
    StorageError,
)


def test_to_dict():
    error = NoteValidationError("Note title or content is required", field="title", code=ErrorCode.NOTE_EMPTY)
    assert error.to_dict() == {
        "error": "NoteValidationError",
        "code": 1003,
        "code_name": "NOTE_EMPTY",
        "message": "Note title or content is required",
        "details": {"field": "title"},
    }


def test_str_includes_code_and_details():
    error = StorageError("Failed to write 'k'", operation="set", key="k", code=ErrorCode.STORAGE_WRITE_FAILED)
    assert str(error) == "[STORAGE_WRITE_FAILED] Failed to write 'k' (operation=set, key=k)"


def test_str_without_details():
    assert str(NotesError("plain")) == "[NOTE_VALIDATION_FAILED] plain"


def test_long_values_truncated():
    error = NoteValidationError("bad", value="x" * 500)
    assert len(error.details["value"]) == 100


def test_original_error_recorded():
    cause = OSError("disk full")
    error = SerializationError(
        "Failed to export notes to spreadsheet",
        path="/tmp/exports/personal-notes.xlsx",
        code=ErrorCode.EXPORT_FAILED,
        original_error=cause,
    )
    assert error.details["path_hint"] == "personal-notes.xlsx"
    assert error.details["original_error"] == "disk full"


def test_all_errors_share_base():
    for error in (
        ConfigurationError("missing", config_key="token", code=ErrorCode.CONFIG_MISSING),
        ExternalServiceError("down", service="github", status_code=503),
    ):
        assert isinstance(error, NotesError)
