"""Exception hierarchy for marknotes.

Every error carries an ``ErrorCode`` and a small ``details`` dict. None of
them escape a ``NotesApp`` operation: the facade catches them and shows a
notification instead.
"""
from enum import Enum
from typing import Any, Dict, Optional

# Longest stringified value kept in ``details``
_MAX_DETAIL_CHARS = 200


class ErrorCode(Enum):
    """Stable numeric codes, grouped by area."""

    # Notes (1xxx)
    NOTE_VALIDATION_FAILED = 1002
    NOTE_EMPTY = 1003

    # Local storage (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    SNAPSHOT_CORRUPTED = 4003

    # Spreadsheet backup (5xxx)
    EXPORT_FAILED = 5001
    IMPORT_FAILED = 5002

    # Configuration (6xxx)
    CONFIG_MISSING = 6002

    # Remote backup service (8xxx)
    REMOTE_UNREACHABLE = 8001
    REMOTE_AUTH_FAILED = 8002


def _details(limit: int = _MAX_DETAIL_CHARS, **values: Any) -> Dict[str, Any]:
    """Drop unset values; stringify and truncate exceptions and long text."""
    result: Dict[str, Any] = {}
    for key, value in values.items():
        if value is None or value == "":
            continue
        if isinstance(value, BaseException) or (isinstance(value, str) and len(value) > limit):
            value = str(value)[:limit]
        result[key] = value
    return result


class NotesError(Exception):
    """Base class for marknotes errors.

    Attributes:
        message: Text suitable for showing to the user.
        code: Machine-readable error code.
        details: Extra context for logs; never shown to the user.
    """

    default_code = ErrorCode.NOTE_VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        text = f"[{self.code.name}] {self.message}"
        if self.details:
            text += " (" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")"
        return text


class NoteValidationError(NotesError):
    """A note cannot be committed, e.g. both title and content are empty."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(
            message,
            code=code,
            details=_details(
                limit=100, field=field, value=None if value is None else str(value)
            ),
        )
        self.field = field
        self.value = value


class StorageError(NotesError):
    """The key-value store could not be read or written."""

    default_code = ErrorCode.STORAGE_READ_FAILED

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code=code,
            details=_details(operation=operation, key=key, original_error=original_error),
        )
        self.operation = operation
        self.key = key
        self.original_error = original_error


class SerializationError(NotesError):
    """Notes could not be encoded or decoded (export, import, snapshot)."""

    default_code = ErrorCode.EXPORT_FAILED

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        original_error: Optional[Exception] = None,
    ):
        # Only the file name goes into details, not the full path
        path_hint = path.replace("\\", "/").rsplit("/", 1)[-1] if path else None
        super().__init__(
            message,
            code=code,
            details=_details(path_hint=path_hint, original_error=original_error),
        )
        self.path = path
        self.original_error = original_error


class ExternalServiceError(NotesError):
    """The remote backup service was unreachable or rejected the request."""

    default_code = ErrorCode.REMOTE_UNREACHABLE

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[ErrorCode] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code=code,
            details=_details(
                service=service, status_code=status_code, original_error=original_error
            ),
        )
        self.service = service
        self.status_code = status_code
        self.original_error = original_error


class ConfigurationError(NotesError):
    """A required setting is missing."""

    default_code = ErrorCode.CONFIG_MISSING

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(message, code=code, details=_details(config_key=config_key))
        self.config_key = config_key
