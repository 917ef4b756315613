"""Data models for marknotes."""

import datetime
import os
import threading
from datetime import timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

# Title given to notes saved with content but no title
UNTITLED_TITLE = "Untitled Note"
# Tags are written out as comma-separated text, so a tag never holds one
TAG_DELIMITER = ","


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    Snapshots and spreadsheets written by other tools may carry naive
    timestamps; those are assumed to be UTC.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same datetime with UTC timezone if it was naive, otherwise unchanged.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


# Thread-safe counter for uniqueness (seeded from PID for cross-process safety)
_id_lock = threading.Lock()
_last_timestamp = 0
_counter = (os.getpid() * 7) % 1_000_000


def generate_id() -> str:
    """Generate a timestamp-based note ID with guaranteed uniqueness.

    Returns:
        A string in format "YYYYMMDDTHHMMSSsssssscccccc" where:
        - YYYYMMDD is the date
        - T is the ISO 8601 date/time separator
        - HHMMSS is the time (hours, minutes, seconds)
        - ssssss is the 6-digit microsecond component
        - cccccc is a 6-digit counter for same-microsecond uniqueness

    IDs sort in creation order, which keeps them monotonically increasing
    within a session.
    """
    global _last_timestamp, _counter

    with _id_lock:
        now = utc_now()
        current_timestamp = int(now.timestamp() * 1_000_000)

        # If multiple IDs generated in same microsecond, increment counter
        if current_timestamp == _last_timestamp:
            _counter += 1
        else:
            _last_timestamp = current_timestamp
            _counter = (os.getpid() * 7) % 1_000_000

        _counter %= 1_000_000

        date_time = now.strftime("%Y%m%dT%H%M%S")
        return f"{date_time}{now.microsecond:06d}{_counter:06d}"


def normalize_tag(raw: str) -> str:
    """Normalize a tag the way every tag is stored: trimmed and lowercase.

    Returns an empty string for blank input; callers treat that as "no tag".
    """
    return (raw or "").strip().lower()


def normalize_tags(raw_tags: Iterable[str]) -> List[str]:
    """Normalize a sequence of tags, dropping blanks and duplicates.

    First occurrence wins, so display order follows insertion order. An
    entry holding commas is split into several tags, since a comma is the
    tag separator everywhere tags are written out as text.
    """
    seen = set()
    result: List[str] = []
    for raw in raw_tags:
        for part in (raw or "").split(TAG_DELIMITER):
            tag = normalize_tag(part)
            if tag and tag not in seen:
                seen.add(tag)
                result.append(tag)
    return result


class Note(BaseModel):
    """A titled, tagged markdown note."""

    id: str = Field(
        default_factory=generate_id,
        frozen=True,
        description="Unique, immutable ID of the note",
    )
    title: str = Field(default="", description="Title of the note (may be empty while editing)")
    content: str = Field(default="", description="Markdown body of the note")
    tags: List[str] = Field(
        default_factory=list,
        description="Lowercase, trimmed, de-duplicated tags in insertion order",
    )
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last committed (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate that the ID is a non-blank string."""
        if not v or not v.strip():
            raise ValueError("Note ID cannot be empty")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        """Normalize tags: trim, lowercase, drop blanks and duplicates."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(TAG_DELIMITER)
        return normalize_tags(str(tag) for tag in v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime.datetime) -> datetime.datetime:
        """Store all timestamps as timezone-aware UTC."""
        return ensure_timezone_aware(v)

    @model_validator(mode="after")
    def validate_chronology(self) -> "Note":
        """A note can never be updated before it was created."""
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be earlier than created_at")
        return self

    @property
    def is_blank(self) -> bool:
        """True when both title and content are empty after trimming."""
        return not self.title.strip() and not self.content.strip()

    def has_tag(self, tag: str) -> bool:
        """Check for a tag, case-insensitively."""
        return normalize_tag(tag) in self.tags

    def add_tag(self, tag: str) -> bool:
        """Add a tag to the note.

        Returns:
            True if the tag was added, False if it was blank, already
            present or contains a comma.
        """
        name = normalize_tag(tag)
        if not name or TAG_DELIMITER in name or name in self.tags:
            return False
        self.tags = [*self.tags, name]
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove an exact tag match from the note.

        Returns:
            True if the tag was removed, False if it wasn't present.
        """
        if tag not in self.tags:
            return False
        self.tags = [t for t in self.tags if t != tag]
        return True


class Settings(BaseModel):
    """User preferences, persisted as a JSON blob under camelCase keys."""

    dark_mode: bool = Field(default=False, alias="darkMode")
    auto_save: bool = Field(default=True, alias="autoSave")
    auto_save_delay: int = Field(default=2000, alias="autoSaveDelay", ge=0)
    show_preview: bool = Field(default=True, alias="showPreview")

    model_config = {"populate_by_name": True, "validate_assignment": True}

    @property
    def auto_save_seconds(self) -> float:
        """The auto-save debounce delay in seconds."""
        return self.auto_save_delay / 1000.0


class BackupConfig(BaseModel):
    """Remote backup settings, persisted as a JSON blob under camelCase keys."""

    token: str = Field(default="", repr=False)
    username: str = ""
    repository: str = ""
    file_path: str = Field(default="notes-data.xlsx", alias="filePath")

    model_config = {"populate_by_name": True}

    @field_validator("token", "username", "repository", "file_path")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return (v or "").strip()

    @computed_field(alias="isConfigured")
    @property
    def is_configured(self) -> bool:
        """True when username, repository and token are all set."""
        return bool(self.username and self.repository and self.token)
