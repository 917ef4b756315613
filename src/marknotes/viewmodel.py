"""Render-ready records for the presentation layer.

Records carry plain text; escaping belongs to whatever template engine
draws them.
"""
import datetime
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from marknotes.models.schema import UNTITLED_TITLE, Note, ensure_timezone_aware, utc_now

PREVIEW_LENGTH = 150

# Markdown markers stripped from list previews, applied in order
_PREVIEW_RULES = [
    (re.compile(r"#{1,6}\s"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
]


@dataclass(frozen=True)
class NoteListItem:
    id: str
    title: str
    preview: str
    tags: Tuple[str, ...]
    updated_label: str
    active: bool = False


@dataclass(frozen=True)
class TagFilterItem:
    tag: str
    count: int
    selected: bool = False


def preview_text(content: str, limit: int = PREVIEW_LENGTH) -> str:
    """Plain-text preview of markdown content, truncated to ``limit`` chars.

    An ellipsis is appended when the original content is longer than the limit.
    """
    text = content
    for pattern, replacement in _PREVIEW_RULES:
        text = pattern.sub(replacement, text)
    suffix = "..." if len(content) > limit else ""
    return text[:limit] + suffix


def format_relative_date(
    value: datetime.datetime, now: Optional[datetime.datetime] = None
) -> str:
    """Human label for a timestamp: Today, Yesterday, "N days ago", or the date."""
    value = ensure_timezone_aware(value)
    now = ensure_timezone_aware(now) if now is not None else utc_now()
    days = (now - value).days
    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return value.date().isoformat()


def note_list(
    notes: Iterable[Note],
    active_id: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> List[NoteListItem]:
    """Build list rows for the filtered notes, marking the open one active."""
    return [
        NoteListItem(
            id=note.id,
            title=note.title or UNTITLED_TITLE,
            preview=preview_text(note.content),
            tags=tuple(note.tags),
            updated_label=format_relative_date(note.updated_at, now),
            active=note.id == active_id,
        )
        for note in notes
    ]


def tag_filters(
    tag_counts: Iterable[Tuple[str, int]], selected: Iterable[str] = ()
) -> List[TagFilterItem]:
    """Build the tag filter panel rows from (tag, count) pairs."""
    chosen = set(selected)
    return [
        TagFilterItem(tag=tag, count=count, selected=tag in chosen)
        for tag, count in tag_counts
    ]
