"""The authoritative in-memory collection of notes."""
import json
import logging
import threading
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from marknotes.exceptions import ErrorCode, NoteValidationError, SerializationError
from marknotes.models.schema import UNTITLED_TITLE, Note, utc_now
from marknotes.models.seed import seed_notes
from marknotes.observability import traced

logger = logging.getLogger(__name__)

StoreListener = Callable[[str, Note], None]


class NoteStore:
    """Ordered, id-unique collection of committed notes.

    New notes are prepended so they surface first; committing an existing
    id replaces that entry in place without reordering. Every commit and
    delete bumps ``revision`` and notifies listeners, which is how derived
    views such as the tag index know to recompute.

    The store hands out and keeps copies: mutating a note returned by
    ``get`` or passed to ``commit`` never changes stored state.
    """

    def __init__(self, notes: Optional[Iterable[Note]] = None):
        self._notes: List[Note] = []
        self._lock = threading.RLock()
        self._listeners: List[StoreListener] = []
        self.revision = 0
        if notes is not None:
            self.load(notes)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_seed(cls) -> "NoteStore":
        """Create a store holding the example notes."""
        return cls(seed_notes())

    @classmethod
    def from_snapshot(cls, snapshot: str) -> "NoteStore":
        """Create a store from a JSON snapshot produced by ``to_snapshot``.

        Raises:
            SerializationError: If the snapshot is not a valid list of notes.
        """
        return cls(parse_snapshot(snapshot))

    def load(self, notes: Iterable[Note]) -> None:
        """Replace the whole collection, keeping the first note for any repeated id."""
        loaded: List[Note] = []
        seen = set()
        for note in notes:
            if note.id in seen:
                logger.warning(f"Skipping duplicate note id '{note.id}' while loading")
                continue
            seen.add(note.id)
            loaded.append(note.model_copy(deep=True))
        with self._lock:
            self._notes = loaded
            self.revision += 1
        logger.info(f"Loaded {len(loaded)} notes")

    def to_snapshot(self) -> str:
        """Serialize the collection (in store order) to a JSON string."""
        with self._lock:
            data = [note.model_dump(mode="json") for note in self._notes]
        return json.dumps(data, ensure_ascii=False)

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: StoreListener) -> None:
        """Register a callback invoked as ``listener(event, note)`` after a mutation.

        ``event`` is "created", "updated" or "deleted".
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: str, note: Note) -> None:
        for listener in list(self._listeners):
            listener(event, note)

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(
        self, title: str = "", content: str = "", tags: Optional[Iterable[str]] = None
    ) -> Note:
        """Build a transient draft with a fresh id and timestamps.

        The draft is not inserted; that happens on ``commit``.
        """
        now = utc_now()
        return Note(
            title=title,
            content=content,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )

    @traced("commit")
    def commit(self, note: Note) -> Note:
        """Insert or replace a note.

        The title is trimmed and defaults to "Untitled Note" when empty,
        and ``updated_at`` is set to now. A note with an existing id replaces
        that entry in place but keeps its original ``created_at``; a new id
        is prepended.

        Args:
            note: The note to commit.

        Returns:
            The committed note (a copy of what the store now holds).

        Raises:
            NoteValidationError: If both title and content are empty after
                trimming. The store is left unchanged.
        """
        if note.is_blank:
            raise NoteValidationError(
                "Note title or content is required",
                field="title",
                code=ErrorCode.NOTE_EMPTY,
            )

        with self._lock:
            index = self._index_of(note.id)
            # created_at is fixed by the first commit of an id
            created_at = note.created_at if index is None else self._notes[index].created_at
            committed = note.model_copy(
                deep=True,
                update={
                    "title": note.title.strip() or UNTITLED_TITLE,
                    "created_at": created_at,
                    "updated_at": max(utc_now(), created_at),
                },
            )
            if index is None:
                self._notes.insert(0, committed)
                event = "created"
            else:
                self._notes[index] = committed
                event = "updated"
            self.revision += 1

        logger.info(f"Note {event}: {committed.id} ({committed.title!r})")
        self._notify(event, committed)
        return committed.model_copy(deep=True)

    def delete(self, note_id: str) -> bool:
        """Remove the note with the given id.

        Returns:
            True if a note was removed, False if the id was not present.
        """
        with self._lock:
            index = self._index_of(note_id)
            if index is None:
                logger.debug(f"Delete ignored, note not found: {note_id}")
                return False
            removed = self._notes.pop(index)
            self.revision += 1

        logger.info(f"Note deleted: {note_id}")
        self._notify("deleted", removed)
        return True

    def get(self, note_id: str) -> Optional[Note]:
        """Look up a note by id. Returns a copy, or None when not found."""
        with self._lock:
            index = self._index_of(note_id)
            if index is None:
                return None
            return self._notes[index].model_copy(deep=True)

    def all(self) -> List[Note]:
        """All notes in store order."""
        with self._lock:
            return [note.model_copy(deep=True) for note in self._notes]

    def _index_of(self, note_id: str) -> Optional[int]:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return index
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._notes)

    def __contains__(self, note_id: object) -> bool:
        with self._lock:
            return any(note.id == note_id for note in self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self.all())


def parse_snapshot(snapshot: str) -> List[Note]:
    """Decode a JSON snapshot into notes.

    Raises:
        SerializationError: If the text is not JSON or an entry is not a valid note.
    """
    try:
        raw: Any = json.loads(snapshot)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            "Note snapshot is not valid JSON",
            code=ErrorCode.SNAPSHOT_CORRUPTED,
            original_error=e,
        ) from e

    if not isinstance(raw, list):
        raise SerializationError(
            "Note snapshot must be a list of notes",
            code=ErrorCode.SNAPSHOT_CORRUPTED,
        )

    notes: List[Note] = []
    for position, entry in enumerate(raw):
        try:
            notes.append(Note.model_validate(_from_legacy_keys(entry)))
        except (PydanticValidationError, TypeError) as e:
            raise SerializationError(
                f"Invalid note at position {position} in snapshot",
                code=ErrorCode.SNAPSHOT_CORRUPTED,
                original_error=e,
            ) from e
    return notes


def _from_legacy_keys(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Accept snapshots that use camelCase timestamp keys."""
    if not isinstance(entry, dict):
        raise TypeError(f"expected an object, got {type(entry).__name__}")
    data = dict(entry)
    for legacy, current in (("createdAt", "created_at"), ("updatedAt", "updated_at")):
        if legacy in data and current not in data:
            data[current] = data.pop(legacy)
    return data
