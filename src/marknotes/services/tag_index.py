"""Derived view of the tags in use across the note collection."""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from marknotes.models.schema import Note, normalize_tag

logger = logging.getLogger(__name__)

# Maximum number of tag suggestions shown while typing
SUGGESTION_LIMIT = 5


@dataclass(frozen=True)
class TagSnapshot:
    """All distinct tags in use plus a per-tag note count.

    Attributes:
        tags: Distinct tags in first-seen order (store order, then tag order).
        counts: Number of notes carrying each tag.
    """

    tags: Tuple[str, ...] = ()
    counts: Dict[str, int] = field(default_factory=dict)

    def __contains__(self, tag: object) -> bool:
        return tag in self.counts

    def __len__(self) -> int:
        return len(self.tags)

    def suggest(
        self,
        text: str,
        exclude: Iterable[str] = (),
        limit: int = SUGGESTION_LIMIT,
    ) -> List[str]:
        """Suggest tags containing ``text``, case-insensitively.

        Tags in ``exclude`` (usually the open note's own tags) are skipped.
        Results keep index order; they are not sorted or ranked.

        Args:
            text: Partial tag typed by the user. Blank text suggests nothing.
            exclude: Tags that must not be suggested.
            limit: Maximum number of suggestions.

        Returns:
            At most ``limit`` matching tags.
        """
        needle = normalize_tag(text)
        if not needle:
            return []
        excluded = {normalize_tag(t) for t in exclude}
        matches = [t for t in self.tags if needle in t and t not in excluded]
        return matches[:limit]

    def by_count(self) -> List[Tuple[str, int]]:
        """(tag, count) pairs, most used first; ties keep index order."""
        return sorted(
            ((tag, self.counts[tag]) for tag in self.tags),
            key=lambda item: -item[1],
        )


def recompute(notes: Iterable[Note]) -> TagSnapshot:
    """Build a TagSnapshot from a full note collection.

    Pure function, linear in the total number of tags across all notes.
    """
    counts: Dict[str, int] = {}
    for note in notes:
        for tag in note.tags:
            counts[tag] = counts.get(tag, 0) + 1
    return TagSnapshot(tags=tuple(counts), counts=counts)


class TagIndex:
    """Cached TagSnapshot bound to a NoteStore.

    The store calls back on every commit and delete; the snapshot is
    rebuilt lazily on the next read. The index is never a source of truth.
    """

    def __init__(self, store):
        """Initialize the index.

        Args:
            store: The NoteStore whose tags are indexed.
        """
        self._store = store
        self._lock = threading.Lock()
        self._snapshot: Optional[TagSnapshot] = None
        self._revision = -1
        store.add_listener(self._on_store_change)

    def _on_store_change(self, event: str, note: Note) -> None:
        self.invalidate()

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next read recomputes."""
        with self._lock:
            self._snapshot = None

    def snapshot(self) -> TagSnapshot:
        """The current snapshot, recomputed if the store has changed."""
        with self._lock:
            if self._snapshot is None or self._revision != self._store.revision:
                self._revision = self._store.revision
                self._snapshot = recompute(self._store.all())
                logger.debug(f"Tag index recomputed: {len(self._snapshot)} tags")
            return self._snapshot

    @property
    def tags(self) -> Tuple[str, ...]:
        return self.snapshot().tags

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self.snapshot().counts)

    def suggest(
        self, text: str, exclude: Iterable[str] = (), limit: int = SUGGESTION_LIMIT
    ) -> List[str]:
        return self.snapshot().suggest(text, exclude=exclude, limit=limit)

    def by_count(self) -> List[Tuple[str, int]]:
        return self.snapshot().by_count()
