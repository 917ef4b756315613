"""Search and tag filtering over the note collection."""
import logging
from typing import Iterable, List, Set

from marknotes.models.schema import Note, normalize_tag

logger = logging.getLogger(__name__)


def matches_query(note: Note, search_query: str) -> bool:
    """True if the query is empty or a substring of the title or content.

    Matching is case-insensitive.
    """
    if search_query == "":
        return True
    needle = search_query.lower()
    return needle in note.title.lower() or needle in note.content.lower()


def matches_tags(note: Note, required_tags: Iterable[str]) -> bool:
    """True if no tags are required or the note carries any one of them."""
    required = {normalize_tag(tag) for tag in required_tags}
    if not required:
        return True
    return not required.isdisjoint(note.tags)


def filter_notes(
    notes: Iterable[Note], search_query: str, required_tags: Iterable[str]
) -> List[Note]:
    """Filter notes by free-text query and required tags.

    A note is kept when it matches the query AND carries at least one of
    the required tags (tags are OR-ed). Input order is preserved.

    Args:
        notes: Notes in store order.
        search_query: Case-insensitive substring; "" matches everything.
        required_tags: Tags to filter by; empty means no tag filter.

    Returns:
        The matching notes, in input order.
    """
    required = {normalize_tag(tag) for tag in required_tags}
    return [
        note
        for note in notes
        if matches_query(note, search_query) and matches_tags(note, required)
    ]


class FilterState:
    """Transient per-session filter: a search query and a set of required tags.

    Not persisted.
    """

    def __init__(self, query: str = "", required_tags: Iterable[str] = ()):
        self.query = query
        self.required_tags: Set[str] = {normalize_tag(t) for t in required_tags if normalize_tag(t)}

    @property
    def is_active(self) -> bool:
        return bool(self.query) or bool(self.required_tags)

    def set_query(self, text: str) -> None:
        self.query = text or ""

    def toggle_tag(self, tag: str) -> bool:
        """Add the tag to the filter, or remove it if already selected.

        Returns:
            True if the tag is selected after the toggle.
        """
        name = normalize_tag(tag)
        if not name:
            return False
        if name in self.required_tags:
            self.required_tags.discard(name)
            return False
        self.required_tags.add(name)
        return True

    def clear(self) -> None:
        self.query = ""
        self.required_tags.clear()

    def apply(self, notes: Iterable[Note]) -> List[Note]:
        """Run ``filter_notes`` with this state."""
        result = filter_notes(notes, self.query, self.required_tags)
        logger.debug(
            f"Filter query={self.query!r} tags={sorted(self.required_tags)} -> {len(result)} notes"
        )
        return result
