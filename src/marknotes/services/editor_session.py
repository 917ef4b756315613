"""Editing state for the single note currently open, with debounced auto-save."""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

from marknotes.exceptions import NotesError
from marknotes.models.schema import Note, Settings, normalize_tag
from marknotes.storage.note_store import NoteStore

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]


class SessionState(str, Enum):
    """Lifecycle of the editor."""

    EMPTY = "empty"  # No note open
    EDITING = "editing"  # A new draft that is not in the store yet
    EDITING_EXISTING = "editing_existing"  # A note loaded from (or saved to) the store


class AutoSaveScheduler:
    """A single cancelable, debounced task.

    Each ``schedule`` cancels the pending timer before starting a new one,
    so at most one firing is ever pending. Every schedule and cancel bumps a
    generation counter; a timer that fires after being superseded sees a
    stale generation and does nothing.
    """

    def __init__(
        self,
        callback: Callable[[int], None],
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            callback: Invoked as ``callback(generation)`` when a timer fires.
            timer_factory: Callable with the ``threading.Timer`` signature.
                Defaults to ``threading.Timer``.
        """
        self._callback = callback
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, delay: float) -> int:
        """(Re)start the debounce timer.

        Returns:
            The generation of the newly scheduled firing.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(delay, self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.debug(f"Auto-save scheduled in {delay:.3f}s (generation {generation})")
        return generation

    def cancel(self) -> bool:
        """Cancel the pending firing, if any.

        Returns:
            True if a firing was pending.
        """
        with self._lock:
            self._generation += 1
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
        logger.debug("Pending auto-save cancelled")
        return True

    def is_current(self, generation: int) -> bool:
        """True if no schedule or cancel has happened since ``generation``."""
        with self._lock:
            return generation == self._generation

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self._callback(generation)


class EditorSession:
    """Tracks the one note open for editing and mediates changes to it.

    The session works on its own copy of the note. Changes reach the
    NoteStore only through ``save`` (explicit or auto-save); the store's
    listeners take care of invalidating the tag index.

    Auto-save is a pure debounce: every input change restarts the timer,
    and when it fires the latest title/content inputs are saved. Switching
    notes, starting a new one or deleting cancels any pending auto-save so
    a stale write can never land on the wrong note.
    """

    def __init__(
        self,
        store: NoteStore,
        settings: Optional[Settings] = None,
        timer_factory: Optional[TimerFactory] = None,
        on_save: Optional[Callable[[Note], None]] = None,
        on_error: Optional[Callable[[NotesError], None]] = None,
    ):
        """Initialize the session in the EMPTY state.

        Args:
            store: The note store to load from and commit to.
            settings: User settings; ``auto_save`` and ``auto_save_delay``
                drive the debounce. Defaults to ``Settings()``.
            timer_factory: Timer implementation for the auto-save scheduler.
            on_save: Called with the committed note after every successful save.
            on_error: Called with the error when an auto-save fails.
        """
        self.store = store
        self.settings = settings or Settings()
        self.on_save = on_save
        self.on_error = on_error
        self._lock = threading.RLock()
        self._active: Optional[Note] = None
        self._title_input = ""
        self._content_input = ""
        self._scheduler = AutoSaveScheduler(self._on_timer, timer_factory)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._active is None:
                return SessionState.EMPTY
            if self._active.id in self.store:
                return SessionState.EDITING_EXISTING
            return SessionState.EDITING

    @property
    def active_note(self) -> Optional[Note]:
        """A copy of the open note, or None."""
        with self._lock:
            return self._active.model_copy(deep=True) if self._active else None

    @property
    def active_id(self) -> Optional[str]:
        with self._lock:
            return self._active.id if self._active else None

    @property
    def title_input(self) -> str:
        return self._title_input

    @property
    def content_input(self) -> str:
        return self._content_input

    @property
    def has_pending_save(self) -> bool:
        return self._scheduler.pending

    # =========================================================================
    # Opening and creating
    # =========================================================================

    def open(self, note_id: str) -> bool:
        """Load a stored note into the session.

        Returns:
            True if the note was opened; False (and no change) if it does not exist.
        """
        with self._lock:
            note = self.store.get(note_id)
            if note is None:
                logger.debug(f"Open ignored, note not found: {note_id}")
                return False
            self._scheduler.cancel()
            self._set_active(note)
        logger.debug(f"Opened note {note_id}")
        return True

    def start_new(self) -> Note:
        """Start a new, unsaved draft."""
        with self._lock:
            self._scheduler.cancel()
            draft = self.store.create()
            self._set_active(draft)
            return draft.model_copy(deep=True)

    def close(self) -> None:
        """Return to EMPTY without saving."""
        with self._lock:
            self._scheduler.cancel()
            self._set_active(None)

    def _set_active(self, note: Optional[Note]) -> None:
        self._active = note
        self._title_input = note.title if note else ""
        self._content_input = note.content if note else ""

    # =========================================================================
    # Editing
    # =========================================================================

    def update_inputs(
        self, title: Optional[str] = None, content: Optional[str] = None
    ) -> None:
        """Record the latest form input and schedule an auto-save."""
        with self._lock:
            if self._active is None:
                return
            if title is not None:
                self._title_input = title
            if content is not None:
                self._content_input = content
        self.schedule_auto_save()

    def save(
        self, title: Optional[str] = None, content: Optional[str] = None
    ) -> Optional[Note]:
        """Commit the open note with the given (or last-known) inputs.

        Args:
            title: Title input; the last-known title when None.
            content: Content input; the last-known content when None.

        Returns:
            The committed note, or None when no note is open.

        Raises:
            NoteValidationError: If title and content are both empty. The
                session and the store are left unchanged.
        """
        with self._lock:
            if self._active is None:
                return None
            title_input = self._title_input if title is None else title
            content_input = self._content_input if content is None else content

            draft = self._active.model_copy(deep=True)
            draft.title = title_input
            draft.content = content_input
            committed = self.store.commit(draft)

            self._scheduler.cancel()
            self._set_active(committed)

        if self.on_save is not None:
            self.on_save(committed)
        return committed.model_copy(deep=True)

    def delete(self) -> bool:
        """Delete the open note from the store and return to EMPTY.

        Returns:
            True if a stored note was removed. Deleting an unsaved draft
            only discards it and returns False.
        """
        with self._lock:
            self._scheduler.cancel()
            if self._active is None:
                return False
            removed = self.store.delete(self._active.id)
            self._set_active(None)
        return removed

    # =========================================================================
    # Tags
    # =========================================================================

    def add_tag(self, raw: str) -> bool:
        """Add a normalized tag to the open note and schedule an auto-save.

        Blank tags, tags already present (case-insensitively) and tags
        containing a comma are ignored.

        Returns:
            True if the tag was added.
        """
        with self._lock:
            if self._active is None:
                return False
            tag = normalize_tag(raw)
            if not self._active.add_tag(tag):
                return False
        logger.debug(f"Tag added: {tag}")
        self.schedule_auto_save()
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove an exact tag from the open note and schedule an auto-save.

        Returns:
            True if the tag was present and removed.
        """
        with self._lock:
            if self._active is None or not self._active.remove_tag(tag):
                return False
        logger.debug(f"Tag removed: {tag}")
        self.schedule_auto_save()
        return True

    def add_tags_from_input(self, text: str) -> str:
        """Add every comma-terminated tag in ``text``.

        Returns:
            The trailing fragment after the last comma (still being typed),
            or ``text`` unchanged when it contains no comma.
        """
        if "," not in text:
            return text
        *complete, remainder = text.split(",")
        for raw in complete:
            if raw.strip():
                self.add_tag(raw)
        return remainder.strip()

    # =========================================================================
    # Auto-save
    # =========================================================================

    def schedule_auto_save(self) -> bool:
        """(Re)start the auto-save debounce timer.

        Returns:
            True if a save was scheduled; False when auto-save is disabled
            or no note is open.
        """
        if not self.settings.auto_save:
            return False
        with self._lock:
            if self._active is None:
                return False
            self._scheduler.schedule(self.settings.auto_save_seconds)
        return True

    def cancel_pending(self) -> bool:
        """Cancel a pending auto-save. Returns True if one was pending."""
        return self._scheduler.cancel()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if not self._scheduler.is_current(generation) or self._active is None:
                return
            try:
                note = self.save()
            except NotesError as e:
                logger.warning(f"Auto-save failed: {e}")
                if self.on_error is not None:
                    self.on_error(e)
                return
        if note is not None:
            logger.debug(f"Auto-saved note {note.id}")
