"""Application state for one notes session, wiring the core components together.

The presentation layer holds a ``NotesApp`` and calls its methods for every
user intent. Errors never escape these methods: they are turned into
``Notification`` records (the transient toasts of the UI).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from marknotes.backup import excel
from marknotes.backup.github import GitHubClient, SyncStatus, sync_status
from marknotes.config import AppConfig, config as default_config
from marknotes.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    NotesError,
    NoteValidationError,
    SerializationError,
    StorageError,
)
from marknotes.models.schema import BackupConfig, Note, Settings
from marknotes.observability import configure_logging
from marknotes.services.editor_session import EditorSession, SessionState, TimerFactory
from marknotes.services.query_engine import FilterState
from marknotes.services.settings_service import SettingsService
from marknotes.services.tag_index import TagIndex
from marknotes.storage.kv_store import KeyValueStore, SqliteKeyValueStore
from marknotes.storage.note_store import NoteStore
from marknotes.viewmodel import NoteListItem, TagFilterItem, note_list, tag_filters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A transient message for the user."""

    message: str
    level: str = "info"  # "success", "error" or "info"


class NotesApp:
    """Explicit application state: store, tag index, filter, editor and settings."""

    def __init__(
        self,
        kv_store: KeyValueStore,
        store: NoteStore,
        settings: Settings,
        backup_config: BackupConfig,
        app_config: Optional[AppConfig] = None,
        timer_factory: Optional[TimerFactory] = None,
        transport: Optional[httpx.BaseTransport] = None,
        on_notify: Optional[Callable[[Notification], None]] = None,
    ):
        self.config = app_config or default_config
        self.kv_store = kv_store
        self.settings_service = SettingsService(kv_store)
        self.store = store
        self.settings = settings
        self.backup_config = backup_config
        self.tag_index = TagIndex(store)
        self.filter = FilterState()
        self.session = EditorSession(
            store,
            settings=settings,
            timer_factory=timer_factory,
            on_save=self._on_saved,
            on_error=self._on_auto_save_error,
        )
        self.notifications: List[Notification] = []
        self._on_notify = on_notify
        self._transport = transport

    @classmethod
    def init(
        cls,
        kv_store: Optional[KeyValueStore] = None,
        app_config: Optional[AppConfig] = None,
        timer_factory: Optional[TimerFactory] = None,
        transport: Optional[httpx.BaseTransport] = None,
        on_notify: Optional[Callable[[Notification], None]] = None,
    ) -> "NotesApp":
        """Start a session: load settings, backup config and notes.

        Notes come from the stored snapshot; when there is none (or it is
        unreadable) the example notes are loaded instead, unless seeding
        is disabled in the config.
        """
        cfg = app_config or default_config
        if cfg.log_dir is not None:
            configure_logging(cfg.get_absolute_path(cfg.log_dir), level=cfg.log_level)
        kv = kv_store if kv_store is not None else SqliteKeyValueStore(db_url=cfg.get_db_url())
        service = SettingsService(kv)
        settings = service.load_settings()
        backup_config = service.load_backup_config()
        store = _restore_store(service, seed_on_empty=cfg.seed_on_empty)
        logger.info(
            f"Session started with {len(store)} notes "
            f"(auto_save={settings.auto_save}, backup_configured={backup_config.is_configured})"
        )
        return cls(
            kv,
            store,
            settings,
            backup_config,
            app_config=cfg,
            timer_factory=timer_factory,
            transport=transport,
            on_notify=on_notify,
        )

    # =========================================================================
    # Notifications and persistence
    # =========================================================================

    def notify(self, message: str, level: str = "info") -> Notification:
        notification = Notification(message=message, level=level)
        self.notifications.append(notification)
        if self._on_notify is not None:
            self._on_notify(notification)
        return notification

    def persist(self) -> bool:
        """Write the note snapshot to the key-value store."""
        try:
            self.settings_service.save_notes(self.store.to_snapshot())
            return True
        except StorageError as e:
            logger.error(f"Failed to persist notes: {e}")
            self.notify("Failed to save notes to local storage", "error")
            return False

    def _on_saved(self, note: Note) -> None:
        # Runs for explicit saves and auto-saves alike
        self.persist()
        self.notify("Note saved successfully", "success")

    def _on_auto_save_error(self, error: NotesError) -> None:
        self.notify(error.message, "error")

    # =========================================================================
    # Editing
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def current_note(self) -> Optional[Note]:
        return self.session.active_note

    def new_note(self) -> Note:
        return self.session.start_new()

    def open_note(self, note_id: str) -> bool:
        return self.session.open(note_id)

    def update_inputs(
        self, title: Optional[str] = None, content: Optional[str] = None
    ) -> None:
        self.session.update_inputs(title=title, content=content)

    def save_note(
        self, title: Optional[str] = None, content: Optional[str] = None
    ) -> Optional[Note]:
        """Save the open note. Returns the committed note, or None on failure."""
        try:
            note = self.session.save(title=title, content=content)
        except NoteValidationError as e:
            self.notify(e.message, "error")
            return None
        return note

    def delete_note(self) -> bool:
        """Delete the open note (after the user confirmed)."""
        if self.session.state is SessionState.EMPTY:
            return False
        removed = self.session.delete()
        if removed:
            self.persist()
            self.notify("Note deleted successfully", "success")
        return removed

    # =========================================================================
    # Tags
    # =========================================================================

    def add_tag(self, raw: str) -> bool:
        return self.session.add_tag(raw)

    def remove_tag(self, tag: str) -> bool:
        return self.session.remove_tag(tag)

    def tag_input(self, text: str) -> str:
        """Handle typing in the tag field; returns what stays in the field."""
        return self.session.add_tags_from_input(text)

    def tag_suggestions(self, text: str) -> List[str]:
        note = self.session.active_note
        exclude = note.tags if note is not None else ()
        return self.tag_index.suggest(text, exclude=exclude)

    # =========================================================================
    # Search and filtering
    # =========================================================================

    def search(self, text: str) -> List[Note]:
        self.filter.set_query(text)
        return self.visible_notes()

    def toggle_tag_filter(self, tag: str) -> List[Note]:
        self.filter.toggle_tag(tag)
        return self.visible_notes()

    def clear_filters(self) -> List[Note]:
        self.filter.clear()
        return self.visible_notes()

    def visible_notes(self) -> List[Note]:
        return self.filter.apply(self.store.all())

    def note_list(self) -> List[NoteListItem]:
        return note_list(self.visible_notes(), active_id=self.session.active_id)

    def tag_filters(self) -> List[TagFilterItem]:
        return tag_filters(self.tag_index.by_count(), self.filter.required_tags)

    # =========================================================================
    # Settings
    # =========================================================================

    def update_settings(self, **changes: Any) -> Settings:
        try:
            self.settings = self.settings_service.update_settings(self.settings, **changes)
        except PydanticValidationError as e:
            logger.warning(f"Rejected settings change {changes}: {e}")
            self.notify("Invalid settings", "error")
        except StorageError as e:
            logger.error(f"Failed to save settings: {e}")
            self.notify("Failed to save settings", "error")
        self.session.settings = self.settings
        return self.settings

    def toggle_dark_mode(self) -> Settings:
        return self.update_settings(dark_mode=not self.settings.dark_mode)

    # =========================================================================
    # Backup
    # =========================================================================

    @property
    def sync_status(self) -> SyncStatus:
        return sync_status(self.backup_config)

    def save_backup_settings(
        self, username: str, repository: str, token: str, file_path: str
    ) -> BackupConfig:
        try:
            self.backup_config = self.settings_service.save_backup_config(
                username=username,
                repository=repository,
                token=token,
                file_path=file_path,
            )
        except StorageError as e:
            logger.error(f"Failed to save backup settings: {e}")
            self.notify("Failed to save GitHub settings", "error")
            return self.backup_config
        self.notify("GitHub settings saved", "success")
        return self.backup_config

    def test_connection(self) -> bool:
        """Check the backup token against the remote service."""
        client = GitHubClient(
            self.backup_config,
            base_url=self.config.github_api_url,
            timeout=self.config.http_timeout,
            transport=self._transport,
        )
        try:
            client.test_connection()
        except ConfigurationError as e:
            self.notify(e.message, "error")
            return False
        except ExternalServiceError:
            self.notify("GitHub connection failed", "error")
            return False
        self.notify("GitHub connection successful", "success")
        return True

    def export(self, path: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Export every note to a spreadsheet. Returns the path, or None on failure."""
        target = Path(path) if path else self.config.get_export_path()
        try:
            written = excel.export_notes(self.store.all(), target)
        except SerializationError as e:
            logger.error(f"Export error: {e}")
            self.notify("Failed to export to Excel", "error")
            return None
        self.notify("Notes exported to Excel successfully", "success")
        return written

    def close(self) -> None:
        """Cancel any pending auto-save. The session has no other teardown."""
        self.session.cancel_pending()


def _restore_store(service: SettingsService, seed_on_empty: bool = True) -> NoteStore:
    try:
        snapshot = service.load_notes()
    except StorageError as e:
        logger.error(f"Could not read saved notes: {e}")
        snapshot = None

    if snapshot is not None:
        try:
            return NoteStore.from_snapshot(snapshot)
        except SerializationError as e:
            logger.warning(f"Saved notes are unreadable, starting over: {e}")

    if seed_on_empty:
        return NoteStore.from_seed()
    return NoteStore()
