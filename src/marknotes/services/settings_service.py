"""Loading and saving of the JSON blobs kept in the key-value store."""
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from marknotes.models.schema import BackupConfig, Settings
from marknotes.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "notesAppSettings"
BACKUP_CONFIG_KEY = "notesAppGitHubConfig"
NOTES_KEY = "notesAppNotes"


class SettingsService:
    """Reads and writes user settings, backup config and the note snapshot.

    Stored blobs are merged over defaults, so a blob written by an older
    version (or hand-edited) still loads. Unreadable blobs fall back to
    defaults with a warning rather than failing the session.
    """

    def __init__(self, kv_store: KeyValueStore):
        self.kv_store = kv_store

    def _load_json(self, key: str) -> Optional[dict]:
        raw = self.kv_store.get(key)
        if raw is None:
            return None
        try:
            data: Any = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable '{key}': {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring '{key}': expected a JSON object")
            return None
        return data

    # =========================================================================
    # Settings
    # =========================================================================

    def load_settings(self) -> Settings:
        """Load settings, merging stored values over the defaults."""
        stored = self._load_json(SETTINGS_KEY)
        if not stored:
            return Settings()
        merged = {**Settings().model_dump(by_alias=True), **stored}
        try:
            return Settings.model_validate(merged)
        except PydanticValidationError as e:
            logger.warning(f"Invalid stored settings, using defaults: {e}")
            return Settings()

    def save_settings(self, settings: Settings) -> None:
        self.kv_store.set(SETTINGS_KEY, settings.model_dump_json(by_alias=True))
        logger.debug("Settings saved")

    def update_settings(self, settings: Settings, **changes: Any) -> Settings:
        """Apply changes by field name, persist, and return the new settings.

        Raises:
            pydantic.ValidationError: If a change is invalid (nothing is saved).
        """
        updated = Settings.model_validate({**settings.model_dump(), **changes})
        self.save_settings(updated)
        return updated

    def toggle_dark_mode(self, settings: Settings) -> Settings:
        return self.update_settings(settings, dark_mode=not settings.dark_mode)

    # =========================================================================
    # Backup configuration
    # =========================================================================

    def load_backup_config(self) -> BackupConfig:
        """Load the remote backup configuration, merged over defaults."""
        stored = self._load_json(BACKUP_CONFIG_KEY)
        if not stored:
            return BackupConfig()
        # isConfigured is derived, never trusted from storage
        merged = {**BackupConfig().model_dump(by_alias=True), **stored}
        merged.pop("isConfigured", None)
        try:
            return BackupConfig.model_validate(merged)
        except PydanticValidationError as e:
            logger.warning(f"Invalid stored backup config, using defaults: {e}")
            return BackupConfig()

    def save_backup_config(
        self,
        username: str,
        repository: str,
        token: str,
        file_path: str,
    ) -> BackupConfig:
        """Store trimmed backup settings; ``is_configured`` is derived."""
        backup_config = BackupConfig(
            username=username,
            repository=repository,
            token=token,
            file_path=file_path,
        )
        self.kv_store.set(BACKUP_CONFIG_KEY, backup_config.model_dump_json(by_alias=True))
        logger.info(
            f"Backup settings saved (configured={backup_config.is_configured})"
        )
        return backup_config

    # =========================================================================
    # Note snapshot
    # =========================================================================

    def load_notes(self) -> Optional[str]:
        """The stored note snapshot, or None if none has been saved."""
        return self.kv_store.get(NOTES_KEY)

    def save_notes(self, snapshot: str) -> None:
        self.kv_store.set(NOTES_KEY, snapshot)
