"""Key-value persistence for settings, backup config and note snapshots."""
import logging
import threading
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from marknotes.exceptions import ErrorCode, StorageError
from marknotes.models.db_models import DBEntry, init_db

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Durable string storage addressed by key.

    Values are opaque strings (the callers store JSON blobs).
    """

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None when absent."""
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was removed."""
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class SqliteKeyValueStore(KeyValueStore):
    """Key-value store backed by a SQLite table through SQLAlchemy.

    Each key is one row in ``kv_entries``. Writes are upserts inside a
    single session, so a failed write leaves the previous value intact.
    """

    def __init__(self, engine: Optional[Engine] = None, db_url: Optional[str] = None):
        """Initialize the store.

        Args:
            engine: Pre-configured SQLAlchemy engine. Created via init_db if None.
            db_url: Database URL used when no engine is given.
        """
        self.engine = engine if engine is not None else init_db(db_url)
        self.session_factory = sessionmaker(bind=self.engine)

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                entry = session.scalar(select(DBEntry).where(DBEntry.key == key))
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read '{key}'",
                operation="get",
                key=key,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def set(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as session:
                entry = session.get(DBEntry, key)
                if entry is None:
                    session.add(DBEntry(key=key, value=value))
                else:
                    entry.value = value
                session.commit()
            logger.debug(f"Stored '{key}' ({len(value)} chars)")
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to write '{key}'",
                operation="set",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def delete(self, key: str) -> bool:
        try:
            with self.session_factory() as session:
                entry = session.get(DBEntry, key)
                if entry is None:
                    return False
                session.delete(entry)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to delete '{key}'",
                operation="delete",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
