# tests/test_kv_store.py
"""Tests for the key-value store implementations."""
import pytest
from sqlalchemy.exc import OperationalError

from marknotes.exceptions import ErrorCode, StorageError
from marknotes.models.db_models import DBEntry, init_db
from marknotes.storage.kv_store import MemoryKeyValueStore, SqliteKeyValueStore


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, memory_kv, sqlite_kv):
    """Run each contract test against both implementations."""
    return memory_kv if request.param == "memory" else sqlite_kv


class TestKeyValueContract:
    def test_missing_key(self, kv):
        assert kv.get("absent") is None

    def test_set_and_get(self, kv):
        kv.set("k", '{"a": 1}')
        assert kv.get("k") == '{"a": 1}'

    def test_overwrite(self, kv):
        kv.set("k", "one")
        kv.set("k", "two")
        assert kv.get("k") == "two"

    def test_delete(self, kv):
        kv.set("k", "v")
        assert kv.delete("k") is True
        assert kv.get("k") is None
        assert kv.delete("k") is False

    def test_empty_string_value(self, kv):
        kv.set("k", "")
        assert kv.get("k") == ""


class TestMemoryKeyValueStore:
    def test_initial_data_is_copied(self):
        initial = {"a": "1"}
        kv = MemoryKeyValueStore(initial)
        initial["a"] = "changed"
        assert kv.get("a") == "1"


class TestSqliteKeyValueStore:
    def test_file_database_survives_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'notes.db'}"
        first = SqliteKeyValueStore(db_url=url)
        first.set("notesAppSettings", '{"darkMode": true}')
        first.close()

        second = SqliteKeyValueStore(db_url=url)
        try:
            assert second.get("notesAppSettings") == '{"darkMode": true}'
        finally:
            second.close()

    def test_shared_engine(self):
        engine = init_db("sqlite://")
        a = SqliteKeyValueStore(engine=engine)
        b = SqliteKeyValueStore(engine=engine)
        a.set("k", "v")
        assert b.get("k") == "v"
        engine.dispose()

    def test_entry_repr(self):
        assert "size=3" in repr(DBEntry(key="k", value="abc"))

    def test_read_failure_becomes_storage_error(self, sqlite_kv, monkeypatch):
        def broken_session():
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(sqlite_kv, "session_factory", broken_session)
        with pytest.raises(StorageError) as exc_info:
            sqlite_kv.get("k")
        assert exc_info.value.code == ErrorCode.STORAGE_READ_FAILED
        assert exc_info.value.details["key"] == "k"

    def test_write_failure_becomes_storage_error(self, sqlite_kv, monkeypatch):
        def broken_session():
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(sqlite_kv, "session_factory", broken_session)
        with pytest.raises(StorageError) as exc_info:
            sqlite_kv.set("k", "v")
        assert exc_info.value.code == ErrorCode.STORAGE_WRITE_FAILED
