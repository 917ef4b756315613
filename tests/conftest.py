"""Common test fixtures for marknotes."""

import pytest

from marknotes.app import NotesApp
from marknotes.config import AppConfig
from marknotes.models.schema import Settings
from marknotes.services.editor_session import EditorSession
from marknotes.services.tag_index import TagIndex
from marknotes.storage.kv_store import MemoryKeyValueStore, SqliteKeyValueStore
from marknotes.storage.note_store import NoteStore
from tests.fakes import FakeTimerFactory


@pytest.fixture
def seed_store():
    """A store holding the three example notes."""
    return NoteStore.from_seed()


@pytest.fixture
def empty_store():
    return NoteStore()


@pytest.fixture
def tag_index(seed_store):
    return TagIndex(seed_store)


@pytest.fixture
def timers():
    """Deterministic replacement for threading.Timer."""
    return FakeTimerFactory()


@pytest.fixture
def settings():
    return Settings(auto_save=True, auto_save_delay=2000)


@pytest.fixture
def session(seed_store, settings, timers):
    """An editor session over the seed store with fake timers."""
    return EditorSession(seed_store, settings=settings, timer_factory=timers)


@pytest.fixture
def memory_kv():
    return MemoryKeyValueStore()


@pytest.fixture
def sqlite_kv():
    """A SQLite key-value store in memory."""
    store = SqliteKeyValueStore(db_url="sqlite://")
    yield store
    store.close()


@pytest.fixture
def app_config(tmp_path):
    """Config that keeps every file inside the test's temp dir."""
    return AppConfig(
        base_dir=tmp_path,
        in_memory_db=True,
        export_dir=tmp_path / "exports",
        github_api_url="https://api.github.test",
    )


@pytest.fixture
def app(memory_kv, app_config, timers):
    """A NotesApp started on an empty key-value store (so seeded)."""
    notes_app = NotesApp.init(kv_store=memory_kv, app_config=app_config, timer_factory=timers)
    yield notes_app
    notes_app.close()
