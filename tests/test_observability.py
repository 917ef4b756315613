# tests/test_observability.py
"""Tests for logging setup, operation timing and session stats."""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from marknotes.exceptions import NoteValidationError
from marknotes.models.schema import Note
from marknotes.observability import (
    SessionStats,
    configure_logging,
    is_logging_configured,
    stats,
    timed_operation,
    traced,
)


@pytest.fixture(autouse=True)
def reset_stats():
    stats.reset()
    yield
    stats.reset()


@pytest.fixture
def clean_logger():
    """Remove handlers added to the package logger by a test."""
    package_logger = logging.getLogger("marknotes")
    before = list(package_logger.handlers)
    level = package_logger.level
    yield package_logger
    for handler in package_logger.handlers:
        if handler not in before:
            handler.close()
    package_logger.handlers = before
    package_logger.setLevel(level)


class TestSessionStats:
    def test_record_and_summarize(self):
        session_stats = SessionStats()
        session_stats.record("commit", 2.0)
        session_stats.record("commit", 4.0, error=ValueError("boom"))
        data = session_stats.as_dict()["commit"]
        assert data["calls"] == 2
        assert data["failures"] == 1
        assert data["mean_ms"] == 3.0
        assert data["slowest_ms"] == 4.0
        assert data["last_failure"] == "boom"
        summary = session_stats.summary()
        assert summary["calls"] == 2
        assert summary["operations"] == ["commit"]

    def test_get_unknown_operation(self):
        assert SessionStats().get("nothing").calls == 0

    def test_get_returns_copy(self):
        session_stats = SessionStats()
        session_stats.record("x", 1.0)
        session_stats.get("x").calls = 99
        assert session_stats.get("x").calls == 1

    def test_reset(self):
        session_stats = SessionStats()
        session_stats.record("x", 1.0)
        session_stats.reset()
        assert session_stats.as_dict() == {}


class TestTiming:
    def test_timed_operation_records_success(self):
        with timed_operation("export", count=3) as op:
            op["path"] = "x.xlsx"
        export = stats.get("export")
        assert export.calls == 1
        assert export.failures == 0

    def test_timed_operation_records_error_and_reraises(self):
        with pytest.raises(RuntimeError):
            with timed_operation("export"):
                raise RuntimeError("disk full")
        export = stats.get("export")
        assert export.failures == 1
        assert export.last_failure == "disk full"

    def test_traced_decorator(self):
        @traced("lookup")
        def lookup():
            return [1, 2]

        assert lookup() == [1, 2]
        assert stats.get("lookup").calls == 1

    def test_traced_defaults_to_function_name(self):
        @traced()
        def rebuild():
            return None

        rebuild()
        assert stats.get("rebuild").calls == 1

    def test_store_commit_is_traced(self, empty_store):
        empty_store.commit(Note(title="timed"))
        with pytest.raises(NoteValidationError):
            empty_store.commit(Note())
        commit = stats.get("commit")
        assert commit.calls == 2
        assert commit.failures == 1


class TestConfigureLogging:
    def test_creates_rotating_log_file(self, tmp_path, clean_logger):
        log_dir = configure_logging(log_dir=tmp_path / "logs", console=False)
        assert log_dir == tmp_path / "logs"
        assert is_logging_configured()
        logging.getLogger("marknotes.test").info("hello from the test")
        for handler in clean_logger.handlers:
            handler.flush()
        assert "hello from the test" in (log_dir / "marknotes.log").read_text(encoding="utf-8")

    def test_no_duplicate_file_handlers(self, tmp_path, clean_logger):
        configure_logging(log_dir=tmp_path, console=False)
        configure_logging(log_dir=tmp_path, console=False)
        file_handlers = [h for h in clean_logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1

    def test_level_by_name(self, tmp_path, clean_logger):
        configure_logging(log_dir=tmp_path, level="debug", console=False)
        assert clean_logger.level == logging.DEBUG
