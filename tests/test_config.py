# tests/test_config.py
"""Tests for environment-driven configuration."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from marknotes.config import AppConfig


def test_defaults(monkeypatch):
    for name in (
        "MARKNOTES_DATABASE_PATH",
        "MARKNOTES_IN_MEMORY_DB",
        "MARKNOTES_EXPORT_FILENAME",
        "MARKNOTES_GITHUB_API_URL",
        "MARKNOTES_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    cfg = AppConfig()
    assert cfg.database_path == Path("data/marknotes.db")
    assert cfg.in_memory_db is False
    assert cfg.export_filename == "personal-notes.xlsx"
    assert cfg.github_api_url == "https://api.github.com"
    assert cfg.log_level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MARKNOTES_BASE_DIR", str(tmp_path))
    monkeypatch.setenv("MARKNOTES_IN_MEMORY_DB", "yes")
    monkeypatch.setenv("MARKNOTES_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("MARKNOTES_SEED_ON_EMPTY", "false")
    cfg = AppConfig()
    assert cfg.base_dir == tmp_path
    assert cfg.in_memory_db is True
    assert cfg.http_timeout == 2.5
    assert cfg.seed_on_empty is False


def test_in_memory_db_url():
    assert AppConfig(in_memory_db=True).get_db_url() == "sqlite://"


def test_file_db_url_creates_parent(tmp_path):
    cfg = AppConfig(base_dir=tmp_path, in_memory_db=False, database_path=Path("data/notes.db"))
    url = cfg.get_db_url()
    assert url == f"sqlite:///{tmp_path / 'data' / 'notes.db'}"
    assert (tmp_path / "data").is_dir()


def test_export_path(tmp_path):
    cfg = AppConfig(base_dir=tmp_path, export_dir=Path("exports"))
    assert cfg.get_export_path() == tmp_path / "exports" / "personal-notes.xlsx"


def test_absolute_paths_kept(tmp_path):
    cfg = AppConfig(base_dir=Path("/elsewhere"))
    assert cfg.get_absolute_path(tmp_path) == tmp_path


def test_invalid_timeout():
    with pytest.raises(ValidationError):
        AppConfig(http_timeout=0)


def test_blank_export_filename():
    with pytest.raises(ValidationError):
        AppConfig(export_filename="  ")


def test_unknown_log_level_falls_back():
    assert AppConfig(log_level="chatty").log_level == "INFO"
