"""Configuration module for marknotes."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: lives alongside the local database
_USER_ENV = Path.home() / ".marknotes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _TRUE_VALUES


class AppConfig(BaseModel):
    """Configuration for a marknotes session."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("MARKNOTES_BASE_DIR", "."))
    )
    # Key-value database holding settings, backup config and the note snapshot
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("MARKNOTES_DATABASE_PATH", "data/marknotes.db")
        )
    )
    # When True, nothing outlives the process (like a private browser tab)
    in_memory_db: bool = Field(
        default_factory=lambda: _env_flag("MARKNOTES_IN_MEMORY_DB", "false")
    )
    # Load the example notes when no snapshot has been saved yet
    seed_on_empty: bool = Field(
        default_factory=lambda: _env_flag("MARKNOTES_SEED_ON_EMPTY", "true")
    )
    # Spreadsheet export
    export_filename: str = Field(
        default_factory=lambda: os.getenv(
            "MARKNOTES_EXPORT_FILENAME", "personal-notes.xlsx"
        )
    )
    export_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("MARKNOTES_EXPORT_DIR", "."))
    )
    # Remote backup connectivity check
    github_api_url: str = Field(
        default_factory=lambda: os.getenv(
            "MARKNOTES_GITHUB_API_URL", "https://api.github.com"
        )
    )
    http_timeout: float = Field(
        default_factory=lambda: float(os.getenv("MARKNOTES_HTTP_TIMEOUT", "10"))
    )
    # Logging
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("MARKNOTES_LOG_DIR"))
            if os.getenv("MARKNOTES_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("MARKNOTES_LOG_LEVEL", "INFO")
    )

    @model_validator(mode="after")
    def _validate(self) -> "AppConfig":
        """Reject settings that cannot work."""
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be > 0")
        if not self.export_filename.strip():
            raise ValueError("export_filename cannot be empty")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            logger.warning(
                "Unknown log level %r, falling back to INFO", self.log_level
            )
            self.log_level = "INFO"
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the SQLAlchemy URL for the key-value database."""
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def get_export_path(self) -> Path:
        """Get the absolute path of the spreadsheet export file."""
        return self.get_absolute_path(self.export_dir) / self.export_filename


# Create a global config instance
config = AppConfig()
