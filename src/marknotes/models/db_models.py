"""SQLAlchemy database models for the marknotes key-value store."""
import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

from marknotes.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class DBEntry(Base):
    """Database model for one key-value entry (one JSON blob)."""
    __tablename__ = "kv_entries"
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the entry."""
        return f"<Entry(key='{self.key}', size={len(self.value or '')})>"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create the engine and tables for the key-value store.

    In-memory databases share one connection (StaticPool) so every session
    sees the same data. File databases use WAL mode with a small
    QueuePool; the auto-save timer writes from its own thread.

    Args:
        db_url: SQLAlchemy URL. Defaults to the configured database.

    Returns:
        The initialized engine.
    """
    url = db_url or config.get_db_url()
    in_memory = url in ("sqlite://", "sqlite:///:memory:")

    if in_memory:
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=2,
            max_overflow=2,
            pool_timeout=30,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine
