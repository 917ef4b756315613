"""Logging setup and per-session operation statistics.

Commits, exports and imports are wrapped in ``timed_operation`` so slow
or failing operations show up in the log and in ``stats``.
"""
import functools
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "marknotes"
LOG_FILENAME = "marknotes.log"
DEFAULT_LOG_DIR = Path.home() / ".marknotes" / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])

_configured_file: Optional[Path] = None


def _has_file_handler(target: logging.Logger, log_file: Path) -> bool:
    return any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file
        for h in target.handlers
    )


def _has_console_handler(target: logging.Logger) -> bool:
    return any(
        type(h) is logging.StreamHandler for h in target.handlers
    )


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: Union[int, str] = logging.INFO,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Send the ``marknotes`` logger hierarchy to a rotating log file.

    Calling this again with the same directory does not add a second file
    handler, so it is safe to call once per session.

    Args:
        log_dir: Directory for ``marknotes.log``. Defaults to ~/.marknotes/logs/
        level: Level name or number, e.g. ``config.log_level``.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files kept.
        console: Also log to stderr.

    Returns:
        The log directory.
    """
    global _configured_file

    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = (log_path / LOG_FILENAME).resolve()

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = []
    if not _has_file_handler(package_logger, log_file):
        handlers.append(
            RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        )
    if console and not _has_console_handler(package_logger):
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    _configured_file = log_file
    package_logger.info(f"Logging to {log_file}")
    return log_path


def is_logging_configured() -> bool:
    """True once ``configure_logging`` has run in this process."""
    return _configured_file is not None


@dataclass
class OperationStats:
    """Counters for one kind of operation."""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0
    last_failure: Optional[str] = None
    last_failure_at: Optional[datetime] = None

    @property
    def mean_ms(self) -> float:
        return self.total_ms / self.calls if self.calls else 0.0


class SessionStats:
    """Per-operation call counts and timings for the running session.

    Guarded by a lock: auto-save commits arrive on a timer thread.
    """

    def __init__(self):
        self._ops: Dict[str, OperationStats] = {}
        self._lock = Lock()
        self.started_at = datetime.now(timezone.utc)

    def record(
        self,
        operation: str,
        elapsed_ms: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Add one call of ``operation``; pass ``error`` when it failed."""
        with self._lock:
            op = self._ops.setdefault(operation, OperationStats())
            op.calls += 1
            op.total_ms += elapsed_ms
            op.slowest_ms = max(op.slowest_ms, elapsed_ms)
            if error is not None:
                op.failures += 1
                op.last_failure = str(error)
                op.last_failure_at = datetime.now(timezone.utc)

    def get(self, operation: str) -> OperationStats:
        """A copy of the counters for ``operation`` (zeroed if never seen)."""
        with self._lock:
            op = self._ops.get(operation)
            return OperationStats(**vars(op)) if op else OperationStats()

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """All counters, rounded, keyed by operation name."""
        with self._lock:
            return {
                name: {
                    "calls": op.calls,
                    "failures": op.failures,
                    "mean_ms": round(op.mean_ms, 2),
                    "slowest_ms": round(op.slowest_ms, 2),
                    "last_failure": op.last_failure,
                }
                for name, op in self._ops.items()
            }

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "session_seconds": (datetime.now(timezone.utc) - self.started_at).total_seconds(),
                "calls": sum(op.calls for op in self._ops.values()),
                "failures": sum(op.failures for op in self._ops.values()),
                "operations": sorted(self._ops),
            }

    def reset(self) -> None:
        with self._lock:
            self._ops.clear()
            self.started_at = datetime.now(timezone.utc)


stats = SessionStats()

_sequence = count(1)


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[Dict[str, Any]]:
    """Time a block, record it in ``stats`` and log it at DEBUG.

    The yielded dict collects result details that are appended to the
    log line, e.g. ``op["path"] = target``. Exceptions are recorded as
    failures and re-raised.
    """
    seq = next(_sequence)
    details: Dict[str, Any] = {}
    if context:
        logger.debug(f"#{seq} {operation} " + " ".join(f"{k}={v}" for k, v in context.items()))
    started = time.perf_counter()
    error: Optional[BaseException] = None
    try:
        yield details
    except Exception as e:
        error = e
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        stats.record(operation, elapsed_ms, error)
        outcome = "failed" if error is not None else "ok"
        extra = "".join(f" {k}={v}" for k, v in details.items())
        logger.debug(f"#{seq} {operation} {outcome} in {elapsed_ms:.1f}ms{extra}")


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator form of ``timed_operation``; defaults to the function name."""
    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_operation(name):
                return func(*args, **kwargs)

        return wrapper  # type: ignore
    return decorator
