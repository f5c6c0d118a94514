import time
import json
import logging
from contextlib import contextmanager
from typing import Dict, Any, Optional
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.duration_ms = (time.perf_counter() - self.start_time) * 1000

    def get_duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        return self.duration_ms


@contextmanager
def timing(operation_name: str):
    """Context manager for timing operations."""
    context = TimingContext(operation_name)
    with context:
        yield context


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def log_event(
    action: str,
    path: str,
    event_count: int,
    duration_ms: Optional[float] = None,
    **kwargs
) -> None:
    """
    Log a structured persistence event.

    Args:
        action: The action performed (e.g., 'saved', 'loaded', 'load_skipped')
        path: The data file involved
        event_count: Number of events in memory after the action
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields to include in the log
    """
    log_entry = {
        "timestamp": utc_timestamp(),
        "action": action,
        "path": str(path),
        "event_count": event_count,
    }

    if duration_ms is not None:
        log_entry["duration_ms"] = round(duration_ms, 2)

    log_entry.update(kwargs)

    # One JSON object per line
    logger.info(json.dumps(log_entry, separators=(',', ':')))


def log_error(error: Exception, context: Dict[str, Any] = None) -> None:
    """
    Log an error with optional context.

    Args:
        error: The exception to log
        context: Optional context dictionary
    """
    log_entry = {
        "timestamp": utc_timestamp(),
        "level": "ERROR",
        "error": str(error),
        "error_type": type(error).__name__,
    }

    if context:
        log_entry.update(context)

    logger.error(json.dumps(log_entry, separators=(',', ':')))

