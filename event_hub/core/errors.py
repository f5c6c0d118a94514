"""Errors raised by the event store."""

from typing import Any, Dict, List, Optional


class DeserializationError(Exception):
    """Raised when persisted data does not match the event/attendee schema."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ())) or '<root>'}: {err.get('msg', '')}"
            for err in self.errors
        )
        return f"{self.message} ({details})"
