"""
In-memory event collection with JSON file persistence.

Events are addressed by their position in the collection. Positions shift
when an event is deleted and when the collection is sorted chronologically,
so every position-based operation acts on whatever currently sits at that
index. Out-of-range indices are silent no-ops; the boolean results only say
whether anything happened.

Each position also carries an opaque handle (a UUID string) that follows its
event through sorting, letting callers notice that an index went stale.
Handles live in memory only.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from event_hub.calendar.types import Attendee, Event
from event_hub.core.errors import DeserializationError
from event_hub.observability.logger import log_error, log_event, timing

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _new_handle() -> str:
    return uuid.uuid4().hex


def _instant(moment: datetime) -> datetime:
    """Sort key placing naive (local) and aware dates on one timeline."""
    return moment if moment.tzinfo is not None else moment.astimezone()


def _comparable_now(now: datetime, moment: datetime) -> datetime:
    """Align `now` with the awareness of `moment` so the two can be compared."""
    if moment.tzinfo is None and now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    if moment.tzinfo is not None and now.tzinfo is None:
        return now.astimezone(moment.tzinfo)
    return now


def parse_events(raw: str) -> List[Event]:
    """
    Parse the persisted JSON document into events.

    Raises:
        DeserializationError: If the text is not JSON, the top level is not an
            array, or any element does not match the event schema.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"Events file is not valid JSON: {e.msg} at line {e.lineno}") from e

    if not isinstance(payload, list):
        raise DeserializationError(f"Events file must contain a JSON array, got {type(payload).__name__}")

    return [Event.from_json(item) for item in payload]


class EventManager:
    """Owns the ordered event collection and every operation over it."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._events: List[Event] = []
        self._handles: List[str] = []
        self._clock = clock or datetime.now

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[Event]:
        """Snapshot of the collection in its current order."""
        return list(self._events)

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self._events)

    def get_event(self, index: int) -> Optional[Event]:
        if not self.is_valid_index(index):
            return None
        return self._events[index]

    def handle_at(self, index: int) -> Optional[str]:
        if not self.is_valid_index(index):
            return None
        return self._handles[index]

    def index_of(self, handle: str) -> Optional[int]:
        """Current index of the event behind `handle`, or None once it is gone."""
        try:
            return self._handles.index(handle)
        except ValueError:
            return None

    # Mutations

    def add_event(self, event: Event) -> None:
        """Append `event`. Conflicts are not checked here; see check_for_schedule_conflict."""
        self._events.append(event)
        self._handles.append(_new_handle())

    def edit_event(self, index: int, new_event: Event) -> bool:
        """Replace the event at `index` wholesale, attendees included."""
        if not self.is_valid_index(index):
            logger.debug(f"edit_event ignored: index {index} out of range (size {len(self)})")
            return False
        self._events[index] = new_event
        return True

    def delete_event(self, index: int) -> bool:
        """Remove the event at `index`; later events move down by one."""
        if not self.is_valid_index(index):
            logger.debug(f"delete_event ignored: index {index} out of range (size {len(self)})")
            return False
        del self._events[index]
        del self._handles[index]
        return True

    # Time-based views

    def get_upcoming_events(self) -> List[Event]:
        """Events dated strictly after now, in stored order."""
        now = self._clock()
        return [e for e in self._events if e.date > _comparable_now(now, e.date)]

    def get_past_events(self) -> List[Event]:
        """Events dated strictly before now, in stored order."""
        now = self._clock()
        return [e for e in self._events if e.date < _comparable_now(now, e.date)]

    # Attendees

    def register_attendee(self, event_index: int, attendee: Attendee) -> bool:
        if not self.is_valid_index(event_index):
            logger.debug(f"register_attendee ignored: index {event_index} out of range")
            return False
        self._events[event_index].attendees.append(attendee)
        return True

    def get_attendees(self, event_index: int) -> List[Attendee]:
        """The live attendee list of the event, or a fresh empty list for a bad index."""
        if not self.is_valid_index(event_index):
            return []
        return self._events[event_index].attendees

    def mark_attendance(self, event_index: int, attendee_name: str, is_present: bool) -> bool:
        """Set presence on every attendee named exactly `attendee_name`."""
        if not self.is_valid_index(event_index):
            logger.debug(f"mark_attendance ignored: index {event_index} out of range")
            return False
        updated = False
        for attendee in self._events[event_index].attendees:
            if attendee.name == attendee_name:
                attendee.is_present = is_present
                updated = True
        return updated

    # Ordering and conflicts

    def get_events_in_chronological_order(self) -> List[Event]:
        """
        Sort the collection by date and return it.

        The sort is stable and happens in place: indices refer to the sorted
        order afterwards.
        """
        paired = sorted(zip(self._events, self._handles), key=lambda pair: _instant(pair[0].date))
        self._events = [event for event, _ in paired]
        self._handles = [handle for _, handle in paired]
        return list(self._events)

    def check_for_schedule_conflict(self, candidate: Event) -> bool:
        """True if a stored event has the same date (full datetime) and the same time string."""
        for event in self._events:
            if event.date == candidate.date and event.time == candidate.time:
                return True
        return False

    # Persistence

    def save_to_file(self, path: PathLike) -> None:
        """Write the whole collection as a JSON array, replacing the file."""
        target = Path(path)
        with timing("save_events") as timer:
            payload = [event.to_json() for event in self._events]
            target.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        log_event("saved", str(target), len(self._events), duration_ms=timer.get_duration_ms())

    def load_from_file(self, path: PathLike) -> bool:
        """
        Replace the collection with the events stored at `path`.

        A missing path, or one that is not a regular file, leaves the
        collection untouched and returns False.

        Raises:
            DeserializationError: If the file content is malformed. The
                collection is left as it was.
        """
        source = Path(path)
        if not source.is_file():
            log_event("load_skipped", str(source), len(self._events), reason="missing")
            return False

        with timing("load_events") as timer:
            try:
                loaded = parse_events(source.read_text(encoding="utf-8"))
            except UnicodeDecodeError as e:
                error = DeserializationError(f"Events file is not UTF-8: {e.reason}")
                log_error(error, {"path": str(source)})
                raise error from e
            except DeserializationError as e:
                log_error(e, {"path": str(source)})
                raise

        self._events = loaded
        self._handles = [_new_handle() for _ in loaded]
        log_event("loaded", str(source), len(self._events), duration_ms=timer.get_duration_ms())
        return True
