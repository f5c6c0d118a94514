#!/usr/bin/env python3
"""
Interactive menu for the Tech Hub event manager.

Usage:
  event-hub [--file events.json] [--log-level INFO]

The data file defaults to EVENTS_FILE (or events.json). It is loaded on
startup and written back on "Save and Exit" or end of input.
"""
import argparse
import sys
from datetime import datetime
from typing import Callable, Optional

from dotenv import load_dotenv

from event_hub.calendar.types import Attendee, Event
from event_hub.core.config import load_config
from event_hub.core.errors import DeserializationError
from event_hub.events.manager import EventManager
from event_hub.observability.logger import configure_logging


MENU = (
    "\nTech Hub Event Manager",
    "1. Add Event",
    "2. Edit Event",
    "3. Delete Event",
    "4. List Upcoming Events",
    "5. List Past Events",
    "6. Register Attendee",
    "7. View Attendees",
    "8. Mark Attendance",
    "9. List Events Chronologically",
    "10. Check Schedule Conflict",
    "11. Save and Exit",
    "Choose an option: ",
)


def parse_date(raw: str) -> Optional[datetime]:
    """Parse a YYYY-MM-DD (or full ISO-8601) date, None if unparseable."""
    try:
        return datetime.fromisoformat(raw.strip())
    except ValueError:
        return None


def parse_index(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except ValueError:
        return None


class Shell:
    """Reads text, turns it into typed calls on one EventManager, prints results."""

    def __init__(
        self,
        manager: EventManager,
        data_file: str,
        input_fn: Optional[Callable[[], str]] = None,
        output_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.manager = manager
        self.data_file = data_file
        self._input = input_fn or input
        self._output = output_fn or print
        self._actions = {
            "1": self.add_event,
            "2": self.edit_event,
            "3": self.delete_event,
            "4": self.list_upcoming,
            "5": self.list_past,
            "6": self.register_attendee,
            "7": self.view_attendees,
            "8": self.mark_attendance,
            "9": self.list_chronological,
            "10": self.check_conflict,
        }

    def _ask(self, prompt: str) -> str:
        self._output(prompt)
        return self._input()

    def _read_event(self, prefix: str = "") -> Optional[Event]:
        title = self._ask(f"Enter {prefix}event title:")
        date = parse_date(self._ask(f"Enter {prefix}event date (YYYY-MM-DD):"))
        time = self._ask(f"Enter {prefix}event time (HH:MM):")
        location = self._ask(f"Enter {prefix}event location:")
        description = self._ask(f"Enter {prefix}event description:")
        if date is None:
            return None
        return Event(title=title, date=date, time=time, location=location, description=description)

    def _read_valid_index(self, prompt: str) -> Optional[int]:
        index = parse_index(self._ask(prompt))
        if index is None or not self.manager.is_valid_index(index):
            self._output("Invalid event index.")
            return None
        return index

    def _print_events(self, events, empty_message: str) -> None:
        if not events:
            self._output(empty_message)
            return
        for event in events:
            self._output(event.summary())

    def run(self) -> None:
        while True:
            for line in MENU:
                self._output(line)
            try:
                choice = self._input().strip()
                if choice != "11":
                    action = self._actions.get(choice)
                    if action is None:
                        self._output("Invalid choice. Try again.")
                    else:
                        action()
                    continue
            except EOFError:
                # End of input behaves like "Save and Exit"
                pass

            self.manager.save_to_file(self.data_file)
            self._output("Data saved. Exiting...")
            return

    def add_event(self) -> None:
        event = self._read_event()
        if event is None:
            self._output("Invalid input. Event not added.")
            return
        if self.manager.check_for_schedule_conflict(event):
            self._output("Conflict detected. Event not added.")
            return
        self.manager.add_event(event)
        self._output("Event added successfully.")

    def edit_event(self) -> None:
        index = self._read_valid_index("Enter event index to edit:")
        if index is None:
            return
        event = self._read_event(prefix="new ")
        if event is None:
            self._output("Invalid input. Event not updated.")
            return
        self.manager.edit_event(index, event)
        self._output("Event updated successfully.")

    def delete_event(self) -> None:
        index = self._read_valid_index("Enter event index to delete:")
        if index is None:
            return
        self.manager.delete_event(index)
        self._output("Event deleted successfully.")

    def list_upcoming(self) -> None:
        self._print_events(self.manager.get_upcoming_events(), "No upcoming events.")

    def list_past(self) -> None:
        self._print_events(self.manager.get_past_events(), "No past events.")

    def register_attendee(self) -> None:
        index = self._read_valid_index("Enter event index to register attendee:")
        if index is None:
            return
        name = self._ask("Enter attendee name:").strip()
        if not name:
            self._output("Invalid input. Attendee not registered.")
            return
        self.manager.register_attendee(index, Attendee(name=name))
        self._output("Attendee registered successfully.")

    def view_attendees(self) -> None:
        index = parse_index(self._ask("Enter event index to view attendees:"))
        attendees = self.manager.get_attendees(index) if index is not None else []
        if not attendees:
            self._output("No attendees for this event.")
            return
        for attendee in attendees:
            self._output(f"{attendee.name} - {'Present' if attendee.is_present else 'Absent'}")

    def mark_attendance(self) -> None:
        index = self._read_valid_index("Enter event index to mark attendance:")
        if index is None:
            return
        name = self._ask("Enter attendee name to mark attendance:")
        is_present = self._ask("Is the attendee present? (yes/no):").strip().lower() == "yes"
        self.manager.mark_attendance(index, name, is_present)
        self._output("Attendance marked successfully.")

    def list_chronological(self) -> None:
        self._print_events(self.manager.get_events_in_chronological_order(), "No events to display.")

    def check_conflict(self) -> None:
        event = self._read_event()
        if event is None:
            self._output("Invalid input.")
            return
        if self.manager.check_for_schedule_conflict(event):
            self._output("Schedule conflict detected.")
        else:
            self._output("No schedule conflict.")


def main(argv=None) -> int:
    load_dotenv()
    config = load_config()

    ap = argparse.ArgumentParser(description="Manage Tech Hub events from the terminal.")
    ap.add_argument("--file", default=config.events_file, help="Path to the events JSON file")
    ap.add_argument("--log-level", default=config.log_level, help="Logging level (default: INFO)")
    args = ap.parse_args(argv)

    configure_logging(args.log_level)

    manager = EventManager()
    try:
        manager.load_from_file(args.file)
    except DeserializationError as e:
        print(f"Could not load {args.file}: {e}", file=sys.stderr)
        return 1

    Shell(manager, args.file).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
