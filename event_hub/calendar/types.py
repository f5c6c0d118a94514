from datetime import datetime
from typing import Any, Dict, List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_serializer,
    field_validator,
)

from event_hub.core.errors import DeserializationError


def format_iso(value: datetime) -> str:
    """Render a datetime as ISO-8601, millisecond precision unless finer digits are set."""
    if value.microsecond % 1000:
        return value.isoformat(timespec="microseconds")
    return value.isoformat(timespec="milliseconds")


def _validation_failure(kind: str, exc: ValidationError) -> DeserializationError:
    return DeserializationError(
        f"Invalid {kind}: {exc.error_count()} validation error(s)",
        errors=exc.errors(include_url=False, include_context=False, include_input=False),
    )


class Attendee(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: StrictStr = Field(min_length=1)
    is_present: StrictBool = Field(default=False, alias="isPresent")

    @classmethod
    def from_json(cls, data: Any) -> "Attendee":
        if not isinstance(data, dict):
            raise DeserializationError(f"Attendee must be an object, got {type(data).__name__}")
        if "isPresent" not in data:
            raise DeserializationError("Attendee is missing required field 'isPresent'")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise _validation_failure("attendee", e) from e

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Event(BaseModel):
    title: StrictStr
    date: datetime  # naive values are local time
    time: StrictStr  # free-form, e.g. "14:30"; only compared for equality
    location: StrictStr
    description: StrictStr
    attendees: List[Attendee] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def parse_iso_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValueError("date must be an ISO-8601 string")
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f"date is not a valid ISO-8601 string: {value!r}")

    @field_serializer("date")
    def serialize_date(self, value: datetime) -> str:
        return format_iso(value)

    @classmethod
    def from_json(cls, data: Any) -> "Event":
        """
        Build an Event from its persisted mapping.

        `attendees` may be absent or null; every other field is required.

        Raises:
            DeserializationError: If a field is missing, mistyped, or `date`
                is not an ISO-8601 string.
        """
        if not isinstance(data, dict):
            raise DeserializationError(f"Event must be an object, got {type(data).__name__}")

        raw_attendees = data.get("attendees")
        if raw_attendees is None:
            raw_attendees = []
        if not isinstance(raw_attendees, list):
            raise DeserializationError("Event field 'attendees' must be a list")
        attendees = [Attendee.from_json(item) for item in raw_attendees]

        try:
            return cls.model_validate({**data, "attendees": attendees})
        except ValidationError as e:
            raise _validation_failure("event", e) from e

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def summary(self) -> str:
        return f"{self.title} on {self.date} at {self.time}"
