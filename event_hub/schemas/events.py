from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from event_hub.calendar.types import Event


class EventView(BaseModel):
    index: int
    handle: str
    title: str
    date: str
    time: str
    location: str
    description: str
    attendees: List[dict] = []

    @classmethod
    def build(cls, index: int, handle: Optional[str], event: Event) -> "EventView":
        return cls(index=index, handle=handle or "", **event.to_json())


class AttendanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: StrictStr
    is_present: StrictBool = Field(alias="isPresent")


class ConflictResponse(BaseModel):
    conflict: bool


class PersistResponse(BaseModel):
    ok: bool = True
    action: str
    path: str
    event_count: int
