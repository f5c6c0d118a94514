"""
Event routes.

Thin HTTP layer over EventManager: every route maps to one manager
operation. Events are addressed by index, as in the interactive shell; each
response also carries the event's handle so clients can notice when an index
has shifted under them.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from event_hub.calendar.types import Attendee, Event
from event_hub.core.config import AppConfig
from event_hub.events.manager import EventManager
from event_hub.schemas.events import AttendanceRequest, ConflictResponse, EventView, PersistResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_api_key_if_configured(request: Request) -> None:
    cfg: AppConfig = request.app.state.config
    if not cfg.api_key:
        return
    provided = request.headers.get("x-api-key") or request.headers.get("X-API-Key")
    if provided != cfg.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def get_manager(request: Request) -> EventManager:
    _require_api_key_if_configured(request)
    return request.app.state.manager


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def _views(manager: EventManager, events: List[Event]) -> List[dict]:
    # Filtered views keep stored order, so positions are recovered by identity.
    stored = manager.events
    views = []
    index = 0
    for event in events:
        while stored[index] is not event:
            index += 1
        views.append(EventView.build(index, manager.handle_at(index), event).model_dump())
        index += 1
    return views


def _autosave(manager: EventManager, config: AppConfig) -> None:
    if config.autosave:
        manager.save_to_file(config.events_file)


def _not_found(index: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"No event at index {index}")


@router.get("/events")
async def list_events(manager: EventManager = Depends(get_manager)):
    return JSONResponse({"ok": True, "events": _views(manager, manager.events)})


@router.post("/events", status_code=201)
async def add_event(
    event: Event,
    force: bool = False,
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    if not force and manager.check_for_schedule_conflict(event):
        logger.info(f"Rejected event '{event.title}': conflicts on {event.date} at {event.time}")
        raise HTTPException(status_code=409, detail="Schedule conflict: another event has the same date and time")
    manager.add_event(event)
    _autosave(manager, config)
    index = len(manager) - 1
    view = EventView.build(index, manager.handle_at(index), event)
    return JSONResponse(status_code=201, content={"ok": True, "event": view.model_dump()})


@router.get("/events/upcoming")
async def list_upcoming(manager: EventManager = Depends(get_manager)):
    return JSONResponse({"ok": True, "events": _views(manager, manager.get_upcoming_events())})


@router.get("/events/past")
async def list_past(manager: EventManager = Depends(get_manager)):
    return JSONResponse({"ok": True, "events": _views(manager, manager.get_past_events())})


@router.get("/events/chronological")
async def list_chronological(
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    """Sorts the stored collection by date; indices follow the new order."""
    events = manager.get_events_in_chronological_order()
    _autosave(manager, config)
    return JSONResponse({"ok": True, "events": _views(manager, events)})


@router.post("/events/conflicts", response_model=ConflictResponse)
async def check_conflict(event: Event, manager: EventManager = Depends(get_manager)):
    return ConflictResponse(conflict=manager.check_for_schedule_conflict(event))


@router.post("/events/save", response_model=PersistResponse)
async def save_events(
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    manager.save_to_file(config.events_file)
    return PersistResponse(action="saved", path=config.events_file, event_count=len(manager))


@router.post("/events/reload", response_model=PersistResponse)
async def reload_events(
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    loaded = manager.load_from_file(config.events_file)
    return PersistResponse(
        action="loaded" if loaded else "load_skipped",
        path=config.events_file,
        event_count=len(manager),
    )


@router.get("/events/{index}")
async def get_event(index: int, manager: EventManager = Depends(get_manager)):
    event = manager.get_event(index)
    if event is None:
        raise _not_found(index)
    return JSONResponse({"ok": True, "event": EventView.build(index, manager.handle_at(index), event).model_dump()})


@router.put("/events/{index}")
async def edit_event(
    index: int,
    event: Event,
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    if not manager.edit_event(index, event):
        raise _not_found(index)
    _autosave(manager, config)
    return JSONResponse({"ok": True, "event": EventView.build(index, manager.handle_at(index), event).model_dump()})


@router.delete("/events/{index}")
async def delete_event(
    index: int,
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    if not manager.delete_event(index):
        raise _not_found(index)
    _autosave(manager, config)
    return JSONResponse({"ok": True, "event_count": len(manager)})


@router.get("/events/{index}/attendees")
async def list_attendees(index: int, manager: EventManager = Depends(get_manager)):
    if not manager.is_valid_index(index):
        raise _not_found(index)
    attendees = [a.to_json() for a in manager.get_attendees(index)]
    return JSONResponse({"ok": True, "attendees": attendees})


@router.post("/events/{index}/attendees", status_code=201)
async def register_attendee(
    index: int,
    attendee: Attendee,
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    if not attendee.name.strip():
        raise HTTPException(status_code=422, detail="Attendee name must not be empty")
    if not manager.register_attendee(index, attendee):
        raise _not_found(index)
    _autosave(manager, config)
    return JSONResponse(status_code=201, content={"ok": True, "attendee": attendee.to_json()})


@router.post("/events/{index}/attendance")
async def mark_attendance(
    index: int,
    body: AttendanceRequest,
    manager: EventManager = Depends(get_manager),
    config: AppConfig = Depends(get_app_config),
):
    if not manager.is_valid_index(index):
        raise _not_found(index)
    updated = manager.mark_attendance(index, body.name, body.is_present)
    if updated:
        _autosave(manager, config)
    return JSONResponse({"ok": True, "updated": updated})
