from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from event_hub.observability.logger import utc_timestamp

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint with store information.

    Returns:
        JSON response with status, event count and the data file in use
    """
    manager = request.app.state.manager
    config = request.app.state.config

    response = {
        "status": "ok",
        "timestamp": utc_timestamp(),
        "event_count": len(manager),
        "events_file": config.events_file,
        "autosave": config.autosave,
    }

    return JSONResponse(status_code=200, content=response)
