import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from event_hub.core.config import AppConfig, load_config
from event_hub.core.errors import DeserializationError
from event_hub.events.manager import EventManager
from event_hub.observability.logger import configure_logging
from event_hub.routes.events import router as events_router
from event_hub.routes.health import router as health_router

logger = logging.getLogger("event_hub")

load_dotenv()


def create_app(config: Optional[AppConfig] = None, manager: Optional[EventManager] = None) -> FastAPI:
    """Build the API around a single EventManager, loaded on startup and saved on shutdown."""
    config = config or load_config()
    configure_logging(config.log_level)

    app = FastAPI(title="Tech Hub Event Manager")
    app.state.config = config
    app.state.manager = manager if manager is not None else EventManager()

    @app.on_event("startup")
    def _startup():
        loaded = app.state.manager.load_from_file(config.events_file)
        logger.info(f"Event store ready ({'loaded' if loaded else 'no file yet'}): {config.events_file}")

    @app.on_event("shutdown")
    def _shutdown():
        app.state.manager.save_to_file(config.events_file)
        logger.info("Event store saved")

    @app.exception_handler(DeserializationError)
    async def _deserialization_error(request: Request, exc: DeserializationError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})

    app.include_router(events_router, tags=["events"])
    app.include_router(health_router, tags=["health"])

    @app.get("/")
    def root():
        return {"status": "ok"}

    return app


app = create_app()
