import os
from typing import Optional

from pydantic import BaseModel


DEFAULT_EVENTS_FILE = "events.json"


class AppConfig(BaseModel):
    events_file: str = DEFAULT_EVENTS_FILE
    log_level: str = "INFO"
    api_key: Optional[str] = None
    autosave: bool = False


def load_config() -> AppConfig:
    return AppConfig(
        events_file=os.getenv("EVENTS_FILE", DEFAULT_EVENTS_FILE) or DEFAULT_EVENTS_FILE,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_key=os.getenv("API_KEY") or None,
        autosave=os.getenv("AUTOSAVE", "false").lower() == "true",
    )
