"""Environment-driven settings.

Values are read from the process environment, with a ``.env`` file in the
working directory loaded first if present. Example ``.env``::

    OPENROUTE_API_KEY=5b3ce3597851110001cf6248...
    NOMINATIM_USER_AGENT=TripRoutes/1.0 (you@example.com)
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_LANDMARK_CLASSES = ("attraction", "tourism", "historic", "natural")


class Settings(BaseModel):
    openroute_api_key: str = ""
    openroute_base_url: str = "https://api.openrouteservice.org"
    openroute_request_delay: float = 0.1

    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "TripRoutes/1.0"
    geocoding_request_delay: float = 1.0
    geocoding_max_retries: int = 10
    geocoding_backoff_base: float = 1.0
    landmark_classes: tuple[str, ...] = DEFAULT_LANDMARK_CLASSES

    request_timeout: float = 10.0
    log_level: str = "INFO"


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_settings() -> Settings:
    """Build settings from the environment (after loading ``.env``)."""
    load_dotenv()

    env = {
        "openroute_api_key": os.getenv("OPENROUTE_API_KEY"),
        "openroute_base_url": os.getenv("OPENROUTE_BASE_URL"),
        "openroute_request_delay": os.getenv("OPENROUTE_REQUEST_DELAY"),
        "nominatim_base_url": os.getenv("NOMINATIM_BASE_URL"),
        "nominatim_user_agent": os.getenv("NOMINATIM_USER_AGENT"),
        "geocoding_request_delay": os.getenv("GEOCODING_REQUEST_DELAY"),
        "geocoding_max_retries": os.getenv("GEOCODING_MAX_RETRIES"),
        "geocoding_backoff_base": os.getenv("GEOCODING_BACKOFF_BASE"),
        "request_timeout": os.getenv("REQUEST_TIMEOUT"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    landmark_classes = os.getenv("LANDMARK_CLASSES")
    if landmark_classes is not None:
        env["landmark_classes"] = _split_csv(landmark_classes)

    return Settings(**{key: value for key, value in env.items() if value is not None})


def configure_logging(level: str) -> None:
    """Apply ``level`` to the package loggers, adding a stderr handler if none exists.

    Runs in whichever process serves the app, including uvicorn reload workers.
    """
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("trip_routes").setLevel(level.upper())
