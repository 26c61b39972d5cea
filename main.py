"""Launch the trip routes FastAPI server."""

import uvicorn

from trip_routes.config import configure_logging, load_settings


def main():
    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "trip_routes.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
