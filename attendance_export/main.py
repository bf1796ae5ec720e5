# attendance_export/main.py
from fastapi import FastAPI

from attendance_export.api.routes import health, internal
from attendance_export.core.config import get_settings
from attendance_export.core.logging_config import configure_logging


def create_app() -> FastAPI:
    """
    Application factory for the attendance export service.
    """
    settings = get_settings()
    configure_logging(
        level=settings.LOG_LEVEL,
        log_dir=settings.LOG_DIR,
        json_logs=settings.APP_ENV.lower() not in ("local", "test"),
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Exports Microsoft Teams meeting attendance for a user and date range,\n"
            "normalizing calendar meetings, chat calls and call records into one\n"
            "attendee-interval CSV plus a report of meetings that could not be resolved."
        ),
        version="0.1.0",
    )

    app.include_router(health.router)
    app.include_router(internal.router)

    return app


app = create_app()
