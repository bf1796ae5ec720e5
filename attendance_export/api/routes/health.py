# attendance_export/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from attendance_export.core.config import get_settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(..., description="Overall health status.", examples=["ok"])
    app_name: str = Field(
        ...,
        description="Human-friendly name of the running application.",
        examples=["Teams Attendance Export"],
    )
    environment: str = Field(
        ...,
        description="Current deployment environment (local/dev/stage/prod).",
        examples=["local"],
    )
    graph_configured: bool = Field(
        ...,
        description="Whether Graph client credentials are present in the configuration.",
    )
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) at which this health check was generated.",
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the attendance export service",
    description=(
        "Lightweight endpoint to verify that the service is up and responding. "
        "Does not call Microsoft Graph."
    ),
)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        graph_configured=bool(
            settings.GRAPH_TENANT_ID and settings.GRAPH_CLIENT_ID and settings.GRAPH_CLIENT_SECRET
        ),
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
