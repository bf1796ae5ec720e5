# attendance_export/api/routes/internal.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException

from attendance_export.api.dependencies.internal_auth import verify_internal_api_key
from attendance_export.core.config import ConfigurationError
from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.export import ExportRequest, ExportSummary
from attendance_export.services.attendance_export import run_attendance_export
from attendance_export.services.graph_client import GraphClientError

logger = get_logger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


@router.post(
    "/run-attendance-export",
    response_model=ExportSummary,
    status_code=HTTPStatus.OK,
    summary="Export Teams meeting attendance for one user and date range",
    description=(
        "Runs a full attendance export: discovers the user's meetings across "
        "calendar, chats and call records, resolves each to its online meeting, "
        "flattens the attendance reports and writes the attendance and failure "
        "CSV files to the configured output directory.\n\n"
        "Intended for schedulers and is protected via the `X-Internal-Api-Key` "
        "header when configured."
    ),
    responses={
        400: {"description": "Missing or invalid run configuration."},
        401: {"description": "Missing or invalid internal API key (if configured)."},
        502: {"description": "Microsoft Graph authentication or user lookup failed."},
    },
)
async def trigger_attendance_export(request: ExportRequest) -> ExportSummary:
    """
    Partial success is normal: meetings that cannot be resolved are counted
    in `failures` and listed in the failure CSV.
    """
    try:
        return await run_attendance_export(
            user_principal=request.user,
            start_date=request.start_date,
            end_date=request.end_date,
            meeting_types=request.meeting_types,
            debug=request.debug,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except GraphClientError as exc:
        logger.error("attendance_export_aborted", error=str(exc))
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc)) from exc
