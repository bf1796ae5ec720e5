# attendance_export/api/dependencies/internal_auth.py
from typing import Optional

from fastapi import Header, HTTPException, status

from attendance_export.core.config import get_settings


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Shared key for triggering attendance exports over HTTP.",
    ),
) -> None:
    """
    Guards the export trigger under /internal.

    An export reads the calendar, chats and call records of the target user.
    Access rules:

    - local/test with no INTERNAL_API_KEY: open.
    - INTERNAL_API_KEY configured: the header must match it (401 otherwise).
    - any other APP_ENV without INTERNAL_API_KEY: 500, the deployment is
      missing its key.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = settings.INTERNAL_API_KEY

    if not expected:
        if env in ("local", "test"):
            return
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"INTERNAL_API_KEY is required when APP_ENV={env}.",
        )

    if internal_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or wrong X-Internal-Api-Key for attendance export.",
        )
