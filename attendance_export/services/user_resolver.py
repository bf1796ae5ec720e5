# attendance_export/services/user_resolver.py
from __future__ import annotations

from urllib.parse import quote

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import GraphUser
from attendance_export.services.graph_client import GraphClient, GraphClientError

logger = get_logger(__name__)


class UserResolver:
    """
    Looks up the directory entry of the user whose meetings are exported.

    A failed lookup is fatal for the run, so errors are propagated.
    """

    def __init__(self, graph_client: GraphClient) -> None:
        self.graph = graph_client

    async def resolve_user(self, principal_name: str) -> GraphUser:
        if not principal_name:
            raise ValueError("principal_name is required")

        path = f"/v1.0/users/{quote(principal_name, safe='@')}"
        params = {"$select": "id,displayName,mail,userPrincipalName"}
        payload = await self.graph.get_json(path, params=params)

        user_id = payload.get("id")
        if not user_id:
            raise GraphClientError(f"User '{principal_name}' lookup returned no id")

        user = GraphUser(
            id=user_id,
            display_name=payload.get("displayName"),
            mail=payload.get("mail"),
            user_principal_name=payload.get("userPrincipalName") or principal_name,
        )
        logger.info("user_resolved", user=principal_name, user_id=user.id)
        return user
