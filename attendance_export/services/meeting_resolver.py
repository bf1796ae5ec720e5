# attendance_export/services/meeting_resolver.py
from __future__ import annotations

from typing import Optional

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate
from attendance_export.services.graph_client import GraphClient

logger = get_logger(__name__)


class OnlineMeetingResolver:
    """
    Resolves a meeting candidate to the canonical online-meeting id that the
    attendance-report endpoints require.

    - A candidate that already carries an id is returned as-is (no Graph call).
    - Otherwise the join link is looked up with
      `onlineMeetings?$filter=JoinWebUrl eq '...'`.
    - Without either, the candidate cannot be resolved and None is returned.

    None is not an error here; the caller records the candidate as a failure.
    Graph errors propagate to the caller.
    """

    def __init__(self, graph_client: GraphClient) -> None:
        self.graph = graph_client

    async def resolve(self, user_id: str, candidate: MeetingCandidate) -> Optional[str]:
        if candidate.online_meeting_id:
            return candidate.online_meeting_id

        if not candidate.join_url:
            return None

        meeting_id = await self._lookup_by_join_url(user_id, candidate.join_url)
        if meeting_id is None:
            logger.info(
                "online_meeting_not_found",
                candidate_id=candidate.id,
                join_url=candidate.join_url,
            )
            return None

        candidate.online_meeting_id = meeting_id
        return meeting_id

    async def _lookup_by_join_url(self, user_id: str, join_url: str) -> Optional[str]:
        path = f"/v1.0/users/{user_id}/onlineMeetings"
        # OData string literals escape a single quote by doubling it. httpx
        # URL-encodes the value, so Graph compares against the decoded link.
        escaped = join_url.replace("'", "''")
        params = {"$filter": f"JoinWebUrl eq '{escaped}'"}

        payload = await self.graph.get_json(path, params=params)
        for meeting in payload.get("value", []):
            if meeting.get("id"):
                return meeting["id"]
        return None
