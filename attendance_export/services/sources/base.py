# attendance_export/services/sources/base.py
from __future__ import annotations

from datetime import date
from typing import List

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.graph_client import GraphClient

logger = get_logger(__name__)


class MeetingSourceAdapter:
    """
    Base class for one meeting-discovery channel.

    Subclasses implement `_collect`. `collect` wraps it so that a channel
    failure (missing permission, unsupported API, exhausted retries) is
    logged and turned into an empty result instead of aborting the run.
    """

    channel: SourceChannel

    def __init__(self, graph_client: GraphClient) -> None:
        self.graph = graph_client

    @property
    def name(self) -> str:
        return self.channel.value

    async def collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        try:
            candidates = await self._collect(user_id, start_date, end_date)
        except Exception as exc:
            logger.warning(
                "source_channel_unavailable",
                channel=self.name,
                user_id=user_id,
                error=str(exc),
            )
            return []

        logger.info("source_channel_collected", channel=self.name, candidates=len(candidates))
        return candidates

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        raise NotImplementedError
