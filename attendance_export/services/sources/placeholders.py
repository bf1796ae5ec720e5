# attendance_export/services/sources/placeholders.py
from __future__ import annotations

from datetime import date
from typing import List

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.sources.base import MeetingSourceAdapter

logger = get_logger(__name__)


class OnlineMeetingSource(MeetingSourceAdapter):
    """
    Graph has no endpoint that lists every online meeting of a user; an
    online meeting can only be read by id or by join link. This channel
    therefore always returns no candidates. Online meetings are reached
    through the join links found by the other channels instead.
    """

    channel = SourceChannel.ONLINE_MEETING
    capability_gap = "onlineMeetings cannot be listed without an id or join link"

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        logger.info("source_channel_not_supported", channel=self.name, reason=self.capability_gap)
        return []


class BroadcastSource(MeetingSourceAdapter):
    """
    Live events and town halls have no enumeration API. Always empty; such
    meetings are still classified as Townhall from calendar subjects.
    """

    channel = SourceChannel.BROADCAST
    capability_gap = "no API to enumerate live events or town halls"

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        logger.info("source_channel_not_supported", channel=self.name, reason=self.capability_gap)
        return []
