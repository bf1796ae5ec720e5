# attendance_export/services/sources/calendar.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.graph_parsing import (
    parse_graph_datetime,
    to_graph_timestamp,
    window_bounds,
)
from attendance_export.services.sources.base import MeetingSourceAdapter

logger = get_logger(__name__)

PAGE_SIZE = 100
TEAMS_PROVIDER = "teamsForBusiness"


class CalendarSource(MeetingSourceAdapter):
    """
    Scheduled Teams meetings from the user's calendar view.

    Pages through calendarView with $top/$skip and stops at the first page
    holding fewer than PAGE_SIZE events. Only events flagged as online
    meetings on the Teams provider become candidates.
    """

    channel = SourceChannel.CALENDAR

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        window_start, window_end = window_bounds(start_date, end_date)
        path = f"/v1.0/users/{user_id}/calendarView"

        candidates: List[MeetingCandidate] = []
        skip = 0
        while True:
            params = {
                "startDateTime": to_graph_timestamp(window_start),
                "endDateTime": to_graph_timestamp(window_end),
                "$top": PAGE_SIZE,
                "$skip": skip,
                "$orderby": "start/dateTime",
            }
            payload = await self.graph.get_json(path, params=params)
            events = payload.get("value", [])

            for event in events:
                candidate = self._to_candidate(event)
                if candidate is not None:
                    candidates.append(candidate)

            logger.debug("calendar_page_fetched", skip=skip, events=len(events))
            if len(events) < PAGE_SIZE:
                break
            skip += PAGE_SIZE

        return candidates

    @staticmethod
    def _to_candidate(event: Dict[str, Any]) -> Optional[MeetingCandidate]:
        if not event.get("isOnlineMeeting"):
            return None
        if event.get("onlineMeetingProvider") != TEAMS_PROVIDER:
            return None

        online_meeting = event.get("onlineMeeting") or {}
        organizer = (event.get("organizer") or {}).get("emailAddress") or {}

        return MeetingCandidate(
            id=event["id"],
            subject=event.get("subject") or "",
            start_time=parse_graph_datetime(event.get("start")),
            end_time=parse_graph_datetime(event.get("end")),
            source_channel=SourceChannel.CALENDAR,
            is_online_meeting=True,
            join_url=online_meeting.get("joinUrl") or event.get("onlineMeetingUrl"),
            organizer_address=organizer.get("address"),
            attendee_count=len(event.get("attendees") or []),
            event_type=event.get("type"),
        )
