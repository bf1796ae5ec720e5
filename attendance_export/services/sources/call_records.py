# attendance_export/services/sources/call_records.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Set

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.graph_parsing import parse_iso_utc, window_bounds
from attendance_export.services.sources.base import MeetingSourceAdapter

logger = get_logger(__name__)

DIRECT_CALL = "Direct Call"
GROUP_CALL = "Group Call"


class CallRecordSource(MeetingSourceAdapter):
    """
    One-on-one and group calls from the tenant's call records.

    Graph cannot filter callRecords by date here, so the full list is paged
    and filtered client-side. Each record's sessions tell us who took part;
    records the user was not a party to are dropped.

    When the session lookup fails, or yields no user identities, the record
    is kept as a single-session direct call involving the user.
    """

    channel = SourceChannel.CALL_RECORD

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        window_start, window_end = window_bounds(start_date, end_date)

        records = await self.graph.get_paged("/v1.0/communications/callRecords")

        candidates: List[MeetingCandidate] = []
        for record in records:
            started = parse_iso_utc(record.get("startDateTime"))
            if started is None or not (window_start <= started <= window_end):
                continue

            candidate = await self._to_candidate(user_id, record)
            if candidate is None:
                continue
            candidates.append(candidate)

        return candidates

    async def _to_candidate(
        self,
        user_id: str,
        record: Dict[str, Any],
    ) -> Optional[MeetingCandidate]:
        record_id = record["id"]
        participants = await self._session_participants(record_id)

        if participants is None:
            participant_count = 1
            user_involved = True
        else:
            participant_count = len(participants)
            user_involved = user_id in participants

        if not user_involved:
            logger.debug("call_record_skipped_user_not_involved", call_record_id=record_id)
            return None

        call_type = GROUP_CALL if participant_count > 2 else DIRECT_CALL

        return MeetingCandidate(
            id=record_id,
            subject=call_type,
            start_time=parse_iso_utc(record.get("startDateTime")),
            end_time=parse_iso_utc(record.get("endDateTime")),
            source_channel=SourceChannel.CALL_RECORD,
            is_online_meeting=bool(record.get("joinWebUrl")),
            join_url=record.get("joinWebUrl"),
            attendee_count=participant_count,
            call_type=call_type,
            participant_count=participant_count,
            user_involved=user_involved,
        )

    async def _session_participants(self, record_id: str) -> Optional[Set[str]]:
        """
        Unique user ids across the caller/callee endpoints of every session,
        or None when the sessions cannot be fetched or name no users.
        """
        try:
            sessions = await self.graph.get_paged(
                f"/v1.0/communications/callRecords/{record_id}/sessions"
            )
        except Exception as exc:
            logger.warning(
                "call_record_sessions_unavailable",
                call_record_id=record_id,
                error=str(exc),
            )
            return None

        participants: Set[str] = set()
        for session in sessions:
            for side in ("caller", "callee"):
                identity = ((session.get(side) or {}).get("identity")) or {}
                user = identity.get("user") or {}
                if user.get("id"):
                    participants.add(user["id"])
        return participants or None
