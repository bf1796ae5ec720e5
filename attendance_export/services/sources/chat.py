# attendance_export/services/sources/chat.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.graph_parsing import parse_iso_utc, window_bounds
from attendance_export.services.sources.base import MeetingSourceAdapter

logger = get_logger(__name__)

MESSAGES_PER_CHAT = 50
CHATS_PAGE_SIZE = 50

CALL_STARTED_DETAIL = "#microsoft.graph.callStartedEventMessageDetail"
CALL_ENDED_DETAIL = "#microsoft.graph.callEndedEventMessageDetail"

CALL_ACTIVITY_PHRASES = (
    "started a call",
    "started a meeting",
    "call started",
    "call ended",
    "meeting started",
    "meeting ended",
    "joined the call",
    "joined the meeting",
)

_TAG_RE = re.compile(r"<[^>]+>")


class ChatSource(MeetingSourceAdapter):
    """
    Ad-hoc calls and meetings detected from the user's chat threads.

    For every chat updated inside the window, the most recent
    MESSAGES_PER_CHAT messages are scanned for:

    - system call-started / call-ended events (ChatCall), collapsed to one
      candidate per call id within a chat;
    - plain messages whose text mentions call activity (ChatActivity).

    Candidate ids are "{chat_id}_{message_id}" so they stay unique within
    this channel.
    """

    channel = SourceChannel.CHAT_CALL

    async def _collect(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> List[MeetingCandidate]:
        window_start, window_end = window_bounds(start_date, end_date)

        chats = await self.graph.get_paged(
            f"/v1.0/users/{user_id}/chats",
            params={"$top": CHATS_PAGE_SIZE},
        )

        candidates: List[MeetingCandidate] = []
        for chat in chats:
            updated = parse_iso_utc(chat.get("lastUpdatedDateTime"))
            if updated is None or not (window_start <= updated <= window_end):
                continue

            payload = await self.graph.get_json(
                f"/v1.0/chats/{chat['id']}/messages",
                params={"$top": MESSAGES_PER_CHAT, "$orderby": "createdDateTime desc"},
            )
            messages = payload.get("value", [])[:MESSAGES_PER_CHAT]
            found = self._candidates_from_messages(chat, messages, window_start, window_end)
            if found:
                logger.debug("chat_calls_detected", chat_id=chat["id"], candidates=len(found))
            candidates.extend(found)

        return candidates

    def _candidates_from_messages(
        self,
        chat: Dict[str, Any],
        messages: List[Dict[str, Any]],
        window_start: datetime,
        window_end: datetime,
    ) -> List[MeetingCandidate]:
        chat_id = chat["id"]
        meeting_info = chat.get("onlineMeetingInfo") or {}
        join_url = meeting_info.get("joinWebUrl")
        subject = chat.get("topic") or f"{chat.get('chatType', 'chat')} call"

        by_call_id: Dict[str, MeetingCandidate] = {}
        candidates: List[MeetingCandidate] = []

        # Oldest first so a call's start event is seen before its end event.
        ordered = sorted(
            messages,
            key=lambda m: parse_iso_utc(m.get("createdDateTime")) or window_start,
        )
        for message in ordered:
            created = parse_iso_utc(message.get("createdDateTime"))
            if created is None or not (window_start <= created <= window_end):
                continue

            detail = message.get("eventDetail") or {}
            detail_type = detail.get("@odata.type")

            if detail_type in (CALL_STARTED_DETAIL, CALL_ENDED_DETAIL):
                call_id = detail.get("callId") or message["id"]
                existing = by_call_id.get(call_id)
                if existing is not None:
                    if detail_type == CALL_ENDED_DETAIL:
                        existing.end_time = created
                    continue

                participants = detail.get("callParticipants") or []
                candidate = MeetingCandidate(
                    id=f"{chat_id}_{message['id']}",
                    subject=subject,
                    start_time=created,
                    end_time=created if detail_type == CALL_ENDED_DETAIL else None,
                    source_channel=SourceChannel.CHAT_CALL,
                    is_online_meeting=bool(join_url),
                    join_url=join_url,
                    attendee_count=len(participants),
                    participant_count=len(participants) or None,
                )
                by_call_id[call_id] = candidate
                candidates.append(candidate)
                continue

            if self._mentions_call_activity(message):
                candidates.append(
                    MeetingCandidate(
                        id=f"{chat_id}_{message['id']}",
                        subject=subject,
                        start_time=created,
                        source_channel=SourceChannel.CHAT_ACTIVITY,
                        is_online_meeting=bool(join_url),
                        join_url=join_url,
                    )
                )

        return candidates

    @staticmethod
    def _mentions_call_activity(message: Dict[str, Any]) -> bool:
        body = message.get("body") or {}
        text = _plain_text(body.get("content"))
        if not text:
            return False
        return any(phrase in text for phrase in CALL_ACTIVITY_PHRASES)


def _plain_text(content: Optional[str]) -> str:
    if not content:
        return ""
    return _TAG_RE.sub(" ", content).lower()
