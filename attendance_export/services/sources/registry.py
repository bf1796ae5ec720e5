# attendance_export/services/sources/registry.py
from __future__ import annotations

from typing import Dict, Iterable, List, Set, Type

from attendance_export.services.graph_client import GraphClient
from attendance_export.services.sources.base import MeetingSourceAdapter
from attendance_export.services.sources.calendar import CalendarSource
from attendance_export.services.sources.call_records import CallRecordSource
from attendance_export.services.sources.chat import ChatSource
from attendance_export.services.sources.placeholders import BroadcastSource, OnlineMeetingSource

# Adapters run in this order; earlier channels win "first occurrence" during
# deduplication.
ADAPTER_ORDER: List[Type[MeetingSourceAdapter]] = [
    CalendarSource,
    ChatSource,
    CallRecordSource,
    OnlineMeetingSource,
    BroadcastSource,
]

# Meeting-type filter token -> channels that can discover that kind of meeting.
MEETING_TYPE_CHANNELS: Dict[str, Set[Type[MeetingSourceAdapter]]] = {
    "Scheduled": {CalendarSource},
    "Instant": {CalendarSource, ChatSource, OnlineMeetingSource},
    "OneOnOne": {CalendarSource, ChatSource, CallRecordSource},
    "GroupCall": {ChatSource, CallRecordSource},
    "Webinar": {CalendarSource},
    "Townhall": {CalendarSource, BroadcastSource},
    "Broadcast": {BroadcastSource},
}


def adapters_for(
    meeting_types: Iterable[str],
    graph_client: GraphClient,
) -> List[MeetingSourceAdapter]:
    """
    Build the adapters selected by a meeting-type filter, in ADAPTER_ORDER.
    """
    types = set(meeting_types)
    if not types or "All" in types:
        selected = set(ADAPTER_ORDER)
    else:
        selected = set()
        for token in types:
            selected |= MEETING_TYPE_CHANNELS.get(token, set())

    return [cls(graph_client) for cls in ADAPTER_ORDER if cls in selected]
