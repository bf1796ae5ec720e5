# attendance_export/services/deduplicator.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Set, Tuple

from attendance_export.schemas.attendance import AttendanceRecord


def deduplicate_records(records: Iterable[AttendanceRecord]) -> List[AttendanceRecord]:
    """
    Drop repeated (online_meeting_id, attendee_id, join_time) rows, keeping
    the first occurrence in input order.

    The same meeting can be discovered through several channels (a calendar
    event and the call record of the same meeting), so the key uses the
    resolved online-meeting id rather than the channel-local candidate id.
    """
    seen: Set[Tuple[str, str, datetime]] = set()
    unique: List[AttendanceRecord] = []

    for record in records:
        key = record.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)

    return unique
