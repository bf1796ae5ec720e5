# attendance_export/services/graph_parsing.py
from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

# Graph emits up to 7 fractional digits ("2025-01-10T10:30:00.0000000").
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_iso_utc(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC.

    Naive values are taken as UTC. Returns None if parsing fails.
    """
    if not value or not isinstance(value, str):
        return None

    cleaned = _FRACTION_RE.sub(r"\1", value.strip().replace("Z", "+00:00"))
    try:
        dt = datetime.fromisoformat(cleaned)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_graph_datetime(dt_obj: Optional[Dict[str, Any]]) -> Optional[datetime]:
    """
    Converts Graph dateTimeTimeZone JSON ({"dateTime", "timeZone"}) into an
    aware UTC datetime.

    calendarView returns UTC unless an outlook.timezone preference is sent,
    which this client never does, so non-UTC zone names are treated as UTC.
    """
    if not dt_obj or "dateTime" not in dt_obj:
        return None
    return parse_iso_utc(dt_obj["dateTime"])


def window_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """
    Inclusive date range -> [start 00:00 UTC, end 23:59:59.999999 UTC].
    """
    start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc)
    end_dt = datetime.combine(end, time.max, tzinfo=timezone.utc)
    return start_dt, end_dt


def to_graph_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
