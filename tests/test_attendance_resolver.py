# tests/test_attendance_resolver.py
from datetime import datetime, timezone

import pytest

from attendance_export.schemas.attendance import AttendeeRole
from attendance_export.services.attendance_resolver import (
    NO_INTERVALS,
    NO_RECORDS,
    NO_REPORTS,
    AttendanceResolver,
)
from attendance_export.services.graph_client import GraphClientError

BASE = "/v1.0/users/user-1/onlineMeetings/meeting-1/attendanceReports"


class FakeGraphClient:
    """
    Routes paths to payloads. A route mapped to an Exception raises it.
    """

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    async def get_json(self, path, params=None):
        self.calls.append((path, params))
        result = self.routes[path]
        if isinstance(result, Exception):
            raise result
        return result


def _record(attendee_id, name, intervals, role="Attendee", total=None):
    return {
        "id": f"rec-{attendee_id}",
        "emailAddress": f"{name.lower()}@contoso.com",
        "role": role,
        "totalAttendanceInSeconds": total if total is not None else sum(i[2] for i in intervals),
        "identity": {"id": attendee_id, "displayName": name},
        "attendanceIntervals": [
            {"joinDateTime": j, "leaveDateTime": l, "durationInSeconds": d}
            for j, l, d in intervals
        ],
    }


@pytest.mark.asyncio
async def test_two_plus_one_intervals_flatten_to_three_rows():
    routes = {
        BASE: {"value": [{"id": "rep-1"}]},
        f"{BASE}/rep-1": {
            "id": "rep-1",
            "attendanceRecords": [
                _record(
                    "a",
                    "Alice",
                    [
                        ("2025-01-10T10:00:00Z", "2025-01-10T10:10:00Z", 600),
                        ("2025-01-10T10:20:00Z", "2025-01-10T10:25:30Z", 330),
                    ],
                    role="Organizer",
                ),
                _record("b", "Bob", [("2025-01-10T10:01:00.1234567Z", "2025-01-10T10:30:00Z", 1739)]),
            ],
        },
    }
    fake = FakeGraphClient(routes)
    resolver = AttendanceResolver(fake)

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert result.failed is False
    assert result.failure_reason is None
    assert len(result.rows) == 3
    assert [r.interval.duration_seconds for r in result.rows] == [600, 330, 1739]
    assert [r.interval.attendee_id for r in result.rows] == ["a", "a", "b"]

    first = result.rows[0]
    assert first.report_id == "rep-1"
    assert first.record_id == "rec-a"
    assert first.total_attendance_seconds == 930
    assert first.interval.role == AttendeeRole.ORGANIZER
    assert first.interval.attendee_email == "alice@contoso.com"
    assert first.interval.join_time == datetime(2025, 1, 10, 10, 0, tzinfo=timezone.utc)

    assert fake.calls[1] == (f"{BASE}/rep-1", {"$expand": "attendanceRecords"})


@pytest.mark.asyncio
async def test_no_reports_is_a_failure_not_a_crash():
    resolver = AttendanceResolver(FakeGraphClient({BASE: {"value": []}}))

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert result.failed is True
    assert result.failure_reason == NO_REPORTS


@pytest.mark.asyncio
async def test_report_without_records_is_a_failure():
    routes = {
        BASE: {"value": [{"id": "rep-1"}]},
        f"{BASE}/rep-1": {"id": "rep-1", "attendanceRecords": []},
    }
    resolver = AttendanceResolver(FakeGraphClient(routes))

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert result.failed is True
    assert result.failure_reason == NO_RECORDS


@pytest.mark.asyncio
async def test_first_report_failing_does_not_hide_second_report():
    routes = {
        BASE: {"value": [{"id": "rep-1"}, {"id": "rep-2"}]},
        f"{BASE}/rep-1": GraphClientError("boom", status_code=500),
        f"{BASE}/rep-2": {
            "id": "rep-2",
            "attendanceRecords": [
                _record("c", "Carol", [("2025-01-11T09:00:00Z", "2025-01-11T09:30:00Z", 1800)]),
            ],
        },
    }
    resolver = AttendanceResolver(FakeGraphClient(routes))

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert len(result.rows) == 1
    assert result.failed is False
    assert result.rows[0].report_id == "rep-2"
    assert len(result.errors) == 1
    assert "rep-1" in result.errors[0]


@pytest.mark.asyncio
async def test_all_reports_failing_reports_the_errors():
    routes = {
        BASE: {"value": [{"id": "rep-1"}]},
        f"{BASE}/rep-1": GraphClientError("forbidden", status_code=403),
    }
    resolver = AttendanceResolver(FakeGraphClient(routes))

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert result.failed is True
    assert "forbidden" in result.failure_reason


@pytest.mark.asyncio
async def test_listing_reports_error_propagates():
    resolver = AttendanceResolver(FakeGraphClient({BASE: GraphClientError("nope", status_code=404)}))

    with pytest.raises(GraphClientError):
        await resolver.fetch_attendance("user-1", "meeting-1")


@pytest.mark.asyncio
async def test_payload_sink_receives_raw_expanded_report():
    expanded = {
        "id": "rep-1",
        "attendanceRecords": [
            _record("a", "Alice", [("2025-01-10T10:00:00Z", None, 60)]),
        ],
    }
    routes = {BASE: {"value": [{"id": "rep-1"}]}, f"{BASE}/rep-1": expanded}
    saved = []
    resolver = AttendanceResolver(
        FakeGraphClient(routes),
        payload_sink=lambda meeting_id, report_id, payload: saved.append((meeting_id, report_id, payload)),
    )

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert saved == [("meeting-1", "rep-1", expanded)]
    assert result.rows[0].interval.leave_time is None


@pytest.mark.asyncio
async def test_payload_sink_error_keeps_fetched_rows():
    routes = {
        BASE: {"value": [{"id": "r1"}]},
        f"{BASE}/r1": {
            "id": "r1",
            "attendanceRecords": [_record("a", "Alice", [("2025-01-10T10:00:00Z", "2025-01-10T10:05:00Z", 300)])],
        },
    }

    def failing_sink(meeting_id, report_id, payload):
        raise OSError("disk full")

    resolver = AttendanceResolver(FakeGraphClient(routes), payload_sink=failing_sink)

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert len(result.rows) == 1
    assert result.errors == []
    assert result.failed is False


@pytest.mark.asyncio
async def test_records_without_intervals_report_distinct_reason():
    routes = {
        BASE: {"value": [{"id": "r1"}]},
        f"{BASE}/r1": {"id": "r1", "attendanceRecords": [_record("a", "Alice", [])]},
    }
    resolver = AttendanceResolver(FakeGraphClient(routes))

    result = await resolver.fetch_attendance("user-1", "meeting-1")

    assert result.reports_found == 1
    assert result.failed is True
    assert result.failure_reason == NO_INTERVALS


def test_flatten_skips_intervals_without_join_time_and_clamps_durations():
    records = [
        {
            "id": "rec-x",
            "role": "Producer",
            "identity": {"id": "x", "displayName": "Xavier"},
            "attendanceIntervals": [
                {"joinDateTime": None, "leaveDateTime": None, "durationInSeconds": 10},
                {"joinDateTime": "2025-01-10T10:00:00Z", "durationInSeconds": -5},
            ],
        }
    ]

    rows = AttendanceResolver.flatten_report("rep-9", records)

    assert len(rows) == 1
    assert rows[0].interval.duration_seconds == 0
    assert rows[0].interval.role == AttendeeRole.PRESENTER
