# attendance_export/services/attendance_resolver.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.attendance import (
    AttendanceInterval,
    AttendeeRole,
    FlattenedAttendance,
)
from attendance_export.services.graph_client import GraphClient
from attendance_export.services.graph_parsing import parse_iso_utc

logger = get_logger(__name__)

NO_REPORTS = "no attendance reports found"
NO_RECORDS = "no attendance records"
NO_INTERVALS = "no attendance intervals"

# (online_meeting_id, report_id, expanded report payload)
PayloadSink = Callable[[str, str, Dict[str, Any]], None]


@dataclass
class AttendanceFetchResult:
    """
    Flattened rows for one meeting plus the per-report problems met on the way.

    A meeting counts as failed only when no rows were produced at all.
    """

    online_meeting_id: str
    rows: List[FlattenedAttendance] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    reports_found: int = 0

    @property
    def failed(self) -> bool:
        return not self.rows

    @property
    def failure_reason(self) -> Optional[str]:
        if self.rows:
            return None
        if self.errors:
            return "; ".join(self.errors)
        return NO_REPORTS


class AttendanceResolver:
    """
    Fetches attendance reports for a resolved online meeting and flattens
    them into one row per attendance interval.

        GET /v1.0/users/{user}/onlineMeetings/{meeting}/attendanceReports
        GET /v1.0/users/{user}/onlineMeetings/{meeting}/attendanceReports/{report}
            ?$expand=attendanceRecords

    A meeting may have several reports (one per occurrence of a recurring
    meeting, or corrected reports). Each report is fetched independently; an
    error on one report is logged and the others still contribute rows.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        payload_sink: PayloadSink | None = None,
    ) -> None:
        self.graph = graph_client
        self.payload_sink = payload_sink

    async def fetch_attendance(self, user_id: str, online_meeting_id: str) -> AttendanceFetchResult:
        """
        Return the flattened (report, record, interval) rows for a meeting.

        Errors while listing reports propagate; errors on a single report
        are recorded in `errors`.
        """
        result = AttendanceFetchResult(online_meeting_id=online_meeting_id)

        base = f"/v1.0/users/{user_id}/onlineMeetings/{online_meeting_id}/attendanceReports"
        payload = await self.graph.get_json(base)
        reports = payload.get("value", [])
        result.reports_found = len(reports)

        if not reports:
            result.errors.append(NO_REPORTS)
            return result

        for report in reports:
            report_id = report.get("id")
            if not report_id:
                continue

            try:
                expanded = await self.graph.get_json(
                    f"{base}/{report_id}",
                    params={"$expand": "attendanceRecords"},
                )
            except Exception as exc:
                logger.warning(
                    "attendance_report_fetch_failed",
                    online_meeting_id=online_meeting_id,
                    report_id=report_id,
                    error=str(exc),
                )
                result.errors.append(f"report {report_id}: {exc}")
                continue

            if self.payload_sink is not None:
                try:
                    self.payload_sink(online_meeting_id, report_id, expanded)
                except Exception as exc:
                    logger.warning(
                        "attendance_report_payload_save_failed",
                        online_meeting_id=online_meeting_id,
                        report_id=report_id,
                        error=str(exc),
                    )

            records = expanded.get("attendanceRecords") or []
            if not records:
                logger.info(
                    "attendance_report_empty",
                    online_meeting_id=online_meeting_id,
                    report_id=report_id,
                )
                result.errors.append(NO_RECORDS)
                continue

            rows = self.flatten_report(report_id, records)
            if not rows:
                result.errors.append(NO_INTERVALS)
                continue

            result.rows.extend(rows)

        return result

    @staticmethod
    def flatten_report(report_id: str, records: List[Dict[str, Any]]) -> List[FlattenedAttendance]:
        """
        Expand attendance records into one row per attendance interval.

        `durationInSeconds` is carried through unchanged (clamped at zero).
        Intervals without a parseable join time are skipped.
        """
        rows: List[FlattenedAttendance] = []

        for rec in records:
            identity = rec.get("identity") or {}
            email = rec.get("emailAddress")
            attendee_id = identity.get("id") or rec.get("id") or email
            if not attendee_id:
                continue

            role = AttendeeRole.from_graph(rec.get("role"))
            total_secs = max(int(rec.get("totalAttendanceInSeconds") or 0), 0)

            for interval in rec.get("attendanceIntervals") or []:
                join_time = parse_iso_utc(interval.get("joinDateTime"))
                if join_time is None:
                    logger.debug(
                        "attendance_interval_skipped",
                        report_id=report_id,
                        attendee_id=attendee_id,
                    )
                    continue

                rows.append(
                    FlattenedAttendance(
                        report_id=report_id,
                        record_id=rec.get("id"),
                        total_attendance_seconds=total_secs,
                        interval=AttendanceInterval(
                            attendee_id=attendee_id,
                            attendee_display_name=identity.get("displayName") or "",
                            attendee_email=email,
                            role=role,
                            join_time=join_time,
                            leave_time=parse_iso_utc(interval.get("leaveDateTime")),
                            duration_seconds=max(int(interval.get("durationInSeconds") or 0), 0),
                        ),
                    )
                )

        return rows
