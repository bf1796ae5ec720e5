# tests/test_csv_exporter.py
import csv
import json
from datetime import date, datetime, timezone

from attendance_export.schemas.attendance import AttendanceRecord, AttendeeRole, FailureEntry
from attendance_export.schemas.meeting import SourceChannel
from attendance_export.services.csv_exporter import (
    ATTENDANCE_COLUMNS,
    FAILURE_COLUMNS,
    DebugPayloadWriter,
    export_file_paths,
    write_attendance_csv,
    write_failures_csv,
)


def test_export_file_paths_are_named_after_user_and_window(tmp_path):
    attendance, failures = export_file_paths(tmp_path, "jane.doe@contoso.com", date(2025, 1, 1), date(2025, 1, 31))

    assert attendance == tmp_path / "attendance_jane.doe_contoso.com_2025-01-01_2025-01-31.csv"
    assert failures == tmp_path / "failures_jane.doe_contoso.com_2025-01-01_2025-01-31.csv"


def test_attendance_csv_has_header_and_serialized_values(tmp_path):
    record = AttendanceRecord(
        online_meeting_id="m-1",
        candidate_id="evt-1",
        source_channel=SourceChannel.CALENDAR,
        subject="Standup",
        report_id="rep-1",
        attendee_id="a",
        attendee_name="Alice",
        role=AttendeeRole.PRESENTER,
        join_time=datetime(2025, 1, 10, 10, 0, tzinfo=timezone.utc),
        duration_seconds=600,
    )
    path = write_attendance_csv([record], tmp_path / "out" / "attendance.csv")

    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        rows = list(reader)

    assert reader.fieldnames == ATTENDANCE_COLUMNS
    assert rows[0]["source_channel"] == "Calendar"
    assert rows[0]["role"] == "Presenter"
    assert rows[0]["join_time"].startswith("2025-01-10T10:00:00")
    assert rows[0]["leave_time"] == ""


def test_failures_csv_written_even_when_empty(tmp_path):
    path = write_failures_csv([], tmp_path / "failures.csv")

    with open(path, newline="", encoding="utf-8") as fh:
        header = next(csv.reader(fh))
    assert header == FAILURE_COLUMNS


def test_failures_csv_rows(tmp_path):
    failure = FailureEntry(
        subject="Design review",
        start_time=datetime(2025, 1, 3, 9, 0, tzinfo=timezone.utc),
        source_channel=SourceChannel.CHAT_ACTIVITY,
        error_reason="no online meeting id found",
    )
    path = write_failures_csv([failure], tmp_path / "failures.csv")

    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert rows == [
        {
            "subject": "Design review",
            "start_time": "2025-01-03T09:00:00Z",
            "source_channel": "ChatActivity",
            "error_reason": "no online meeting id found",
        }
    ]


def test_debug_payload_writer_saves_payload_verbatim(tmp_path):
    writer = DebugPayloadWriter(tmp_path / "debug")
    payload = {"id": "rep/1", "attendanceRecords": [{"id": "r"}]}

    writer("MSo1N2Y5:meeting", "rep/1", payload)

    assert len(writer.written) == 1
    saved = writer.written[0]
    assert saved.parent == tmp_path / "debug"
    assert "/" not in saved.name
    assert json.loads(saved.read_text(encoding="utf-8")) == payload
