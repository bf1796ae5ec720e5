# attendance_export/schemas/attendance.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from attendance_export.schemas.meeting import SourceChannel


class AttendeeRole(str, Enum):
    ORGANIZER = "Organizer"
    PRESENTER = "Presenter"
    ATTENDEE = "Attendee"
    UNKNOWN = "Unknown"

    @classmethod
    def from_graph(cls, value: str | None) -> "AttendeeRole":
        """
        Map a Graph attendance-record role onto the export roles.

        Co-organizers count as organizers and producers as presenters.
        """
        role = (value or "").strip().lower()
        if role in ("organizer", "coorganizer"):
            return cls.ORGANIZER
        if role in ("presenter", "producer"):
            return cls.PRESENTER
        if role == "attendee":
            return cls.ATTENDEE
        return cls.UNKNOWN


class AttendanceInterval(BaseModel):
    """
    One contiguous join/leave span for one attendee in one meeting.
    An attendee who rejoined has several intervals.
    """

    model_config = ConfigDict(frozen=True)

    attendee_id: str
    attendee_display_name: str = ""
    attendee_email: str | None = None
    role: AttendeeRole = AttendeeRole.UNKNOWN
    join_time: datetime
    leave_time: datetime | None = None
    duration_seconds: int = Field(0, ge=0)


class FlattenedAttendance(BaseModel):
    """
    One (report, record, interval) triple produced by the flattener.
    """

    model_config = ConfigDict(frozen=True)

    report_id: str
    record_id: str | None = None
    total_attendance_seconds: int = Field(0, ge=0)
    interval: AttendanceInterval


class AttendanceRecord(BaseModel):
    """
    Export row: a meeting candidate, its classification and one attendance
    interval, denormalized.

    Unique on (online_meeting_id, attendee_id, join_time).
    """

    online_meeting_id: str
    candidate_id: str
    source_channel: SourceChannel
    subject: str = ""
    meeting_start: datetime | None = None
    meeting_end: datetime | None = None
    organizer: str | None = None
    meeting_type: str | None = None
    category: str | None = None
    is_one_on_one: bool | None = None
    is_instant: bool | None = None
    is_recurring: bool | None = None
    call_type: str | None = None
    participant_count: int | None = None
    report_id: str
    attendee_id: str
    attendee_name: str = ""
    attendee_email: str | None = None
    role: AttendeeRole = AttendeeRole.UNKNOWN
    join_time: datetime
    leave_time: datetime | None = None
    duration_seconds: int = Field(0, ge=0)
    total_attendance_seconds: int = Field(0, ge=0)

    @property
    def dedup_key(self) -> tuple[str, str, datetime]:
        return (self.online_meeting_id, self.attendee_id, self.join_time)


class FailureEntry(BaseModel):
    """
    A candidate that could not be resolved or produced no attendance rows.
    """

    subject: str = ""
    start_time: datetime | None = None
    source_channel: SourceChannel
    error_reason: str

