# attendance_export/schemas/meeting.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceChannel(str, Enum):
    """
    Discovery channel a meeting candidate came from.
    """

    CALENDAR = "Calendar"
    CHAT_CALL = "ChatCall"
    CHAT_ACTIVITY = "ChatActivity"
    CALL_RECORD = "CallRecord"
    ONLINE_MEETING = "OnlineMeeting"
    BROADCAST = "Broadcast"


class MeetingType(str, Enum):
    SCHEDULED = "Scheduled"
    INSTANT = "Instant"
    ONE_ON_ONE = "OneOnOne"
    WEBINAR = "Webinar"
    TOWNHALL = "Townhall"
    BROADCAST = "Broadcast"


class Classification(BaseModel):
    """
    Heuristic meeting-type tag attached to a calendar-sourced candidate.
    """

    model_config = ConfigDict(frozen=True)

    type: MeetingType = Field(MeetingType.SCHEDULED, description="Final meeting type.")
    is_one_on_one: bool = False
    is_instant: bool = False
    is_recurring: bool = False
    category: str = Field(
        "Regular Meeting",
        description="Human-readable category of the last matching rule.",
        examples=["One-on-One"],
    )


class MeetingCandidate(BaseModel):
    """
    A discovered meeting before attendance resolution.

    `id` is only unique within its source channel. The global identity used
    for deduplication is established after resolution:
    (online_meeting_id, attendee_id, join_time).
    """

    id: str = Field(..., description="Channel-local identifier.")
    subject: str = Field("", description="Meeting subject or chat topic.")
    start_time: datetime | None = Field(None, description="UTC start time.")
    end_time: datetime | None = Field(None, description="UTC end time, when known.")
    source_channel: SourceChannel
    is_online_meeting: bool = True
    join_url: str | None = Field(None, description="Teams join link, when known.")
    online_meeting_id: str | None = Field(
        None,
        description="Canonical online-meeting id; set by the resolver.",
    )
    organizer_address: str | None = None
    attendee_count: int = Field(
        0,
        ge=0,
        description="Number of invited attendees. 0 means unknown.",
    )
    classification: Classification | None = None

    event_type: str | None = Field(
        None,
        description="Graph calendar event type (singleInstance, occurrence, seriesMaster, exception).",
    )
    call_type: str | None = Field(
        None,
        description="'Direct Call' or 'Group Call' for call-record candidates.",
    )
    participant_count: int | None = None
    user_involved: bool = True


class GraphUser(BaseModel):
    """
    Directory entry for the user whose meetings are exported.
    """

    id: str
    display_name: str | None = None
    mail: str | None = None
    user_principal_name: str | None = None
