# attendance_export/services/meeting_classifier.py
from __future__ import annotations

from datetime import datetime, timedelta

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.meeting import Classification, MeetingCandidate, MeetingType

logger = get_logger(__name__)

INSTANT_WINDOW = timedelta(days=1)
ONE_ON_ONE_MAX_ATTENDEES = 2
LARGE_MEETING_MIN_ATTENDEES = 21
RECURRING_EVENT_TYPES = ("seriesMaster", "occurrence")
BROADCAST_KEYWORDS = ("townhall", "all hands", "broadcast", "live event")


class MeetingClassifier:
    """
    Assigns a meeting type and category to a calendar-sourced candidate.

    Rules (applied in order; each matching rule overwrites `type`, and
    `category` reflects the last match)
    -----
    1) Default                                  => Scheduled, "Regular Meeting"
    2) attendee_count <= 2                      => OneOnOne, "One-on-One"
    3) start within 1 day of `now` (either way) => Instant, "Instant Meeting"
    4) event type seriesMaster / occurrence     => is_recurring only
    5) attendee_count > 20                      => Webinar, "Large Meeting/Webinar"
    6) subject mentions townhall / all hands /
       broadcast / live event                   => Townhall, "Broadcast Event"

    Note
    ----
    - Rule 3 is approximate. Graph exposes no creation timestamp, so
      "instant" means "starts close to when the export runs". A scheduled
      meeting exported the day it happens is tagged Instant as well.
    - `now` is passed in so results are deterministic for a given run.
    - Never raises; on an unexpected error the default classification is
      returned and a warning logged.
    """

    @staticmethod
    def classify(candidate: MeetingCandidate, now: datetime) -> Classification:
        try:
            return MeetingClassifier._apply_rules(candidate, now)
        except Exception as exc:
            logger.warning(
                "classification_failed",
                candidate_id=candidate.id,
                subject=candidate.subject,
                error=str(exc),
            )
            return Classification()

    @staticmethod
    def _apply_rules(candidate: MeetingCandidate, now: datetime) -> Classification:
        # Rule 1
        meeting_type = MeetingType.SCHEDULED
        category = "Regular Meeting"
        is_one_on_one = False
        is_instant = False
        is_recurring = False

        attendees = candidate.attendee_count

        # Rule 2
        if attendees <= ONE_ON_ONE_MAX_ATTENDEES:
            is_one_on_one = True
            category = "One-on-One"
            meeting_type = MeetingType.ONE_ON_ONE

        # Rule 3
        if candidate.start_time is not None and abs(candidate.start_time - now) <= INSTANT_WINDOW:
            is_instant = True
            category = "Instant Meeting"
            meeting_type = MeetingType.INSTANT

        # Rule 4
        if candidate.event_type in RECURRING_EVENT_TYPES:
            is_recurring = True

        # Rule 5
        if attendees >= LARGE_MEETING_MIN_ATTENDEES:
            category = "Large Meeting/Webinar"
            meeting_type = MeetingType.WEBINAR

        # Rule 6
        subject = (candidate.subject or "").lower()
        if any(keyword in subject for keyword in BROADCAST_KEYWORDS):
            category = "Broadcast Event"
            meeting_type = MeetingType.TOWNHALL

        return Classification(
            type=meeting_type,
            is_one_on_one=is_one_on_one,
            is_instant=is_instant,
            is_recurring=is_recurring,
            category=category,
        )
