# attendance_export/services/attendance_export.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from attendance_export.core.config import (
    ConfigurationError,
    Settings,
    get_settings,
    parse_meeting_types,
)
from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.attendance import (
    AttendanceRecord,
    FailureEntry,
    FlattenedAttendance,
)
from attendance_export.schemas.export import ExportSummary
from attendance_export.schemas.meeting import GraphUser, MeetingCandidate, SourceChannel
from attendance_export.services.attendance_resolver import AttendanceResolver
from attendance_export.services.csv_exporter import (
    DebugPayloadWriter,
    export_file_paths,
    write_attendance_csv,
    write_failures_csv,
)
from attendance_export.services.deduplicator import deduplicate_records
from attendance_export.services.graph_client import GraphClient, build_graph_client
from attendance_export.services.meeting_classifier import MeetingClassifier
from attendance_export.services.meeting_resolver import OnlineMeetingResolver
from attendance_export.services.sources.base import MeetingSourceAdapter
from attendance_export.services.sources.registry import adapters_for
from attendance_export.services.user_resolver import UserResolver

logger = get_logger(__name__)

NO_ONLINE_MEETING_ID = "no online meeting id found"


def candidate_key(candidate: MeetingCandidate) -> Tuple[str, str]:
    return candidate.source_channel.value, candidate.id


@dataclass
class ExportRunState:
    """
    Accumulators owned by a single export run.

    Append-only; only the runner writes to them, one candidate at a time.
    Candidates are keyed on (source channel, id) since ids are only unique
    within a channel. `outcomes` maps each key to "rows" or "failure".
    """

    records: List[AttendanceRecord] = field(default_factory=list)
    failures: List[FailureEntry] = field(default_factory=list)
    processed_ids: Set[Tuple[str, str]] = field(default_factory=set)
    outcomes: Dict[Tuple[str, str], str] = field(default_factory=dict)


@dataclass
class ExportResult:
    user: GraphUser
    start_date: date
    end_date: date
    records: List[AttendanceRecord]
    failures: List[FailureEntry]
    candidates_by_channel: Dict[str, int]
    duplicates_removed: int

    @property
    def candidates_discovered(self) -> int:
        return sum(self.candidates_by_channel.values())


class AttendanceExportRunner:
    """
    Runs the discovery -> classification -> resolution -> attendance ->
    deduplication pipeline for one user and date range.

    Behavior
    --------
    - Every selected source adapter runs; a failing channel contributes no
      candidates but never stops the others.
    - Candidates are processed strictly one after another in discovery order.
    - Each processed candidate ends in exactly one outcome: attendance rows
      were emitted, or one FailureEntry was recorded.
    - A candidate id already handled in this run is skipped.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        adapters: Optional[Iterable[MeetingSourceAdapter]] = None,
        meeting_types: Iterable[str] = ("All",),
        resolver: OnlineMeetingResolver | None = None,
        attendance_resolver: AttendanceResolver | None = None,
        now: datetime | None = None,
    ) -> None:
        self.graph = graph_client
        self.adapters = list(adapters) if adapters is not None else adapters_for(meeting_types, graph_client)
        self.resolver = resolver or OnlineMeetingResolver(graph_client)
        self.attendance_resolver = attendance_resolver or AttendanceResolver(graph_client)
        self.now = now or datetime.now(tz=timezone.utc)

    async def discover(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> tuple[List[MeetingCandidate], Dict[str, int]]:
        candidates: List[MeetingCandidate] = []
        by_channel: Dict[str, int] = {}

        for adapter in self.adapters:
            found = await adapter.collect(user_id, start_date, end_date)
            by_channel[adapter.name] = len(found)
            candidates.extend(found)

        return candidates, by_channel

    async def run(self, user: GraphUser, start_date: date, end_date: date) -> ExportResult:
        logger.info(
            "attendance_export_started",
            user_id=user.id,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            channels=[a.name for a in self.adapters],
        )

        state = ExportRunState()
        candidates, by_channel = await self.discover(user.id, start_date, end_date)

        for candidate in candidates:
            await self.process_candidate(user.id, candidate, state)

        records = deduplicate_records(state.records)
        duplicates_removed = len(state.records) - len(records)

        logger.info(
            "attendance_export_finished",
            user_id=user.id,
            candidates=len(candidates),
            records=len(records),
            duplicates_removed=duplicates_removed,
            failures=len(state.failures),
        )

        return ExportResult(
            user=user,
            start_date=start_date,
            end_date=end_date,
            records=records,
            failures=list(state.failures),
            candidates_by_channel=by_channel,
            duplicates_removed=duplicates_removed,
        )

    async def process_candidate(
        self,
        user_id: str,
        candidate: MeetingCandidate,
        state: ExportRunState,
    ) -> None:
        key = candidate_key(candidate)
        if key in state.processed_ids:
            logger.debug("candidate_already_processed", candidate_id=candidate.id)
            return
        state.processed_ids.add(key)

        try:
            if candidate.source_channel == SourceChannel.CALENDAR:
                candidate.classification = MeetingClassifier.classify(candidate, self.now)

            meeting_id = await self.resolver.resolve(user_id, candidate)
            if meeting_id is None:
                self._record_failure(state, candidate, NO_ONLINE_MEETING_ID)
                return

            result = await self.attendance_resolver.fetch_attendance(user_id, meeting_id)
            if result.failed:
                self._record_failure(state, candidate, result.failure_reason)
                return

            rows = [build_attendance_record(candidate, meeting_id, row) for row in result.rows]
        except Exception as exc:
            logger.warning(
                "candidate_processing_failed",
                candidate_id=candidate.id,
                channel=candidate.source_channel.value,
                error=str(exc),
            )
            self._record_failure(state, candidate, str(exc) or exc.__class__.__name__)
            return

        state.records.extend(rows)
        state.outcomes[key] = "rows"
        logger.debug(
            "candidate_processed",
            candidate_id=candidate.id,
            online_meeting_id=meeting_id,
            rows=len(rows),
        )

    @staticmethod
    def _record_failure(state: ExportRunState, candidate: MeetingCandidate, reason: str) -> None:
        state.failures.append(
            FailureEntry(
                subject=candidate.subject,
                start_time=candidate.start_time,
                source_channel=candidate.source_channel,
                error_reason=reason,
            )
        )
        state.outcomes[candidate_key(candidate)] = "failure"


def build_attendance_record(
    candidate: MeetingCandidate,
    online_meeting_id: str,
    row: FlattenedAttendance,
) -> AttendanceRecord:
    """
    Denormalize a candidate, its classification and one interval into an
    export row.
    """
    classification = candidate.classification
    interval = row.interval

    return AttendanceRecord(
        online_meeting_id=online_meeting_id,
        candidate_id=candidate.id,
        source_channel=candidate.source_channel,
        subject=candidate.subject,
        meeting_start=candidate.start_time,
        meeting_end=candidate.end_time,
        organizer=candidate.organizer_address,
        meeting_type=classification.type.value if classification else None,
        category=classification.category if classification else None,
        is_one_on_one=classification.is_one_on_one if classification else None,
        is_instant=classification.is_instant if classification else None,
        is_recurring=classification.is_recurring if classification else None,
        call_type=candidate.call_type,
        participant_count=candidate.participant_count,
        report_id=row.report_id,
        attendee_id=interval.attendee_id,
        attendee_name=interval.attendee_display_name,
        attendee_email=interval.attendee_email,
        role=interval.role,
        join_time=interval.join_time,
        leave_time=interval.leave_time,
        duration_seconds=interval.duration_seconds,
        total_attendance_seconds=row.total_attendance_seconds,
    )


async def run_attendance_export(
    user_principal: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    meeting_types: str | None = None,
    output_dir: str | None = None,
    debug: bool | None = None,
    settings: Settings | None = None,
    graph_client: GraphClient | None = None,
    now: datetime | None = None,
) -> ExportSummary:
    """
    Execute a full export and write the attendance and failure CSV files.

    Arguments left as None fall back to the corresponding settings.

    Raises
    ------
    ConfigurationError
        Target user or date range missing/invalid, or Graph credentials absent.
    GraphClientError
        Token acquisition or the user lookup failed. Nothing is exported.
    """
    settings = settings or get_settings()

    user_principal = user_principal or settings.TARGET_USER
    start_date = start_date or settings.START_DATE
    end_date = end_date or settings.END_DATE
    output_dir = output_dir or settings.OUTPUT_DIR
    debug = settings.DEBUG_MODE if debug is None else debug

    if not user_principal:
        raise ConfigurationError("No target user configured (TARGET_USER or --user).")
    if start_date is None or end_date is None:
        raise ConfigurationError("START_DATE and END_DATE (or --start/--end) are required.")
    if start_date > end_date:
        raise ConfigurationError(
            f"START_DATE {start_date.isoformat()} is after END_DATE {end_date.isoformat()}."
        )

    if meeting_types is not None:
        types = parse_meeting_types(meeting_types)
    else:
        types = settings.meeting_type_filter()

    graph = graph_client or build_graph_client(settings)
    user = await UserResolver(graph).resolve_user(user_principal)

    attendance_file, failures_file = export_file_paths(output_dir, user_principal, start_date, end_date)

    payload_sink = None
    if debug:
        payload_sink = DebugPayloadWriter(Path(output_dir) / "debug")

    runner = AttendanceExportRunner(
        graph_client=graph,
        meeting_types=types,
        attendance_resolver=AttendanceResolver(graph, payload_sink=payload_sink),
        now=now,
    )
    result = await runner.run(user, start_date, end_date)

    write_attendance_csv(result.records, attendance_file)
    write_failures_csv(result.failures, failures_file)

    return ExportSummary(
        user=user_principal,
        start_date=start_date,
        end_date=end_date,
        candidates_discovered=result.candidates_discovered,
        candidates_by_channel=result.candidates_by_channel,
        records_exported=len(result.records),
        duplicates_removed=result.duplicates_removed,
        failures=len(result.failures),
        attendance_file=str(attendance_file),
        failures_file=str(failures_file),
    )
