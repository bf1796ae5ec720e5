# attendance_export/schemas/export.py
from datetime import date

from pydantic import BaseModel, Field


class ExportRequest(BaseModel):
    """
    Body of POST /internal/run-attendance-export. Omitted fields fall back
    to the configured defaults.
    """

    user: str | None = Field(
        None,
        description="User principal name whose meetings are exported.",
        examples=["jane.doe@contoso.com"],
    )
    start_date: date | None = Field(None, description="First day of the window (inclusive).")
    end_date: date | None = Field(None, description="Last day of the window (inclusive).")
    meeting_types: str | None = Field(
        None,
        description="Comma-separated meeting-type filter, e.g. 'Scheduled,OneOnOne'.",
        examples=["All"],
    )
    debug: bool | None = Field(
        None,
        description="Persist raw expanded attendance reports next to the CSV files.",
    )


class ExportSummary(BaseModel):
    """
    Outcome of one export run, returned by the CLI and the internal endpoint.
    """

    user: str = Field(..., description="User principal name the export ran for.")
    start_date: date
    end_date: date
    candidates_discovered: int = Field(0, description="Candidates returned by all channels.")
    candidates_by_channel: dict[str, int] = Field(default_factory=dict)
    records_exported: int = Field(0, description="Attendance rows after deduplication.")
    duplicates_removed: int = 0
    failures: int = Field(0, description="Candidates recorded in the failure report.")
    attendance_file: str | None = None
    failures_file: str | None = None
