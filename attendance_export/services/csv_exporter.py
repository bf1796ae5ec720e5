# attendance_export/services/csv_exporter.py
from __future__ import annotations

import csv
import json
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List

from attendance_export.core.logging_config import get_logger
from attendance_export.schemas.attendance import AttendanceRecord, FailureEntry

logger = get_logger(__name__)

ATTENDANCE_COLUMNS: List[str] = list(AttendanceRecord.model_fields)
FAILURE_COLUMNS: List[str] = list(FailureEntry.model_fields)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value).strip("_")[:120] or "unknown"


def export_file_paths(
    output_dir: str | Path,
    user: str,
    start_date: date,
    end_date: date,
) -> tuple[Path, Path]:
    """
    Attendance and failure CSV paths for one run.
    """
    stem = f"{_safe(user)}_{start_date.isoformat()}_{end_date.isoformat()}"
    base = Path(output_dir)
    return base / f"attendance_{stem}.csv", base / f"failures_{stem}.csv"


def _write_rows(path: Path, columns: List[str], rows: Iterable[Dict[str, Any]]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    return count


def write_attendance_csv(records: Iterable[AttendanceRecord], path: str | Path) -> Path:
    path = Path(path)
    count = _write_rows(
        path,
        ATTENDANCE_COLUMNS,
        (record.model_dump(mode="json") for record in records),
    )
    logger.info("attendance_csv_written", path=str(path), rows=count)
    return path


def write_failures_csv(failures: Iterable[FailureEntry], path: str | Path) -> Path:
    path = Path(path)
    count = _write_rows(
        path,
        FAILURE_COLUMNS,
        (failure.model_dump(mode="json") for failure in failures),
    )
    logger.info("failures_csv_written", path=str(path), rows=count)
    return path


class DebugPayloadWriter:
    """
    Persists expanded attendance-report payloads verbatim, one JSON file per
    report, for offline inspection. Used as the attendance resolver's
    payload sink when debug mode is on.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.written: List[Path] = []

    def __call__(self, online_meeting_id: str, report_id: str, payload: Dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{_safe(online_meeting_id)}__{_safe(report_id)}.json"
        path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        self.written.append(path)
        logger.debug("attendance_report_payload_saved", path=str(path))
