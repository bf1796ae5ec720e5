# attendance_export/cli.py
"""
Command line entry point for batch attendance exports.

    attendance-export run --user jane.doe@contoso.com --start 2025-01-01 --end 2025-01-31
"""

import asyncio
import sys
from datetime import datetime

import click

from attendance_export.core.config import ConfigurationError, get_settings
from attendance_export.core.logging_config import configure_logging, get_logger
from attendance_export.services.attendance_export import run_attendance_export
from attendance_export.services.graph_client import GraphClientError

logger = get_logger(__name__)

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _as_date(value: datetime | None):
    return value.date() if value is not None else None


@click.group()
@click.version_option(package_name="teams-attendance-export")
def main():
    """Export Microsoft Teams meeting attendance to CSV."""
    pass


@main.command()
@click.option("--user", "-u", help="User principal name (default: TARGET_USER)")
@click.option("--start", type=DATE, help="First day, YYYY-MM-DD (default: START_DATE)")
@click.option("--end", type=DATE, help="Last day, YYYY-MM-DD (default: END_DATE)")
@click.option("--types", "meeting_types", help="Comma-separated meeting types (default: MEETING_TYPES)")
@click.option("--output-dir", type=click.Path(file_okay=False), help="CSV output directory")
@click.option("--debug", is_flag=True, help="Save raw attendance report payloads (default: DEBUG_MODE)")
@click.option("--log-level", help="Log level (default: LOG_LEVEL)")
def run(user, start, end, meeting_types, output_dir, debug, log_level):
    """Run one export for a user and date range.

    Meetings that cannot be resolved do not stop the run; they are written
    to the failures CSV. Configuration and authentication errors exit with
    status 1 before any meeting is processed.
    """
    settings = get_settings()
    configure_logging(
        level=log_level or settings.LOG_LEVEL,
        log_dir=settings.LOG_DIR,
        json_logs=settings.APP_ENV.lower() not in ("local", "test"),
    )

    try:
        summary = asyncio.run(
            run_attendance_export(
                user_principal=user,
                start_date=_as_date(start),
                end_date=_as_date(end),
                meeting_types=meeting_types,
                output_dir=output_dir,
                debug=True if debug else None,
                settings=settings,
            )
        )
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)
    except GraphClientError as exc:
        logger.error("attendance_export_aborted", error=str(exc))
        click.echo(f"Microsoft Graph error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Candidates discovered: {summary.candidates_discovered}")
    for channel, count in summary.candidates_by_channel.items():
        click.echo(f"  {channel}: {count}")
    click.echo(f"Attendance rows exported: {summary.records_exported}")
    click.echo(f"Duplicates removed: {summary.duplicates_removed}")
    click.echo(f"Failures: {summary.failures}")
    click.echo(f"Attendance CSV: {summary.attendance_file}")
    click.echo(f"Failures CSV: {summary.failures_file}")


if __name__ == "__main__":
    main()
