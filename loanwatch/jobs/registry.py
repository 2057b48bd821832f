"""Job registry: job_type -> callable, cron cadence and result counter."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from loanwatch.config import get_settings


@dataclass(frozen=True)
class JobSpec:
    """A schedulable job. run(db) returns a result dict with at least "status"."""

    job_type: str
    run: Callable[[Session], dict[str, Any]]
    cron: str
    description: str
    count_key: str | None = None


def _overdue_scan(db: Session) -> dict[str, Any]:
    from loanwatch.services.compliance.scanner import ComplianceScanner

    return ComplianceScanner(db).run_overdue_scan().to_dict()


def _no_show_scan(db: Session) -> dict[str, Any]:
    from loanwatch.services.compliance.scanner import ComplianceScanner

    return ComplianceScanner(db).run_no_show_scan().to_dict()


def _due_soon_reminders(db: Session) -> dict[str, Any]:
    from loanwatch.services.compliance.reminders import run_due_soon_reminders

    return run_due_soon_reminders(db)


def _reservation_cleanup(db: Session) -> dict[str, Any]:
    from loanwatch.services.compliance.reservation_cleanup import run_reservation_cleanup

    return run_reservation_cleanup(db)


def _daily_report(db: Session) -> dict[str, Any]:
    from loanwatch.services.reports.daily_report import run_daily_report

    return run_daily_report(db)


def _weekly_scoring(db: Session) -> dict[str, Any]:
    from loanwatch.services.scoring.weekly_scoring import run_weekly_scoring

    return run_weekly_scoring(db)


JOB_REGISTRY: dict[str, JobSpec] = {
    spec.job_type: spec
    for spec in (
        JobSpec("overdue_scan", _overdue_scan, "0 * * * *", "Overdue loan scan", "scanned"),
        JobSpec("no_show_scan", _no_show_scan, "*/30 * * * *", "No-show reservation scan", "scanned"),
        JobSpec(
            "due_soon_reminders",
            _due_soon_reminders,
            "0 9 * * *",
            "Loan due-soon reminders",
            "scanned",
        ),
        JobSpec(
            "reservation_cleanup",
            _reservation_cleanup,
            "0 */2 * * *",
            "Expired reservation cleanup",
            "scanned",
        ),
        JobSpec("daily_report", _daily_report, "0 0 * * *", "Daily summary report"),
        JobSpec(
            "weekly_scoring",
            _weekly_scoring,
            "0 0 * * 0",
            "Weekly reliability and utilization scoring",
            "users_scored",
        ),
    )
}


def get_job(job_type: str) -> JobSpec:
    """Look up a job. Raises ValueError for unknown job types."""
    spec = JOB_REGISTRY.get(job_type)
    if spec is None:
        raise ValueError(f"Unknown job_type: {job_type}")
    return spec


def crontab_lines(command: str = "python scripts/run_job.py") -> list[str]:
    """Crontab entries for every job, evaluated in the business time zone."""
    lines = [f"CRON_TZ={get_settings().business_timezone}"]
    for spec in JOB_REGISTRY.values():
        lines.append(f"{spec.cron} {command} {spec.job_type}  # {spec.description}")
    return lines
