"""Daily summary report (runs at 00:00 for the business day that just ended)."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.orm import Session

from loanwatch.models import Alert, Loan, Reservation
from loanwatch.services.compliance.constants import (
    ALERT_TYPE_OVERDUE_LOAN,
    LOAN_STATUS_APPROVED,
    LOAN_STATUS_BORROWED,
    LOAN_STATUS_OVERDUE,
    LOAN_STATUS_REJECTED,
    LOAN_STATUS_RETURNED,
    PRIORITY_CRITICAL,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    RESERVATION_STATUS_APPROVED,
    RESERVATION_STATUS_CANCELLED,
    RESERVATION_STATUS_COMPLETED,
    RESERVATION_STATUS_NO_SHOW,
    RESERVATION_STATUS_READY,
)
from loanwatch.services.compliance.time_windows import day_bounds, ensure_utc, local_date
from loanwatch.services.reports.periods import daily_period
from loanwatch.services.reports.report_store import upsert_report
from loanwatch.services.scoring.constants import REPORT_TYPE_DAILY_SUMMARY

logger = logging.getLogger(__name__)

_LOAN_STATUS_KEYS = {
    LOAN_STATUS_APPROVED: "approved",
    LOAN_STATUS_REJECTED: "rejected",
    LOAN_STATUS_BORROWED: "borrowed",
    LOAN_STATUS_RETURNED: "returned",
    LOAN_STATUS_OVERDUE: "overdue",
}

_RESERVATION_STATUS_KEYS = {
    RESERVATION_STATUS_APPROVED: "approved",
    RESERVATION_STATUS_READY: "approved",
    RESERVATION_STATUS_CANCELLED: "cancelled",
    RESERVATION_STATUS_COMPLETED: "completed",
    RESERVATION_STATUS_NO_SHOW: "noShows",
}


def _within(dt: datetime | None, start: datetime, end: datetime) -> bool:
    return dt is not None and start <= ensure_utc(dt) <= end


def loan_activity(db: Session, start: datetime, end: datetime) -> dict:
    """Loans updated during [start, end]: new requests plus counts by tracked status."""
    loans = db.query(Loan).filter(Loan.updated_at >= start, Loan.updated_at <= end).all()
    activity = {
        "newRequests": 0,
        "approved": 0,
        "rejected": 0,
        "borrowed": 0,
        "returned": 0,
        "overdue": 0,
        "total": len(loans),
    }
    for loan in loans:
        if _within(loan.created_at, start, end):
            activity["newRequests"] += 1
        key = _LOAN_STATUS_KEYS.get(loan.status)
        if key:
            activity[key] += 1
    return activity


def reservation_activity(db: Session, start: datetime, end: datetime) -> dict:
    """Reservations updated during [start, end]. Ready counts as approved."""
    reservations = (
        db.query(Reservation)
        .filter(Reservation.updated_at >= start, Reservation.updated_at <= end)
        .all()
    )
    activity = {
        "newReservations": 0,
        "approved": 0,
        "cancelled": 0,
        "completed": 0,
        "noShows": 0,
        "total": len(reservations),
    }
    for reservation in reservations:
        if _within(reservation.created_at, start, end):
            activity["newReservations"] += 1
        key = _RESERVATION_STATUS_KEYS.get(reservation.status)
        if key:
            activity[key] += 1
    return activity


def alert_stats(db: Session, start: datetime, end: datetime) -> dict:
    """Open alerts by priority, plus alerts resolved during [start, end]."""
    stats = {
        "total": 0,
        PRIORITY_CRITICAL: 0,
        PRIORITY_HIGH: 0,
        PRIORITY_MEDIUM: 0,
        PRIORITY_LOW: 0,
        "resolvedToday": 0,
    }
    for alert in db.query(Alert).all():
        if alert.is_resolved:
            if _within(alert.resolved_at, start, end):
                stats["resolvedToday"] += 1
            continue
        stats["total"] += 1
        if alert.priority in stats:
            stats[alert.priority] += 1
    return stats


def overdue_summary(db: Session) -> dict:
    """Open overdue_loan alerts by priority and their summed days overdue."""
    alerts = (
        db.query(Alert)
        .filter(Alert.alert_type == ALERT_TYPE_OVERDUE_LOAN, Alert.is_resolved.is_(False))
        .all()
    )
    summary = {
        "total": len(alerts),
        PRIORITY_CRITICAL: 0,
        PRIORITY_HIGH: 0,
        PRIORITY_MEDIUM: 0,
        "totalDaysOverdue": 0,
    }
    for alert in alerts:
        summary["totalDaysOverdue"] += int((alert.source_data or {}).get("daysOverdue") or 0)
        if alert.priority in (PRIORITY_CRITICAL, PRIORITY_HIGH, PRIORITY_MEDIUM):
            summary[alert.priority] += 1
    return summary


def build_daily_report(db: Session, day: date, now: datetime) -> dict:
    start, end = day_bounds(day)
    return {
        "date": daily_period(day),
        "loans": loan_activity(db, start, end),
        "reservations": reservation_activity(db, start, end),
        "alerts": alert_stats(db, start, end),
        "overdue": overdue_summary(db),
        "generatedAt": now.isoformat(),
    }


def run_daily_report(db: Session, now: datetime | None = None, day: date | None = None) -> dict:
    """Build and store the daily summary for day (default: yesterday in business time).

    Returns:
        dict with status, report_id, period and a short summary.
    """
    now = ensure_utc(now) if now is not None else datetime.now(UTC)
    if day is None:
        day = local_date(now) - timedelta(days=1)
    period = daily_period(day)

    data = build_daily_report(db, day, now)
    report = upsert_report(db, REPORT_TYPE_DAILY_SUMMARY, period, data, now=now)
    db.commit()

    logger.info(
        "Daily report generated: period=%s loans=%d reservations=%d open_alerts=%d",
        period,
        data["loans"]["total"],
        data["reservations"]["total"],
        data["alerts"]["total"],
    )
    return {
        "status": "completed",
        "report_id": report.id,
        "period": period,
        "summary": {
            "totalLoans": data["loans"]["total"],
            "totalReservations": data["reservations"]["total"],
            "totalAlerts": data["alerts"]["total"],
            "totalOverdue": data["overdue"]["total"],
        },
    }
