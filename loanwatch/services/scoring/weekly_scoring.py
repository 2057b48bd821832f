"""Weekly scoring job (Sunday 00:00).

Recomputes every user's ReliabilityRecord, classifies active equipment by
utilization, and stores the weekly_utilization report for the week that just
ended.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from loanwatch.config import get_settings
from loanwatch.db.dialect import insert_for
from loanwatch.models import Equipment, Loan, ReliabilityRecord, Reservation, User
from loanwatch.services.compliance.constants import RESERVATION_STATUS_COMPLETED, RESERVATION_STATUS_NO_SHOW
from loanwatch.services.compliance.no_show_tracker import NoShowTracker
from loanwatch.services.compliance.time_windows import ensure_utc, local_date, week_bounds
from loanwatch.services.reports.periods import weekly_period
from loanwatch.services.reports.report_store import upsert_report
from loanwatch.services.scoring.constants import (
    CLASS_EXCELLENT,
    CLASS_FAIR,
    CLASS_GOOD,
    CLASS_HIGH_DEMAND,
    CLASS_IDLE,
    CLASS_NORMAL,
    CLASS_POOR,
    FLAG_BELOW_SCORE,
    MOST_RELIABLE_MIN_LOANS,
    REPORT_TYPE_WEEKLY_UTILIZATION,
    TOP_EQUIPMENT_LIMIT,
    TOP_USERS_LIMIT,
    UTILIZATION_LOAN_STATUSES,
)
from loanwatch.services.scoring.reliability import (
    aggregate_loans,
    aggregate_reservations,
    classify_reliability,
    reliability_score,
)
from loanwatch.services.scoring.utilization import UtilizationRecord, compute_utilization

logger = logging.getLogger(__name__)


def _upsert_reliability(db: Session, values: dict[str, Any]) -> None:
    stmt = insert_for(db, ReliabilityRecord).values(**values)
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={key: getattr(excluded, key) for key in values if key != "user_id"},
    )
    db.execute(stmt)


def score_users(db: Session, now: datetime) -> tuple[list[dict[str, Any]], list[dict]]:
    """Overwrite every user's reliability record. Returns (rows, errors)."""
    settings = get_settings()
    tracker = NoShowTracker(db, clock=lambda: now)

    loans_by_user: dict[int, list[Loan]] = defaultdict(list)
    for loan in db.query(Loan).all():
        loans_by_user[loan.user_id].append(loan)
    reservations_by_user: dict[int, list[Reservation]] = defaultdict(list)
    for reservation in db.query(Reservation).all():
        reservations_by_user[reservation.user_id].append(reservation)

    users = [(u.id, u.display_name, u.email) for u in db.query(User).order_by(User.id).all()]
    rows: list[dict[str, Any]] = []
    errors: list[dict] = []
    for user_id, display_name, email in users:
        try:
            loan_stats = aggregate_loans(loans_by_user.get(user_id, []))
            reservation_stats = aggregate_reservations(reservations_by_user.get(user_id, []))
            score = reliability_score(loan_stats.on_time_return_rate, reservation_stats.no_show_rate)
            recent = tracker.count_in_window(user_id, settings.repeat_no_show_window_days)
            values = {
                "user_id": user_id,
                "user_name": display_name or "",
                "user_email": email or "",
                "total_loans": loan_stats.total_loans,
                "on_time_returns": loan_stats.on_time_returns,
                "late_returns": loan_stats.late_returns,
                "on_time_return_rate": loan_stats.on_time_return_rate,
                "total_reservations": reservation_stats.total_reservations,
                "no_shows": reservation_stats.no_shows,
                "no_show_rate": reservation_stats.no_show_rate,
                "reliability_score": score,
                "classification": classify_reliability(score),
                "is_flagged": score < FLAG_BELOW_SCORE,
                "recent_no_shows": recent,
                "is_repeat_offender": recent >= settings.repeat_no_show_threshold,
                "last_calculated_at": now,
                "updated_at": now,
            }
            _upsert_reliability(db, values)
            db.commit()
            rows.append(values)
        except Exception as exc:
            db.rollback()
            logger.exception("Reliability scoring failed for user_id=%s", user_id)
            errors.append({"record_id": user_id, "message": str(exc)})
    return rows, errors


def classify_equipment(db: Session, now: datetime) -> list[UtilizationRecord]:
    """Utilization of every active item over the trailing analysis window."""
    window_end = now
    window_start = now - timedelta(days=get_settings().utilization_analysis_days)

    loans_by_equipment: dict[int, list[Loan]] = defaultdict(list)
    loans = db.query(Loan).filter(Loan.status.in_(UTILIZATION_LOAN_STATUSES)).all()
    for loan in loans:
        loans_by_equipment[loan.equipment_id].append(loan)

    active = db.query(Equipment).filter(Equipment.is_active.is_(True)).order_by(Equipment.id).all()
    return [
        compute_utilization(item, loans_by_equipment.get(item.id, []), window_start, window_end, now)
        for item in active
    ]


def _day_key(dt: datetime | None) -> str | None:
    return local_date(dt).isoformat() if dt is not None else None


def weekly_loan_statistics(db: Session, start: datetime, end: datetime) -> dict:
    loans = db.query(Loan).filter(Loan.created_at >= start, Loan.created_at <= end).all()
    stats: dict[str, Any] = {"totalRequests": len(loans), "byStatus": {}, "byDay": {}}
    for loan in loans:
        status = loan.status or "unknown"
        stats["byStatus"][status] = stats["byStatus"].get(status, 0) + 1
        key = _day_key(loan.created_at)
        if key:
            stats["byDay"][key] = stats["byDay"].get(key, 0) + 1
    return stats


def weekly_reservation_statistics(db: Session, start: datetime, end: datetime) -> dict:
    """Reservation counts for the week; noShowRate = no-shows / (completed + no-shows), 2 dp."""
    reservations = (
        db.query(Reservation)
        .filter(Reservation.created_at >= start, Reservation.created_at <= end)
        .all()
    )
    stats: dict[str, Any] = {
        "totalReservations": len(reservations),
        "byStatus": {},
        "byDay": {},
        "noShowRate": 0,
    }
    no_shows = 0
    decided = 0
    for reservation in reservations:
        status = reservation.status or "unknown"
        stats["byStatus"][status] = stats["byStatus"].get(status, 0) + 1
        key = _day_key(reservation.created_at)
        if key:
            stats["byDay"][key] = stats["byDay"].get(key, 0) + 1
        if reservation.status == RESERVATION_STATUS_NO_SHOW or reservation.is_no_show:
            no_shows += 1
            decided += 1
        elif reservation.status == RESERVATION_STATUS_COMPLETED:
            decided += 1
    if decided:
        stats["noShowRate"] = round(no_shows / decided, 2)
    return stats


def _equipment_section(records: list[UtilizationRecord]) -> dict:
    counts = {CLASS_HIGH_DEMAND: 0, CLASS_NORMAL: 0, CLASS_IDLE: 0}
    for record in records:
        counts[record.classification] += 1
    average = sum(r.utilization_rate for r in records) / len(records) if records else 0
    return {
        "summary": {
            "totalEquipment": len(records),
            "highDemandCount": counts[CLASS_HIGH_DEMAND],
            "normalCount": counts[CLASS_NORMAL],
            "idleCount": counts[CLASS_IDLE],
            "averageUtilization": average,
        },
        "highDemand": [
            r.to_payload() for r in records if r.classification == CLASS_HIGH_DEMAND
        ][:TOP_EQUIPMENT_LIMIT],
        "idle": [r.to_payload() for r in records if r.classification == CLASS_IDLE][
            :TOP_EQUIPMENT_LIMIT
        ],
        "averageUtilization": average,
    }


def _user_payload(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "userId": row["user_id"],
        "userName": row["user_name"],
        "userEmail": row["user_email"],
        "totalLoans": row["total_loans"],
        "onTimeReturns": row["on_time_returns"],
        "lateReturns": row["late_returns"],
        "onTimeReturnRate": row["on_time_return_rate"],
        "totalReservations": row["total_reservations"],
        "noShows": row["no_shows"],
        "noShowRate": row["no_show_rate"],
        "reliabilityScore": row["reliability_score"],
        "classification": row["classification"],
    }


def _users_section(rows: list[dict[str, Any]]) -> dict:
    counts = {CLASS_EXCELLENT: 0, CLASS_GOOD: 0, CLASS_FAIR: 0, CLASS_POOR: 0}
    for row in rows:
        counts[row["classification"]] += 1
    average = math.floor(sum(r["reliability_score"] for r in rows) / len(rows) + 0.5) if rows else 0
    top_borrowers = sorted(
        (r for r in rows if r["total_loans"] > 0), key=lambda r: r["total_loans"], reverse=True
    )[:TOP_USERS_LIMIT]
    most_reliable = sorted(
        (r for r in rows if r["total_loans"] >= MOST_RELIABLE_MIN_LOANS),
        key=lambda r: r["reliability_score"],
        reverse=True,
    )[:TOP_USERS_LIMIT]
    return {
        "summary": {
            "totalUsers": len(rows),
            "excellentCount": counts[CLASS_EXCELLENT],
            "goodCount": counts[CLASS_GOOD],
            "fairCount": counts[CLASS_FAIR],
            "poorCount": counts[CLASS_POOR],
            "averageReliabilityScore": average,
        },
        "topBorrowers": [_user_payload(r) for r in top_borrowers],
        "mostReliable": [_user_payload(r) for r in most_reliable],
    }


def run_weekly_scoring(db: Session, now: datetime | None = None) -> dict:
    """Score users and equipment and store the weekly report.

    Returns:
        dict with status, report_id, period, summary, errors.
    """
    now = ensure_utc(now) if now is not None else datetime.now(UTC)
    report_day = local_date(now) - timedelta(days=1)
    week_start, week_end = week_bounds(report_day)
    period = weekly_period(report_day)

    rows, errors = score_users(db, now)
    utilization = classify_equipment(db, now)
    equipment = _equipment_section(utilization)
    users = _users_section(rows)
    loans = weekly_loan_statistics(db, week_start, week_end)
    reservations = weekly_reservation_statistics(db, week_start, week_end)

    data = {
        "weekStart": week_start.isoformat(),
        "weekEnd": week_end.isoformat(),
        "equipment": equipment,
        "users": users,
        "loans": loans,
        "reservations": reservations,
        "generatedAt": now.isoformat(),
    }
    report = upsert_report(db, REPORT_TYPE_WEEKLY_UTILIZATION, period, data, now=now)
    db.commit()

    summary = {
        "totalEquipment": equipment["summary"]["totalEquipment"],
        "highDemandEquipment": equipment["summary"]["highDemandCount"],
        "idleEquipment": equipment["summary"]["idleCount"],
        "totalUsers": users["summary"]["totalUsers"],
        "averageReliabilityScore": users["summary"]["averageReliabilityScore"],
        "totalLoans": loans["totalRequests"],
        "totalReservations": reservations["totalReservations"],
    }
    logger.info(
        "Weekly scoring completed: period=%s users=%d equipment=%d errors=%d",
        period,
        summary["totalUsers"],
        summary["totalEquipment"],
        len(errors),
    )
    return {
        "status": "completed_with_errors" if errors else "completed",
        "report_id": report.id,
        "period": period,
        "users_scored": len(rows),
        "summary": summary,
        "errors": errors,
    }
