"""Loan-due-soon reminders (daily 09:00).

Borrowed loans due between now and the end of tomorrow get one loan_reminder
notification per business day.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from loanwatch.models import Loan, Notification
from loanwatch.services.compliance.constants import (
    LOAN_STATUS_BORROWED,
    NOTIFICATION_LOAN_REMINDER,
    PRIORITY_HIGH,
)
from loanwatch.services.compliance.notifications import enqueue_notification
from loanwatch.services.compliance.time_windows import (
    day_bounds,
    due_soon_window,
    ensure_utc,
    is_due_soon,
    local_date,
)

logger = logging.getLogger(__name__)


def _already_reminded(db: Session, loan: Loan, since: datetime) -> bool:
    sent_today = (
        db.query(Notification)
        .filter(
            Notification.user_id == loan.user_id,
            Notification.notification_type == NOTIFICATION_LOAN_REMINDER,
            Notification.created_at >= since,
        )
        .all()
    )
    return any((n.data or {}).get("loanId") == loan.id for n in sent_today)


def run_due_soon_reminders(db: Session, now: datetime | None = None) -> dict:
    """Enqueue return reminders for loans due soon.

    Returns:
        dict with status, scanned, reminders_sent, skipped, errors.
    """
    now = ensure_utc(now) if now is not None else datetime.now(UTC)
    _, window_end = due_soon_window(now)
    today_start, _ = day_bounds(local_date(now))

    loans = (
        db.query(Loan)
        .filter(
            Loan.status == LOAN_STATUS_BORROWED,
            Loan.expected_return_time.is_not(None),
            Loan.expected_return_time <= window_end,
        )
        .order_by(Loan.id)
        .all()
    )
    loan_ids = [loan.id for loan in loans if is_due_soon(loan, now)]

    sent = 0
    skipped = 0
    errors: list[dict] = []
    for loan_id in loan_ids:
        try:
            loan = db.get(Loan, loan_id)
            if _already_reminded(db, loan, today_start):
                skipped += 1
                continue
            equipment_name = loan.equipment.name if loan.equipment else "Equipment"
            due = ensure_utc(loan.expected_return_time)
            due_day = local_date(due)
            when = "today" if due_day == local_date(now) else "tomorrow"
            enqueue_notification(
                db,
                loan.user_id,
                NOTIFICATION_LOAN_REMINDER,
                title="Equipment due soon",
                message=f"Please return {equipment_name} by {when} ({due_day.isoformat()}).",
                data={
                    "loanId": loan.id,
                    "equipmentId": loan.equipment_id,
                    "equipmentName": equipment_name,
                    "expectedReturnDate": due.isoformat(),
                },
                priority=PRIORITY_HIGH,
                action_url="/my-requests",
                now=now,
            )
            db.commit()
            sent += 1
        except Exception as exc:
            db.rollback()
            logger.exception("Due-soon reminder failed for loan_id=%s", loan_id)
            errors.append({"record_id": loan_id, "message": str(exc)})

    logger.info(
        "Due-soon reminders completed: scanned=%d sent=%d skipped=%d errors=%d",
        len(loan_ids),
        sent,
        skipped,
        len(errors),
    )
    return {
        "status": "completed_with_errors" if errors else "completed",
        "scanned": len(loan_ids),
        "reminders_sent": sent,
        "skipped": skipped,
        "errors": errors,
    }
