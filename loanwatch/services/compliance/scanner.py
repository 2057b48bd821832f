"""Compliance scanner: overdue-loan and no-show-reservation scans.

Each record is processed in its own transaction. A failing record is rolled
back, logged and reported in ScanResult.errors; the scan moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from loanwatch.models import Loan, Reservation, User
from loanwatch.services.compliance.alert_content import no_show_content, overdue_loan_content
from loanwatch.services.compliance.alert_ledger import AlertAlreadyExistsError, AlertLedger
from loanwatch.services.compliance.constants import (
    ACTIVITY_LOAN_MARKED_OVERDUE,
    ALERT_TYPE_NO_SHOW_RESERVATION,
    ALERT_TYPE_OVERDUE_LOAN,
    LOAN_STATUS_BORROWED,
    LOAN_STATUS_OVERDUE,
    NO_SHOW_ALERT_PRIORITY,
    NOTIFICATION_LOAN_OVERDUE,
    NOTIFICATION_LOAN_OVERDUE_ADMIN,
    PRIORITY_HIGH,
    RESERVATION_STATUS_NO_SHOW,
    RESERVATION_STATUS_READY,
    SOURCE_TYPE_LOAN,
    SOURCE_TYPE_RESERVATION,
)
from loanwatch.services.compliance.no_show_tracker import NoShowTracker
from loanwatch.services.compliance.notifications import (
    admin_user_ids,
    enqueue_notification,
    log_activity,
)
from loanwatch.services.compliance.time_windows import (
    days_overdue,
    is_no_show,
    overdue_priority,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome of one scan run. Returned even when some records failed."""

    scanned: int = 0
    new_alerts: int = 0
    escalated_alerts: int = 0
    repeat_offender_alerts: int = 0
    notifications_enqueued: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "completed_with_errors" if self.errors else "completed"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, **asdict(self)}


class ComplianceScanner:
    """Runs the overdue and no-show scans over one session."""

    def __init__(
        self,
        db: Session,
        ledger: AlertLedger | None = None,
        tracker: NoShowTracker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self._clock = clock or (lambda: datetime.now(UTC))
        self.ledger = ledger or AlertLedger(db, clock=self._clock)
        self.tracker = tracker or NoShowTracker(db, clock=self._clock)

    # ── Overdue loans ───────────────────────────────────────────────────

    def run_overdue_scan(self) -> ScanResult:
        """Alert on, escalate and mark overdue every borrowed or overdue loan past its due day."""
        now = self._clock()
        result = ScanResult()

        loans = (
            self.db.query(Loan)
            .filter(Loan.status.in_([LOAN_STATUS_BORROWED, LOAN_STATUS_OVERDUE]))
            .order_by(Loan.id)
            .all()
        )
        loan_ids = [loan.id for loan in loans]
        result.scanned = len(loan_ids)

        for loan_id in loan_ids:
            try:
                self._process_overdue_loan(loan_id, now, result)
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                logger.exception("Overdue scan failed for loan_id=%s", loan_id)
                result.errors.append({"record_id": loan_id, "message": str(exc)})

        logger.info(
            "Overdue scan completed: scanned=%d new_alerts=%d escalated=%d notifications=%d errors=%d",
            result.scanned,
            result.new_alerts,
            result.escalated_alerts,
            result.notifications_enqueued,
            len(result.errors),
        )
        return result

    def _process_overdue_loan(self, loan_id: int, now: datetime, result: ScanResult) -> None:
        loan = self.db.get(Loan, loan_id)
        if loan is None:
            return
        days = days_overdue(loan.expected_return_time, now)
        if days < 0:
            return

        priority = overdue_priority(days)
        existing = self.ledger.find_unresolved(loan.id, ALERT_TYPE_OVERDUE_LOAN)
        if existing is None:
            content = overdue_loan_content(loan, days)
            try:
                self.ledger.create(
                    ALERT_TYPE_OVERDUE_LOAN,
                    priority,
                    loan.id,
                    SOURCE_TYPE_LOAN,
                    content["snapshot"],
                    title=content["title"],
                    description=content["description"],
                    quick_actions=content["quick_actions"],
                )
                result.new_alerts += 1
            except AlertAlreadyExistsError as exc:
                existing = exc.existing

        if existing is not None and self.ledger.escalate(existing.id, priority, existing.priority):
            result.escalated_alerts += 1

        if self._mark_overdue(loan.id, now):
            result.notifications_enqueued += self._notify_overdue(loan, days, now)

    def _mark_overdue(self, loan_id: int, now: datetime) -> bool:
        """borrowed -> overdue. Only one concurrent caller can win."""
        res = self.db.execute(
            update(Loan)
            .where(Loan.id == loan_id, Loan.status == LOAN_STATUS_BORROWED)
            .values(status=LOAN_STATUS_OVERDUE, overdue_marked_at=now, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount > 0

    def _notify_overdue(self, loan: Loan, days: int, now: datetime) -> int:
        equipment_name = loan.equipment.name if loan.equipment else "Equipment"
        data = {
            "loanId": loan.id,
            "equipmentId": loan.equipment_id,
            "equipmentName": equipment_name,
            "daysOverdue": days,
        }
        enqueue_notification(
            self.db,
            loan.user_id,
            NOTIFICATION_LOAN_OVERDUE,
            title="Equipment overdue",
            message=f"{equipment_name} is {days} day(s) overdue. Please return it as soon as possible.",
            data=data,
            priority=PRIORITY_HIGH,
            action_url="/my-requests",
            now=now,
        )
        sent = 1

        borrower = self.db.get(User, loan.user_id)
        borrower_name = (borrower.display_name if borrower else None) or "User"
        for admin_id in admin_user_ids(self.db):
            enqueue_notification(
                self.db,
                admin_id,
                NOTIFICATION_LOAN_OVERDUE_ADMIN,
                title="Loan overdue",
                message=f"{borrower_name} has not returned {equipment_name} ({days} day(s) overdue)",
                data={**data, "userId": loan.user_id, "userName": borrower_name},
                priority=PRIORITY_HIGH,
                action_url="/admin/loans",
                now=now,
            )
            sent += 1

        log_activity(
            self.db,
            ACTIVITY_LOAN_MARKED_OVERDUE,
            SOURCE_TYPE_LOAN,
            loan.id,
            details={"daysOverdue": days, "userId": loan.user_id, "equipmentId": loan.equipment_id},
            now=now,
        )
        logger.info("Loan marked overdue: loan_id=%s days=%d notifications=%d", loan.id, days, sent)
        return sent

    # ── No-show reservations ────────────────────────────────────────────

    def run_no_show_scan(self) -> ScanResult:
        """Mark missed pickups as no-shows, alert on them, and flag repeat offenders."""
        now = self._clock()
        result = ScanResult()

        reservations = (
            self.db.query(Reservation)
            .filter(Reservation.status == RESERVATION_STATUS_READY)
            .order_by(Reservation.id)
            .all()
        )
        result.scanned = len(reservations)
        candidates = [(r.id, r.user_id) for r in reservations if is_no_show(r, now)]

        touched_users: list[int] = []
        for reservation_id, user_id in candidates:
            try:
                claimed = self._process_no_show(reservation_id, now, result)
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                logger.exception("No-show scan failed for reservation_id=%s", reservation_id)
                result.errors.append({"record_id": reservation_id, "message": str(exc)})
                continue
            if not claimed:
                continue
            self.tracker.record(user_id)
            if user_id not in touched_users:
                touched_users.append(user_id)

        for user_id in touched_users:
            try:
                if self._flag_repeat_offender(user_id):
                    result.repeat_offender_alerts += 1
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                logger.exception("Repeat offender check failed for user_id=%s", user_id)
                result.errors.append({"record_id": user_id, "message": str(exc)})

        logger.info(
            "No-show scan completed: scanned=%d no_shows=%d new_alerts=%d repeat_offenders=%d errors=%d",
            result.scanned,
            len(candidates),
            result.new_alerts,
            result.repeat_offender_alerts,
            len(result.errors),
        )
        return result

    def _process_no_show(self, reservation_id: int, now: datetime, result: ScanResult) -> bool:
        """Claim ready -> no_show and open an alert. Returns False if another run got there first."""
        res = self.db.execute(
            update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.status == RESERVATION_STATUS_READY,
            )
            .values(
                status=RESERVATION_STATUS_NO_SHOW,
                is_no_show=True,
                no_show_marked_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        if res.rowcount == 0:
            return False

        reservation = self.db.get(Reservation, reservation_id)
        content = no_show_content(reservation)
        try:
            self.ledger.create(
                ALERT_TYPE_NO_SHOW_RESERVATION,
                NO_SHOW_ALERT_PRIORITY,
                reservation_id,
                SOURCE_TYPE_RESERVATION,
                content["snapshot"],
                title=content["title"],
                description=content["description"],
                quick_actions=content["quick_actions"],
            )
            result.new_alerts += 1
        except AlertAlreadyExistsError:
            logger.info("No-show alert already open: reservation_id=%s", reservation_id)
        logger.info("Reservation marked no-show: reservation_id=%s", reservation_id)
        return True

    def _flag_repeat_offender(self, user_id: int) -> bool:
        if not self.tracker.is_repeat_offender(user_id):
            return False
        user = self.db.get(User, user_id)
        if user is None:
            return False
        count = self.tracker.count_in_window(user_id)
        self.ledger.upsert_repeat_offender(user, count)
        return True
