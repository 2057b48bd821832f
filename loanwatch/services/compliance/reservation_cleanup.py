"""Expired-reservation cleanup (every 2 hours).

Ready reservations whose pickup deadline passed more than the configured grace
ago become expired and their equipment goes back to available. The grace
leaves stale reservations to the no-show scan first; expiry does not count
against the user.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from loanwatch.config import get_settings
from loanwatch.models import Equipment, Reservation
from loanwatch.services.compliance.constants import (
    ACTIVITY_RESERVATION_EXPIRED,
    EQUIPMENT_STATUS_AVAILABLE,
    EQUIPMENT_STATUS_RESERVED,
    NOTIFICATION_RESERVATION_EXPIRED,
    RESERVATION_STATUS_EXPIRED,
    RESERVATION_STATUS_READY,
    SOURCE_TYPE_RESERVATION,
)
from loanwatch.services.compliance.notifications import enqueue_notification, log_activity
from loanwatch.services.compliance.time_windows import ensure_utc, is_reservation_expired

logger = logging.getLogger(__name__)


def _expire(db: Session, reservation: Reservation, now: datetime) -> bool:
    claimed = db.execute(
        update(Reservation)
        .where(Reservation.id == reservation.id, Reservation.status == RESERVATION_STATUS_READY)
        .values(status=RESERVATION_STATUS_EXPIRED, expired_at=now, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    if claimed.rowcount == 0:
        return False

    db.execute(
        update(Equipment)
        .where(
            Equipment.id == reservation.equipment_id,
            Equipment.status == EQUIPMENT_STATUS_RESERVED,
        )
        .values(status=EQUIPMENT_STATUS_AVAILABLE, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )

    equipment_name = reservation.equipment.name if reservation.equipment else "Equipment"
    enqueue_notification(
        db,
        reservation.user_id,
        NOTIFICATION_RESERVATION_EXPIRED,
        title="Reservation expired",
        message=f"Your reservation of {equipment_name} expired because it was not picked up in time.",
        data={"reservationId": reservation.id, "equipmentId": reservation.equipment_id},
        now=now,
    )
    log_activity(
        db,
        ACTIVITY_RESERVATION_EXPIRED,
        SOURCE_TYPE_RESERVATION,
        reservation.id,
        details={"userId": reservation.user_id, "equipmentId": reservation.equipment_id},
        now=now,
    )
    return True


def run_reservation_cleanup(db: Session, now: datetime | None = None) -> dict:
    """Expire stale ready reservations.

    Returns:
        dict with status, scanned, expired, errors.
    """
    now = ensure_utc(now) if now is not None else datetime.now(UTC)
    grace = timedelta(minutes=get_settings().reservation_expiry_grace_minutes)

    ready = (
        db.query(Reservation)
        .filter(Reservation.status == RESERVATION_STATUS_READY)
        .order_by(Reservation.id)
        .all()
    )
    stale_ids = [r.id for r in ready if is_reservation_expired(r, now, grace)]

    expired = 0
    errors: list[dict] = []
    for reservation_id in stale_ids:
        try:
            reservation = db.get(Reservation, reservation_id)
            if _expire(db, reservation, now):
                expired += 1
                logger.info("Reservation expired: reservation_id=%s", reservation_id)
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.exception("Reservation cleanup failed for reservation_id=%s", reservation_id)
            errors.append({"record_id": reservation_id, "message": str(exc)})

    logger.info(
        "Reservation cleanup completed: scanned=%d expired=%d errors=%d",
        len(ready),
        expired,
        len(errors),
    )
    return {
        "status": "completed_with_errors" if errors else "completed",
        "scanned": len(ready),
        "expired": expired,
        "errors": errors,
    }
