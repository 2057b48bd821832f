"""Alert titles, descriptions, source snapshots and quick actions per alert type."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loanwatch.models import Loan, Reservation, User
from loanwatch.schemas.alerts import QuickAction
from loanwatch.services.compliance.constants import OVERDUE_CRITICAL_DAYS


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _actions(*actions: QuickAction) -> list[dict[str, Any]]:
    return [a.model_dump() for a in actions]


def overdue_loan_content(loan: Loan, days: int) -> dict[str, Any]:
    """Content for an overdue_loan alert."""
    equipment_name = loan.equipment.name if loan.equipment else "Equipment"
    user_name = (loan.user.display_name if loan.user else None) or "User"
    title = f"Loan overdue by {days} day(s)"
    if days >= OVERDUE_CRITICAL_DAYS:
        title += " (critical)"
    return {
        "title": title,
        "description": f"{equipment_name} borrowed by {user_name} is {days} day(s) past its return date",
        "snapshot": {
            "loanId": loan.id,
            "equipmentId": loan.equipment_id,
            "equipmentName": equipment_name,
            "userId": loan.user_id,
            "userName": user_name,
            "userEmail": loan.user.email if loan.user else None,
            "expectedReturnDate": _iso(loan.expected_return_time),
            "daysOverdue": days,
        },
        "quick_actions": _actions(
            QuickAction(
                id="send_reminder",
                label="Send reminder",
                action="send_reminder",
                params={"loanId": loan.id, "userId": loan.user_id},
            ),
            QuickAction(
                id="mark_contacted",
                label="Mark as contacted",
                action="mark_contacted",
                params={"loanId": loan.id},
            ),
            QuickAction(id="dismiss", label="Dismiss", action="dismiss", params={"loanId": loan.id}),
        ),
    }


def no_show_content(reservation: Reservation) -> dict[str, Any]:
    """Content for a no_show_reservation alert."""
    equipment_name = reservation.equipment.name if reservation.equipment else "Equipment"
    user_name = (reservation.user.display_name if reservation.user else None) or "User"
    return {
        "title": "Reserved equipment not picked up",
        "description": f"Reservation of {equipment_name} by {user_name} was not picked up in time",
        "snapshot": {
            "reservationId": reservation.id,
            "equipmentId": reservation.equipment_id,
            "equipmentName": equipment_name,
            "userId": reservation.user_id,
            "userName": user_name,
            "userEmail": reservation.user.email if reservation.user else None,
            "startTime": _iso(reservation.start_time),
            "endTime": _iso(reservation.end_time),
        },
        "quick_actions": _actions(
            QuickAction(
                id="cancel_reservation",
                label="Cancel reservation",
                action="cancel_reservation",
                params={"reservationId": reservation.id},
            ),
            QuickAction(
                id="extend_pickup",
                label="Extend pickup time",
                action="extend_pickup_time",
                params={"reservationId": reservation.id},
            ),
            QuickAction(
                id="contact_user",
                label="Contact user",
                action="contact_user",
                params={"reservationId": reservation.id, "userId": reservation.user_id},
            ),
            QuickAction(
                id="dismiss",
                label="Dismiss",
                action="dismiss",
                params={"reservationId": reservation.id},
            ),
        ),
    }


def repeat_offender_content(user: User, no_show_count: int, window_days: int) -> dict[str, Any]:
    """Content for a repeat_no_show_user alert."""
    name = user.display_name or user.email or "User"
    return {
        "title": "User repeatedly missed pickups",
        "description": f"{name} missed {no_show_count} pickups in the last {window_days} days",
        "snapshot": {
            "userId": user.id,
            "userName": user.display_name,
            "userEmail": user.email,
            "noShowCount": no_show_count,
            "period": f"{window_days} days",
        },
        "quick_actions": _actions(
            QuickAction(id="flag_user", label="Flag user", action="flag_user", params={"userId": user.id}),
            QuickAction(
                id="contact_user", label="Contact user", action="contact_user", params={"userId": user.id}
            ),
            QuickAction(id="dismiss", label="Dismiss", action="dismiss", params={"userId": user.id}),
        ),
    }
