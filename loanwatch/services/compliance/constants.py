"""Compliance engine constants: statuses, alert types, priorities, thresholds.

Centralized so the scanner, ledger and scorers carry no magic numbers.
"""

from __future__ import annotations

# ── Record statuses ──────────────────────────────────────────────────────

LOAN_STATUS_PENDING = "pending"
LOAN_STATUS_APPROVED = "approved"
LOAN_STATUS_REJECTED = "rejected"
LOAN_STATUS_BORROWED = "borrowed"
LOAN_STATUS_RETURNED = "returned"
LOAN_STATUS_OVERDUE = "overdue"

RESERVATION_STATUS_PENDING = "pending"
RESERVATION_STATUS_APPROVED = "approved"
RESERVATION_STATUS_READY = "ready"
RESERVATION_STATUS_COMPLETED = "completed"
RESERVATION_STATUS_CANCELLED = "cancelled"
RESERVATION_STATUS_NO_SHOW = "no_show"
RESERVATION_STATUS_EXPIRED = "expired"

EQUIPMENT_STATUS_AVAILABLE = "available"
EQUIPMENT_STATUS_RESERVED = "reserved"

USER_ROLE_ADMIN = "admin"

# ── Alerts ───────────────────────────────────────────────────────────────

ALERT_TYPE_OVERDUE_LOAN = "overdue_loan"
ALERT_TYPE_NO_SHOW_RESERVATION = "no_show_reservation"
ALERT_TYPE_REPEAT_NO_SHOW_USER = "repeat_no_show_user"

ALERT_TYPES: frozenset[str] = frozenset(
    {ALERT_TYPE_OVERDUE_LOAN, ALERT_TYPE_NO_SHOW_RESERVATION, ALERT_TYPE_REPEAT_NO_SHOW_USER}
)

SOURCE_TYPE_LOAN = "loan"
SOURCE_TYPE_RESERVATION = "reservation"
SOURCE_TYPE_USER = "user"

PRIORITY_CRITICAL = "critical"
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"

# Lower rank = more severe
PRIORITY_RANK: dict[str, int] = {
    PRIORITY_CRITICAL: 0,
    PRIORITY_HIGH: 1,
    PRIORITY_MEDIUM: 2,
    PRIORITY_LOW: 3,
}
UNKNOWN_PRIORITY_RANK: int = 4

# Days overdue at which an overdue_loan alert reaches each priority
OVERDUE_CRITICAL_DAYS: int = 3
OVERDUE_HIGH_DAYS: int = 1

NO_SHOW_ALERT_PRIORITY = PRIORITY_HIGH
REPEAT_NO_SHOW_ALERT_PRIORITY = PRIORITY_HIGH

# ── Notifications / activity log ─────────────────────────────────────────

NOTIFICATION_LOAN_OVERDUE = "loan_overdue"
NOTIFICATION_LOAN_OVERDUE_ADMIN = "loan_overdue_admin"
NOTIFICATION_LOAN_REMINDER = "loan_reminder"
NOTIFICATION_RESERVATION_EXPIRED = "reservation_expired"

ACTIVITY_LOAN_MARKED_OVERDUE = "loan_marked_overdue"
ACTIVITY_RESERVATION_EXPIRED = "reservation_expired"
SYSTEM_ACTOR = "system"


def priority_rank(priority: str | None) -> int:
    """Return severity rank (critical=0 … low=3); unknown priorities rank last."""
    if priority is None:
        return UNKNOWN_PRIORITY_RANK
    return PRIORITY_RANK.get(priority, UNKNOWN_PRIORITY_RANK)

