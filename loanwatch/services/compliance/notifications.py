"""Notification and activity-log sinks.

The compliance jobs only enqueue rows; delivery happens elsewhere. Helpers add
to the session without committing so the rows share the caller's transaction.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from loanwatch.models import ActivityLog, Notification, User
from loanwatch.services.compliance.constants import SYSTEM_ACTOR, USER_ROLE_ADMIN

logger = logging.getLogger(__name__)


def enqueue_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    priority: str = "medium",
    action_url: str | None = None,
    now: datetime | None = None,
) -> Notification:
    """Queue a notification for user_id."""
    notification = Notification(
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        data=data or {},
        priority=priority,
        is_read=False,
        action_url=action_url,
        created_at=now or datetime.now(UTC),
    )
    db.add(notification)
    return notification


def log_activity(
    db: Session,
    action: str,
    target_type: str,
    target_id: Any,
    details: dict[str, Any] | None = None,
    actor: str = SYSTEM_ACTOR,
    now: datetime | None = None,
) -> ActivityLog:
    """Append an audit entry."""
    entry = ActivityLog(
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        details=details or {},
        created_at=now or datetime.now(UTC),
    )
    db.add(entry)
    return entry


def admin_user_ids(db: Session) -> list[int]:
    """Ids of every admin user, in id order."""
    rows = db.query(User.id).filter(User.role == USER_ROLE_ADMIN).order_by(User.id).all()
    return [row[0] for row in rows]
