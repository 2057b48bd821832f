"""Alert ledger: create, deduplicate, escalate and resolve compliance alerts.

Dedup key is (source_id, alert_type) among unresolved alerts, enforced by the
partial unique index uq_alerts_open_source_type. Creation is a single
conditional insert and escalation a compare-and-set update, so concurrent
scans cannot produce duplicates or downgrade a priority.

Ledger methods flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import text, update
from sqlalchemy.orm import Session

from loanwatch.config import get_settings
from loanwatch.db.dialect import insert_for
from loanwatch.models import Alert, User
from loanwatch.models.alert import OPEN_ALERT_PREDICATE
from loanwatch.services.compliance.alert_content import repeat_offender_content
from loanwatch.services.compliance.constants import (
    ALERT_TYPE_REPEAT_NO_SHOW_USER,
    PRIORITY_RANK,
    REPEAT_NO_SHOW_ALERT_PRIORITY,
    SOURCE_TYPE_USER,
    priority_rank,
)

logger = logging.getLogger(__name__)


class AlertAlreadyExistsError(ValueError):
    """Raised by create() when an unresolved alert already holds the dedup key."""

    def __init__(self, existing: Alert | None) -> None:
        super().__init__("Unresolved alert already exists for this source and type")
        self.existing = existing


class AlertNotFoundError(ValueError):
    """Raised when resolving an alert id that does not exist."""


class AlertAlreadyResolvedError(ValueError):
    """Raised when resolving an alert that is already resolved."""


class AlertLedger:
    """Persistent alert store operations over an injected session."""

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None) -> None:
        self.db = db
        self._clock = clock or (lambda: datetime.now(UTC))

    def find_unresolved(self, source_id: Any, alert_type: str) -> Alert | None:
        """Point lookup on the dedup key."""
        return (
            self.db.query(Alert)
            .filter(
                Alert.source_id == str(source_id),
                Alert.alert_type == alert_type,
                Alert.is_resolved.is_(False),
            )
            .first()
        )

    def list_unresolved(self, alert_type: str | None = None) -> list[Alert]:
        """Open alerts, most severe first, newest first within a priority."""
        query = self.db.query(Alert).filter(Alert.is_resolved.is_(False))
        if alert_type is not None:
            query = query.filter(Alert.alert_type == alert_type)
        alerts = query.order_by(Alert.created_at.desc()).all()
        return sorted(alerts, key=lambda a: priority_rank(a.priority))

    def create(
        self,
        alert_type: str,
        priority: str,
        source_id: Any,
        source_type: str,
        snapshot: dict[str, Any],
        title: str = "",
        description: str = "",
        quick_actions: list[dict[str, Any]] | None = None,
    ) -> Alert:
        """Insert a new unresolved alert unless one already holds the dedup key.

        Raises:
            AlertAlreadyExistsError: an unresolved alert exists for (source_id, alert_type).
                ``exc.existing`` carries it so callers can escalate instead.
        """
        now = self._clock()
        stmt = insert_for(self.db, Alert).values(
            alert_type=alert_type,
            priority=priority,
            title=title,
            description=description,
            source_id=str(source_id),
            source_type=source_type,
            source_data=snapshot,
            quick_actions=quick_actions or [],
            is_resolved=False,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_nothing(
            index_elements=["source_id", "alert_type"],
            index_where=text(OPEN_ALERT_PREDICATE),
        ).returning(Alert.id)

        alert_id = self.db.execute(stmt).scalar_one_or_none()
        if alert_id is None:
            raise AlertAlreadyExistsError(self.find_unresolved(source_id, alert_type))

        alert = self.db.get(Alert, alert_id)
        logger.info(
            "Alert created: id=%s type=%s priority=%s source=%s:%s",
            alert_id,
            alert_type,
            priority,
            source_type,
            source_id,
        )
        return alert

    def escalate(self, alert_id: int, new_priority: str, current_priority: str) -> bool:
        """Raise an open alert's priority; never lowers it.

        Returns True only if a row was updated. The WHERE clause re-checks the
        stored priority, so a stale current_priority cannot cause a downgrade.
        """
        if priority_rank(new_priority) >= priority_rank(current_priority):
            return False

        at_least_as_severe = [
            p for p, rank in PRIORITY_RANK.items() if rank <= priority_rank(new_priority)
        ]
        result = self.db.execute(
            update(Alert)
            .where(
                Alert.id == alert_id,
                Alert.is_resolved.is_(False),
                Alert.priority.not_in(at_least_as_severe),
            )
            .values(priority=new_priority, updated_at=self._clock())
            .execution_options(synchronize_session="fetch")
        )
        escalated = result.rowcount > 0
        if escalated:
            logger.info(
                "Alert escalated: id=%s %s -> %s", alert_id, current_priority, new_priority
            )
        return escalated

    def upsert_repeat_offender(self, user: User, no_show_count: int) -> tuple[Alert, bool]:
        """Create or refresh the user's open repeat_no_show_user alert.

        Existing alert: overwrite the stored count and refresh updated_at; the
        priority stays fixed. Returns (alert, created).
        """
        window_days = get_settings().repeat_no_show_window_days
        content = repeat_offender_content(user, no_show_count, window_days)

        existing = self.find_unresolved(user.id, ALERT_TYPE_REPEAT_NO_SHOW_USER)
        if existing is None:
            try:
                alert = self.create(
                    ALERT_TYPE_REPEAT_NO_SHOW_USER,
                    REPEAT_NO_SHOW_ALERT_PRIORITY,
                    user.id,
                    SOURCE_TYPE_USER,
                    content["snapshot"],
                    title=content["title"],
                    description=content["description"],
                    quick_actions=content["quick_actions"],
                )
                return alert, True
            except AlertAlreadyExistsError as exc:
                if exc.existing is None:
                    raise
                existing = exc.existing

        # Reassign the dict so the JSON column change is tracked
        existing.source_data = {**(existing.source_data or {}), "noShowCount": no_show_count}
        existing.description = content["description"]
        existing.updated_at = self._clock()
        self.db.flush()
        logger.info(
            "Repeat no-show alert refreshed: id=%s user_id=%s count=%d",
            existing.id,
            user.id,
            no_show_count,
        )
        return existing, False

    def resolve(self, alert_id: int, resolved_by: str, action: str) -> Alert:
        """Terminal transition. Resolved alerts are never mutated again."""
        alert = self.db.get(Alert, alert_id)
        if alert is None:
            raise AlertNotFoundError(f"Alert {alert_id} not found")

        now = self._clock()
        result = self.db.execute(
            update(Alert)
            .where(Alert.id == alert_id, Alert.is_resolved.is_(False))
            .values(
                is_resolved=True,
                resolved_at=now,
                resolved_by=resolved_by,
                resolved_action=action,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise AlertAlreadyResolvedError(f"Alert {alert_id} is already resolved")

        self.db.refresh(alert)
        logger.info("Alert resolved: id=%s by=%s action=%s", alert_id, resolved_by, action)
        return alert
