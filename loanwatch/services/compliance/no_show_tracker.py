"""No-show ledger: append-only per-user missed-pickup events and repeat-offender checks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from loanwatch.config import get_settings
from loanwatch.models import NoShowEvent

logger = logging.getLogger(__name__)


class NoShowTracker:
    """Records no-shows and answers windowed counts."""

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None) -> None:
        self.db = db
        self._clock = clock or (lambda: datetime.now(UTC))

    def record(self, user_id: int) -> bool:
        """Append a no-show event stamped with the current time.

        Commits on its own. Failures are logged and reported as False, never raised.
        """
        try:
            self.db.add(NoShowEvent(user_id=user_id, occurred_at=self._clock()))
            self.db.commit()
            return True
        except Exception:
            self.db.rollback()
            logger.exception("Failed to record no-show for user_id=%s", user_id)
            return False

    def count_in_window(self, user_id: int, days: int | None = None) -> int:
        """Events for user_id with occurred_at within the trailing window."""
        if days is None:
            days = get_settings().repeat_no_show_window_days
        since = self._clock() - timedelta(days=days)
        return (
            self.db.query(NoShowEvent)
            .filter(NoShowEvent.user_id == user_id, NoShowEvent.occurred_at >= since)
            .count()
        )

    def is_repeat_offender(self, user_id: int) -> bool:
        settings = get_settings()
        count = self.count_in_window(user_id, settings.repeat_no_show_window_days)
        return count >= settings.repeat_no_show_threshold
