"""Tests for the no-show ledger."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from sqlalchemy.orm import Session

from loanwatch.models import NoShowEvent
from loanwatch.services.compliance.no_show_tracker import NoShowTracker
from tests.factories import make_no_show_events, make_user

NOW = datetime(2026, 3, 10, 5, 0, tzinfo=UTC)


class TestNoShowTracker:
    def test_record_appends_event_with_service_time(self, db: Session) -> None:
        user = make_user(db)
        tracker = NoShowTracker(db, clock=lambda: NOW)

        assert tracker.record(user.id) is True

        event = db.query(NoShowEvent).one()
        assert event.user_id == user.id
        assert event.occurred_at.replace(tzinfo=UTC) == NOW

    def test_record_failure_returns_false(self, db: Session) -> None:
        """A failed write is logged and reported, not raised."""
        user = make_user(db)
        tracker = NoShowTracker(db, clock=lambda: NOW)

        with patch.object(db, "commit", side_effect=RuntimeError("disk full")):
            assert tracker.record(user.id) is False
        assert db.query(NoShowEvent).count() == 0

    def test_count_in_window_excludes_old_events(self, db: Session) -> None:
        user = make_user(db)
        make_no_show_events(
            db,
            user,
            NOW - timedelta(days=1),
            NOW - timedelta(days=29),
            NOW - timedelta(days=31),
        )
        tracker = NoShowTracker(db, clock=lambda: NOW)

        assert tracker.count_in_window(user.id, 30) == 2
        assert tracker.count_in_window(user.id, 7) == 1

    def test_repeat_offender_at_three(self, db: Session) -> None:
        user = make_user(db)
        tracker = NoShowTracker(db, clock=lambda: NOW)
        make_no_show_events(db, user, NOW - timedelta(days=2), NOW - timedelta(days=5))
        assert tracker.is_repeat_offender(user.id) is False

        make_no_show_events(db, user, NOW - timedelta(days=10))
        assert tracker.is_repeat_offender(user.id) is True

    def test_counts_are_per_user(self, db: Session) -> None:
        alice = make_user(db, "Alice")
        bob = make_user(db, "Bob")
        make_no_show_events(db, alice, NOW - timedelta(days=1), NOW - timedelta(days=2), NOW - timedelta(days=3))
        tracker = NoShowTracker(db, clock=lambda: NOW)

        assert tracker.is_repeat_offender(alice.id) is True
        assert tracker.count_in_window(bob.id) == 0
