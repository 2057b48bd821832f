"""Tests for the alert ledger: dedup, monotonic escalation, repeat offenders, resolution."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from loanwatch.models import Alert
from loanwatch.services.compliance.alert_ledger import (
    AlertAlreadyExistsError,
    AlertAlreadyResolvedError,
    AlertLedger,
    AlertNotFoundError,
)
from loanwatch.services.compliance.constants import priority_rank
from tests.factories import make_user


def _create(ledger: AlertLedger, source_id: int = 1, priority: str = "medium", alert_type: str = "overdue_loan"):
    return ledger.create(
        alert_type,
        priority,
        source_id,
        "loan",
        {"loanId": source_id, "daysOverdue": 0},
        title="Loan overdue",
        description="desc",
        quick_actions=[{"id": "dismiss", "label": "Dismiss", "action": "dismiss", "params": {}}],
    )


class TestCreate:
    def test_create_persists_open_alert(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger)
        db.commit()

        stored = db.get(Alert, alert.id)
        assert stored.is_resolved is False
        assert stored.source_id == "1"
        assert stored.source_data["loanId"] == 1
        assert stored.quick_actions[0]["action"] == "dismiss"

    def test_duplicate_open_alert_rejected(self, db: Session) -> None:
        """Second create on the same (source_id, alert_type) raises and carries the existing alert."""
        ledger = AlertLedger(db)
        first = _create(ledger)

        with pytest.raises(AlertAlreadyExistsError) as exc_info:
            _create(ledger, priority="critical")

        assert exc_info.value.existing.id == first.id
        assert db.query(Alert).count() == 1

    def test_same_source_different_type_allowed(self, db: Session) -> None:
        ledger = AlertLedger(db)
        _create(ledger, alert_type="overdue_loan")
        _create(ledger, alert_type="no_show_reservation")
        assert db.query(Alert).count() == 2

    def test_new_alert_allowed_after_resolution(self, db: Session) -> None:
        """Dedup only covers unresolved alerts."""
        ledger = AlertLedger(db)
        first = _create(ledger)
        ledger.resolve(first.id, "admin", "dismiss")
        second = _create(ledger)
        db.commit()

        assert second.id != first.id
        assert ledger.find_unresolved(1, "overdue_loan").id == second.id


class TestEscalate:
    def test_escalates_medium_to_high(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger, priority="medium")

        assert ledger.escalate(alert.id, "high", "medium") is True
        db.commit()
        assert db.get(Alert, alert.id).priority == "high"

    def test_never_downgrades(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger, priority="high")

        assert ledger.escalate(alert.id, "medium", "high") is False
        assert ledger.escalate(alert.id, "high", "high") is False
        db.commit()
        assert db.get(Alert, alert.id).priority == "high"

    def test_stale_current_priority_cannot_downgrade(self, db: Session) -> None:
        """A caller holding an outdated priority cannot overwrite a more severe stored value."""
        ledger = AlertLedger(db)
        alert = _create(ledger, priority="medium")
        ledger.escalate(alert.id, "critical", "medium")

        assert ledger.escalate(alert.id, "high", "medium") is False
        db.commit()
        assert db.get(Alert, alert.id).priority == "critical"

    def test_resolved_alert_not_escalated(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger, priority="medium")
        ledger.resolve(alert.id, "admin", "dismiss")

        assert ledger.escalate(alert.id, "critical", "medium") is False

    def test_priority_rank_unknown_last(self) -> None:
        assert priority_rank("critical") < priority_rank("high") < priority_rank("medium")
        assert priority_rank("low") < priority_rank("bogus") == priority_rank(None)


class TestRepeatOffender:
    def test_creates_then_updates_count(self, db: Session) -> None:
        user = make_user(db)
        ledger = AlertLedger(db)

        alert, created = ledger.upsert_repeat_offender(user, 3)
        db.commit()
        assert created is True
        assert alert.priority == "high"
        assert alert.source_data["noShowCount"] == 3
        first_updated = alert.updated_at

        again, created_again = ledger.upsert_repeat_offender(user, 4)
        db.commit()
        assert created_again is False
        assert again.id == alert.id
        assert again.source_data["noShowCount"] == 4
        assert again.updated_at >= first_updated
        assert db.query(Alert).filter(Alert.alert_type == "repeat_no_show_user").count() == 1


class TestResolve:
    def test_resolve_sets_terminal_fields(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger)

        resolved = ledger.resolve(alert.id, "admin@example.com", "mark_contacted")
        db.commit()
        assert resolved.is_resolved is True
        assert resolved.resolved_by == "admin@example.com"
        assert resolved.resolved_action == "mark_contacted"
        assert resolved.resolved_at is not None

    def test_resolve_twice_raises(self, db: Session) -> None:
        ledger = AlertLedger(db)
        alert = _create(ledger)
        ledger.resolve(alert.id, "admin", "dismiss")

        with pytest.raises(AlertAlreadyResolvedError):
            ledger.resolve(alert.id, "admin", "dismiss")

    def test_resolve_missing_raises(self, db: Session) -> None:
        with pytest.raises(AlertNotFoundError):
            AlertLedger(db).resolve(9999, "admin", "dismiss")


class TestListUnresolved:
    def test_most_severe_first(self, db: Session) -> None:
        ledger = AlertLedger(db)
        _create(ledger, source_id=1, priority="medium")
        _create(ledger, source_id=2, priority="critical")
        resolved = _create(ledger, source_id=3, priority="high")
        ledger.resolve(resolved.id, "admin", "dismiss")
        db.commit()

        alerts = ledger.list_unresolved()
        assert [a.priority for a in alerts] == ["critical", "medium"]

    def test_filter_by_type(self, db: Session) -> None:
        ledger = AlertLedger(db)
        _create(ledger, source_id=1, alert_type="overdue_loan")
        _create(ledger, source_id=2, alert_type="no_show_reservation")
        db.commit()

        alerts = ledger.list_unresolved("no_show_reservation")
        assert len(alerts) == 1
        assert alerts[0].source_id == "2"
