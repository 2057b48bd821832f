"""Tests for the weekly scoring job."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from loanwatch.models import ReliabilityRecord, Report
from loanwatch.services.scoring.weekly_scoring import run_weekly_scoring
from tests.factories import (
    make_equipment,
    make_loan,
    make_no_show_events,
    make_reservation,
    make_user,
)

# Sunday 2026-03-15 00:00 in Bangkok; the report covers Mon 9 - Sun 15 March
NOW = datetime(2026, 3, 14, 17, 0, tzinfo=UTC)


def _returned(db, user, equipment, days_ago: int, late: bool) -> None:
    expected = NOW - timedelta(days=days_ago)
    actual = expected + timedelta(days=2) if late else expected - timedelta(hours=1)
    make_loan(
        db,
        user,
        equipment,
        status="returned",
        borrow_time=expected - timedelta(days=3),
        expected_return_time=expected,
        actual_return_time=actual,
    )


class TestRunWeeklyScoring:
    def test_reliability_record_written(self, db: Session) -> None:
        """8/10 on time and 1/5 no-show -> score 80, good, not flagged."""
        user = make_user(db)
        item = make_equipment(db)
        for i in range(10):
            _returned(db, user, item, days_ago=20 + i, late=i >= 8)
        make_reservation(db, user, item, status="no_show", is_no_show=True)
        for _ in range(4):
            make_reservation(db, user, item, status="completed")

        result = run_weekly_scoring(db, now=NOW)

        assert result["status"] == "completed"
        assert result["users_scored"] == 1
        record = db.query(ReliabilityRecord).filter(ReliabilityRecord.user_id == user.id).one()
        assert record.total_loans == 10
        assert record.on_time_returns == 8
        assert record.late_returns == 2
        assert record.total_reservations == 5
        assert record.no_shows == 1
        assert record.reliability_score == 80
        assert record.classification == "good"
        assert record.is_flagged is False

    def test_rerun_overwrites_record(self, db: Session) -> None:
        user = make_user(db)
        item = make_equipment(db)
        run_weekly_scoring(db, now=NOW)
        make_loan(db, user, item, status="overdue", borrow_time=NOW - timedelta(days=9), expected_return_time=NOW - timedelta(days=2))

        run_weekly_scoring(db, now=NOW)

        records = db.query(ReliabilityRecord).filter(ReliabilityRecord.user_id == user.id).all()
        assert len(records) == 1
        assert records[0].late_returns == 1
        assert records[0].reliability_score == 40
        assert records[0].is_flagged is True
        assert records[0].classification == "poor"

    def test_user_without_history_scores_100(self, db: Session) -> None:
        user = make_user(db)

        run_weekly_scoring(db, now=NOW)

        record = db.query(ReliabilityRecord).filter(ReliabilityRecord.user_id == user.id).one()
        assert record.reliability_score == 100
        assert record.classification == "excellent"
        assert record.on_time_return_rate == 1.0
        assert record.no_show_rate == 0.0

    def test_recent_no_shows_filled_from_ledger(self, db: Session) -> None:
        user = make_user(db)
        make_no_show_events(db, user, NOW - timedelta(days=1), NOW - timedelta(days=5), NOW - timedelta(days=9))

        run_weekly_scoring(db, now=NOW)

        record = db.query(ReliabilityRecord).filter(ReliabilityRecord.user_id == user.id).one()
        assert record.recent_no_shows == 3
        assert record.is_repeat_offender is True

    def test_weekly_report_stored_under_iso_week(self, db: Session) -> None:
        user = make_user(db)
        busy = make_equipment(db, "Drone")
        make_equipment(db, "Projector")
        make_equipment(db, "Retired", is_active=False)
        make_loan(
            db,
            user,
            busy,
            status="borrowed",
            borrow_time=NOW - timedelta(days=8),
            expected_return_time=NOW + timedelta(days=1),
        )

        result = run_weekly_scoring(db, now=NOW)

        assert result["period"] == "2026-W11"
        report = db.query(Report).filter(Report.report_type == "weekly_utilization").one()
        assert report.period == "2026-W11"
        equipment = report.data["equipment"]
        assert equipment["summary"]["totalEquipment"] == 2
        assert equipment["summary"]["highDemandCount"] == 1
        assert equipment["summary"]["idleCount"] == 1
        assert equipment["highDemand"][0]["equipment_name"] == "Drone"
        assert equipment["idle"][0]["equipment_name"] == "Projector"
        assert report.data["users"]["summary"]["totalUsers"] == 1
        assert result["summary"]["highDemandEquipment"] == 1

    def test_rerun_same_week_keeps_one_report(self, db: Session) -> None:
        make_user(db)
        run_weekly_scoring(db, now=NOW)
        run_weekly_scoring(db, now=NOW + timedelta(hours=1))

        assert db.query(Report).filter(Report.report_type == "weekly_utilization").count() == 1

    def test_weekly_reservation_statistics(self, db: Session) -> None:
        user = make_user(db)
        item = make_equipment(db)
        in_week = NOW - timedelta(days=2)
        make_reservation(db, user, item, status="completed", created_at=in_week)
        make_reservation(db, user, item, status="completed", created_at=in_week)
        make_reservation(db, user, item, status="completed", created_at=in_week)
        make_reservation(db, user, item, status="no_show", is_no_show=True, created_at=in_week)
        make_reservation(db, user, item, status="completed", created_at=NOW - timedelta(days=30))

        run_weekly_scoring(db, now=NOW)

        report = db.query(Report).filter(Report.report_type == "weekly_utilization").one()
        stats = report.data["reservations"]
        assert stats["totalReservations"] == 4
        assert stats["byStatus"] == {"completed": 3, "no_show": 1}
        assert stats["noShowRate"] == 0.25
