"""Tests for report periods, the report store and the daily summary job."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from sqlalchemy.orm import Session

from loanwatch.models import Alert, Report
from loanwatch.services.reports.daily_report import run_daily_report
from loanwatch.services.reports.periods import daily_period, weekly_period
from loanwatch.services.reports.report_store import get_report, upsert_report
from tests.factories import make_equipment, make_loan, make_reservation, make_user

# 2026-03-10 07:00 Bangkok; "yesterday" is 2026-03-09
NOW = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
YESTERDAY_NOON = datetime(2026, 3, 9, 5, 0, tzinfo=UTC)


class TestPeriods:
    def test_daily_period(self) -> None:
        assert daily_period(date(2026, 3, 9)) == "2026-03-09"

    def test_weekly_period_is_iso_week(self) -> None:
        assert weekly_period(date(2026, 3, 9)) == "2026-W11"
        assert weekly_period(date(2026, 3, 15)) == "2026-W11"

    def test_weekly_period_uses_iso_year(self) -> None:
        assert weekly_period(date(2027, 1, 1)) == "2026-W53"


class TestReportStore:
    def test_insert_then_overwrite(self, db: Session) -> None:
        first = upsert_report(db, "daily_summary", "2026-03-09", {"v": 1}, now=NOW)
        db.commit()
        first.download_count = 4
        db.commit()

        second = upsert_report(db, "daily_summary", "2026-03-09", {"v": 2}, now=NOW + timedelta(hours=1))
        db.commit()

        assert second.id == first.id
        assert db.query(Report).count() == 1
        stored = get_report(db, "daily_summary", "2026-03-09")
        assert stored.data == {"v": 2}
        assert stored.download_count == 0

    def test_different_periods_are_separate_rows(self, db: Session) -> None:
        upsert_report(db, "daily_summary", "2026-03-09", {}, now=NOW)
        upsert_report(db, "daily_summary", "2026-03-10", {}, now=NOW)
        db.commit()

        assert db.query(Report).count() == 2

    def test_get_report_missing(self, db: Session) -> None:
        assert get_report(db, "daily_summary", "1999-01-01") is None


class TestDailyReport:
    def test_counts_yesterdays_activity(self, db: Session) -> None:
        user = make_user(db)
        item = make_equipment(db)
        make_loan(db, user, item, status="borrowed", created_at=YESTERDAY_NOON, updated_at=YESTERDAY_NOON)
        make_loan(
            db,
            user,
            item,
            status="returned",
            created_at=YESTERDAY_NOON - timedelta(days=5),
            updated_at=YESTERDAY_NOON,
        )
        make_loan(db, user, item, status="borrowed", created_at=NOW - timedelta(days=3), updated_at=NOW - timedelta(days=3))
        make_reservation(db, user, item, status="ready", created_at=YESTERDAY_NOON, updated_at=YESTERDAY_NOON)
        make_reservation(db, user, item, status="no_show", is_no_show=True, updated_at=YESTERDAY_NOON)

        result = run_daily_report(db, now=NOW)

        assert result["status"] == "completed"
        assert result["period"] == "2026-03-09"
        report = db.query(Report).filter(Report.report_type == "daily_summary").one()
        loans = report.data["loans"]
        assert loans["total"] == 2
        assert loans["newRequests"] == 1
        assert loans["borrowed"] == 1
        assert loans["returned"] == 1
        reservations = report.data["reservations"]
        assert reservations["total"] == 2
        assert reservations["approved"] == 1
        assert reservations["noShows"] == 1
        assert result["summary"]["totalLoans"] == 2

    def test_alert_and_overdue_sections(self, db: Session) -> None:
        db.add_all(
            [
                Alert(
                    alert_type="overdue_loan",
                    priority="critical",
                    source_id="1",
                    source_type="loan",
                    source_data={"daysOverdue": 4},
                ),
                Alert(
                    alert_type="overdue_loan",
                    priority="high",
                    source_id="2",
                    source_type="loan",
                    source_data={"daysOverdue": 1},
                ),
                Alert(
                    alert_type="no_show_reservation",
                    priority="high",
                    source_id="7",
                    source_type="reservation",
                    source_data={},
                ),
                Alert(
                    alert_type="overdue_loan",
                    priority="medium",
                    source_id="3",
                    source_type="loan",
                    source_data={"daysOverdue": 0},
                    is_resolved=True,
                    resolved_at=YESTERDAY_NOON,
                ),
                Alert(
                    alert_type="overdue_loan",
                    priority="medium",
                    source_id="4",
                    source_type="loan",
                    source_data={"daysOverdue": 0},
                    is_resolved=True,
                    resolved_at=YESTERDAY_NOON - timedelta(days=2),
                ),
            ]
        )
        db.commit()

        result = run_daily_report(db, now=NOW)

        report = db.get(Report, result["report_id"])
        alerts = report.data["alerts"]
        assert alerts["total"] == 3
        assert alerts["critical"] == 1
        assert alerts["high"] == 2
        assert alerts["resolvedToday"] == 1
        overdue = report.data["overdue"]
        assert overdue["total"] == 2
        assert overdue["totalDaysOverdue"] == 5
        assert result["summary"]["totalOverdue"] == 2

    def test_explicit_day_and_rerun(self, db: Session) -> None:
        run_daily_report(db, now=NOW, day=date(2026, 3, 1))
        result = run_daily_report(db, now=NOW + timedelta(minutes=5), day=date(2026, 3, 1))

        assert result["period"] == "2026-03-01"
        assert db.query(Report).filter(Report.period == "2026-03-01").count() == 1
