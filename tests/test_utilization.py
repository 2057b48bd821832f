"""Tests for equipment utilization accounting and classification."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from loanwatch.services.scoring.utilization import (
    classify_utilization,
    compute_utilization,
    utilization_rate,
)

NOW = datetime(2026, 3, 15, 5, 0, tzinfo=UTC)
WINDOW_START = NOW - timedelta(days=7)
CAMERA = SimpleNamespace(id=1, name="Camera", category="cameras")


def _loan(borrow: datetime | None, actual: datetime | None = None, expected: datetime | None = None):
    return SimpleNamespace(
        borrow_time=borrow, actual_return_time=actual, expected_return_time=expected
    )


class TestUtilizationRate:
    @pytest.mark.parametrize(
        ("borrowed", "total", "expected"),
        [(7, 7, 1.0), (3.5, 7, 0.5), (10, 7, 1.0), (3, 0, 0.0), (3, -2, 0.0), (-1, 7, 0.0)],
    )
    def test_rate(self, borrowed: float, total: float, expected: float) -> None:
        assert utilization_rate(borrowed, total) == expected


class TestClassify:
    def test_high_demand(self) -> None:
        assert classify_utilization(0.8, NOW, NOW) == "high_demand"

    def test_never_borrowed_is_idle(self) -> None:
        assert classify_utilization(0.0, None, NOW) == "idle"

    def test_idle_after_sixty_days(self) -> None:
        assert classify_utilization(0.1, NOW - timedelta(days=60), NOW) == "idle"
        assert classify_utilization(0.1, NOW - timedelta(days=59), NOW) == "normal"


class TestComputeUtilization:
    def test_loan_covering_whole_window(self) -> None:
        record = compute_utilization(
            CAMERA, [_loan(NOW - timedelta(days=10), expected=NOW + timedelta(days=2))], WINDOW_START, NOW, NOW
        )
        assert record.borrowed_days == 7
        assert record.total_days == 7
        assert record.utilization_rate == 1.0
        assert record.classification == "high_demand"
        assert record.total_loans == 1

    def test_partial_days_round_up(self) -> None:
        loan = _loan(NOW - timedelta(days=2, hours=3), actual=NOW - timedelta(days=1))
        record = compute_utilization(CAMERA, [loan], WINDOW_START, NOW, NOW)
        assert record.borrowed_days == 2
        assert record.classification == "normal"

    def test_open_loan_runs_until_now(self) -> None:
        record = compute_utilization(CAMERA, [_loan(NOW - timedelta(days=3))], WINDOW_START, NOW, NOW)
        assert record.borrowed_days == 3

    def test_loans_outside_window_leave_item_idle(self) -> None:
        """An item last lent 20 days ago has no loans this week and is idle."""
        old = _loan(NOW - timedelta(days=20), actual=NOW - timedelta(days=18))
        record = compute_utilization(CAMERA, [old], WINDOW_START, NOW, NOW)
        assert record.borrowed_days == 0
        assert record.total_loans == 0
        assert record.last_borrowed_date is None
        assert record.classification == "idle"

    def test_last_borrowed_is_latest_loan_in_window(self) -> None:
        older = _loan(NOW - timedelta(days=6), actual=NOW - timedelta(days=5))
        newer = _loan(NOW - timedelta(days=2), actual=NOW - timedelta(days=1))
        outside = _loan(NOW - timedelta(days=40), actual=NOW - timedelta(days=39))
        record = compute_utilization(CAMERA, [newer, outside, older], WINDOW_START, NOW, NOW)
        assert record.last_borrowed_date == NOW - timedelta(days=2)
        assert record.total_loans == 2
        assert record.classification == "normal"

    def test_no_loans_is_idle(self) -> None:
        record = compute_utilization(CAMERA, [], WINDOW_START, NOW, NOW)
        assert record.classification == "idle"
        assert record.to_payload()["last_borrowed_date"] is None

    def test_loan_without_borrow_time_skipped(self) -> None:
        record = compute_utilization(CAMERA, [_loan(None, expected=NOW)], WINDOW_START, NOW, NOW)
        assert record.borrowed_days == 0
        assert record.last_borrowed_date is None
