"""User reliability scoring.

score = round(100 * (on_time_rate * 0.6 + (1 - no_show_rate) * 0.4)), half-up,
clamped to [0, 100]. Users with no loans have an on-time rate of 1; users with
no reservations a no-show rate of 0.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from loanwatch.models import Loan, Reservation
from loanwatch.services.compliance.constants import (
    LOAN_STATUS_OVERDUE,
    LOAN_STATUS_RETURNED,
    RESERVATION_STATUS_NO_SHOW,
)
from loanwatch.services.compliance.time_windows import end_of_expected_day, ensure_utc
from loanwatch.services.scoring.constants import (
    CLASS_EXCELLENT,
    CLASS_FAIR,
    CLASS_GOOD,
    CLASS_POOR,
    COUNTED_RESERVATION_STATUSES,
    NO_SHOW_WEIGHT,
    ON_TIME_RETURN_WEIGHT,
    RELIABILITY_EXCELLENT_MIN,
    RELIABILITY_FAIR_MIN,
    RELIABILITY_GOOD_MIN,
)


def _clamp_rate(value: float | None) -> float:
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def reliability_score(on_time_return_rate: float | None, no_show_rate: float | None) -> int:
    """Weighted 0-100 reliability score. Out-of-range or missing rates are clamped."""
    on_time = _clamp_rate(on_time_return_rate)
    no_show = _clamp_rate(no_show_rate)
    raw = (on_time * ON_TIME_RETURN_WEIGHT + (1 - no_show) * NO_SHOW_WEIGHT) * 100
    raw = max(0.0, min(100.0, raw))
    # Half-up; Python's round() is banker's rounding
    return int(math.floor(raw + 0.5))


def classify_reliability(score: int) -> str:
    if score >= RELIABILITY_EXCELLENT_MIN:
        return CLASS_EXCELLENT
    if score >= RELIABILITY_GOOD_MIN:
        return CLASS_GOOD
    if score >= RELIABILITY_FAIR_MIN:
        return CLASS_FAIR
    return CLASS_POOR


@dataclass
class LoanStats:
    total_loans: int = 0
    on_time_returns: int = 0
    late_returns: int = 0

    @property
    def on_time_return_rate(self) -> float:
        return self.on_time_returns / self.total_loans if self.total_loans > 0 else 1.0


@dataclass
class ReservationStats:
    total_reservations: int = 0
    no_shows: int = 0

    @property
    def no_show_rate(self) -> float:
        return self.no_shows / self.total_reservations if self.total_reservations > 0 else 0.0


def aggregate_loans(loans: Iterable[Loan]) -> LoanStats:
    """Count returned and overdue loans.

    A returned loan is on time if it came back by the end of its expected
    return day; a missing timestamp counts as on time. Overdue loans are late.
    """
    stats = LoanStats()
    for loan in loans:
        if loan.status == LOAN_STATUS_RETURNED:
            stats.total_loans += 1
            expected = loan.expected_return_time
            actual = loan.actual_return_time
            if expected is None or actual is None:
                stats.on_time_returns += 1
            elif ensure_utc(actual) <= end_of_expected_day(expected):
                stats.on_time_returns += 1
            else:
                stats.late_returns += 1
        elif loan.status == LOAN_STATUS_OVERDUE:
            stats.total_loans += 1
            stats.late_returns += 1
    return stats


def aggregate_reservations(reservations: Iterable[Reservation]) -> ReservationStats:
    stats = ReservationStats()
    for reservation in reservations:
        if reservation.status not in COUNTED_RESERVATION_STATUSES:
            continue
        stats.total_reservations += 1
        if reservation.status == RESERVATION_STATUS_NO_SHOW or reservation.is_no_show:
            stats.no_shows += 1
    return stats
