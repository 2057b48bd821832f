"""Scoring constants: reliability weights and bands, utilization thresholds."""

from __future__ import annotations

# Reliability score = 100 * (on_time_rate * W_ON_TIME + (1 - no_show_rate) * W_NO_SHOW)
ON_TIME_RETURN_WEIGHT: float = 0.6
NO_SHOW_WEIGHT: float = 0.4

RELIABILITY_EXCELLENT_MIN: int = 90
RELIABILITY_GOOD_MIN: int = 70
RELIABILITY_FAIR_MIN: int = 50

CLASS_EXCELLENT = "excellent"
CLASS_GOOD = "good"
CLASS_FAIR = "fair"
CLASS_POOR = "poor"

# Users below this score are flagged for admin review
FLAG_BELOW_SCORE: int = RELIABILITY_FAIR_MIN

UTILIZATION_HIGH_DEMAND_MIN: float = 0.8

CLASS_HIGH_DEMAND = "high_demand"
CLASS_NORMAL = "normal"
CLASS_IDLE = "idle"

# Reservation statuses that count toward a user's reservation total
COUNTED_RESERVATION_STATUSES: frozenset[str] = frozenset(
    {"approved", "ready", "completed", "cancelled", "no_show"}
)

# Loan statuses that occupy equipment for utilization accounting
UTILIZATION_LOAN_STATUSES: tuple[str, ...] = ("borrowed", "returned", "overdue")

REPORT_TYPE_WEEKLY_UTILIZATION = "weekly_utilization"
REPORT_TYPE_DAILY_SUMMARY = "daily_summary"

TOP_EQUIPMENT_LIMIT: int = 10
TOP_USERS_LIMIT: int = 5
MOST_RELIABLE_MIN_LOANS: int = 3
