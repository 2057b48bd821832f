"""Equipment utilization accounting and classification."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any

from loanwatch.config import get_settings
from loanwatch.models import Equipment, Loan
from loanwatch.services.compliance.time_windows import ensure_utc
from loanwatch.services.scoring.constants import (
    CLASS_HIGH_DEMAND,
    CLASS_IDLE,
    CLASS_NORMAL,
    UTILIZATION_HIGH_DEMAND_MIN,
)

_DAY = timedelta(days=1)


@dataclass
class UtilizationRecord:
    """Per-equipment utilization over the analysis window. Lives only in the weekly report."""

    equipment_id: int
    equipment_name: str
    category: str
    borrowed_days: int
    total_days: int
    utilization_rate: float
    classification: str
    last_borrowed_date: datetime | None
    total_loans: int

    def to_payload(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_borrowed_date"] = (
            self.last_borrowed_date.isoformat() if self.last_borrowed_date else None
        )
        return data


def utilization_rate(borrowed_days: float, total_days: float) -> float:
    """borrowed/total clamped to [0, 1]; 0 for a non-positive window or negative days."""
    if total_days <= 0 or borrowed_days < 0:
        return 0.0
    return min(max(borrowed_days / total_days, 0.0), 1.0)


def classify_utilization(
    rate: float,
    last_borrowed: datetime | None,
    now: datetime,
    idle_days: int | None = None,
) -> str:
    """high_demand at >= 0.8; idle if never borrowed or not borrowed for idle_days; else normal."""
    if rate >= UTILIZATION_HIGH_DEMAND_MIN:
        return CLASS_HIGH_DEMAND
    if last_borrowed is None:
        return CLASS_IDLE
    if idle_days is None:
        idle_days = get_settings().idle_equipment_days
    days_since = math.floor((ensure_utc(now) - ensure_utc(last_borrowed)) / _DAY)
    if days_since >= idle_days:
        return CLASS_IDLE
    return CLASS_NORMAL


def borrowed_interval(loan: Loan, now: datetime) -> tuple[datetime, datetime] | None:
    """[borrow_time, actual or expected return or now]; None without a borrow time."""
    if loan.borrow_time is None:
        return None
    end = loan.actual_return_time or loan.expected_return_time or now
    return ensure_utc(loan.borrow_time), ensure_utc(end)


def compute_utilization(
    equipment: Equipment,
    loans: Iterable[Loan],
    window_start: datetime,
    window_end: datetime,
    now: datetime,
) -> UtilizationRecord:
    """Utilization of one item over [window_start, window_end].

    Each loan overlapping the window adds ceil(overlap in days) and counts
    toward the last borrowed date. Loans entirely outside the window are ignored.
    """
    total_days = max(0, round((window_end - window_start) / _DAY))
    borrowed_days = 0
    total_loans = 0
    last_borrowed: datetime | None = None

    for loan in loans:
        interval = borrowed_interval(loan, now)
        if interval is None:
            continue
        start, end = interval
        effective_start = max(start, window_start)
        effective_end = min(end, window_end)
        if effective_start < effective_end:
            borrowed_days += math.ceil((effective_end - effective_start) / _DAY)
            total_loans += 1
            if last_borrowed is None or start > last_borrowed:
                last_borrowed = start

    rate = utilization_rate(borrowed_days, total_days)
    return UtilizationRecord(
        equipment_id=equipment.id,
        equipment_name=equipment.name or "Unknown",
        category=equipment.category or "",
        borrowed_days=borrowed_days,
        total_days=total_days,
        utilization_rate=rate,
        classification=classify_utilization(rate, last_borrowed, window_end),
        last_borrowed_date=last_borrowed,
        total_loans=total_loans,
    )
