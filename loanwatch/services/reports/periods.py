"""Report period keys."""

from __future__ import annotations

from datetime import date


def daily_period(day: date) -> str:
    """YYYY-MM-DD."""
    return day.isoformat()


def weekly_period(day: date) -> str:
    """ISO week of day as YYYY-Www (ISO year, so early January may belong to the previous year)."""
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"
