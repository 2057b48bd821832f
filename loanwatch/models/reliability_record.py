"""ReliabilityRecord model — weekly recomputed per-user reliability score."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from loanwatch.db.session import Base


class ReliabilityRecord(Base):
    """Per-user reliability. Overwritten on every scoring run (upsert on user_id)."""

    __tablename__ = "reliability_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    total_loans: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_time_returns: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    late_returns: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_time_return_rate: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    total_reservations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    no_shows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    no_show_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reliability_score: Mapped[int] = mapped_column(Integer, nullable=False)
    classification: Mapped[str] = mapped_column(String(16), nullable=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recent_no_shows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_repeat_offender: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
