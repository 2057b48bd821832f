"""Alert model — deduplicated, severity-escalating compliance alerts."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from loanwatch.db.session import Base, JSONType

# Predicate of the partial unique index; ON CONFLICT targets must repeat it verbatim.
OPEN_ALERT_PREDICATE = "is_resolved = false"


class Alert(Base):
    """Admin alert for an overdue loan, a no-show reservation, or a repeat no-show user.

    At most one unresolved alert exists per (source_id, alert_type).
    """

    __tablename__ = "alerts"

    __table_args__ = (
        Index(
            "uq_alerts_open_source_type",
            "source_id",
            "alert_type",
            unique=True,
            postgresql_where=text(OPEN_ALERT_PREDICATE),
            sqlite_where=text(OPEN_ALERT_PREDICATE),
        ),
        Index("ix_alerts_is_resolved_priority", "is_resolved", "priority"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_type: Mapped[str] = mapped_column(String(64), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    source_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    quick_actions: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resolved_action: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
