"""User model — borrowers and admins of the lending portal."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loanwatch.db.session import Base


class User(Base):
    """Portal user. Only the fields the compliance jobs read are mapped."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), default="user", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    loans: Mapped[list["Loan"]] = relationship("Loan", back_populates="user")
    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation", back_populates="user"
    )
