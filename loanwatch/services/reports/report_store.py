"""Report persistence: one row per (report_type, period), overwritten on regeneration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from loanwatch.db.dialect import insert_for
from loanwatch.models import Report

logger = logging.getLogger(__name__)

REPORT_STATUS_COMPLETED = "completed"


def upsert_report(
    db: Session,
    report_type: str,
    period: str,
    data: dict[str, Any],
    now: datetime | None = None,
) -> Report:
    """Insert or overwrite the report for (report_type, period). Does not commit."""
    now = now or datetime.now(UTC)
    stmt = insert_for(db, Report).values(
        report_type=report_type,
        period=period,
        data=data,
        status=REPORT_STATUS_COMPLETED,
        download_count=0,
        generated_at=now,
        updated_at=now,
    )
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=["report_type", "period"],
        set_={
            "data": excluded.data,
            "status": excluded.status,
            "download_count": excluded.download_count,
            "generated_at": excluded.generated_at,
            "updated_at": excluded.updated_at,
        },
    )
    db.execute(stmt)

    report = (
        db.query(Report)
        .filter(Report.report_type == report_type, Report.period == period)
        .populate_existing()
        .one()
    )
    logger.info("Report stored: type=%s period=%s id=%s", report_type, period, report.id)
    return report


def get_report(db: Session, report_type: str, period: str) -> Report | None:
    return (
        db.query(Report)
        .filter(Report.report_type == report_type, Report.period == period)
        .first()
    )
