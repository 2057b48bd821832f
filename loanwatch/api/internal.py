"""Internal endpoints for cron/scripts and the admin backend.

These endpoints are secured with a static token (X-Internal-Token header),
NOT cookie-based auth. They are meant for automated triggers only.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from loanwatch.config import get_settings
from loanwatch.db.session import get_db
from loanwatch.schemas.alerts import AlertList, AlertRead, AlertResolveRequest
from loanwatch.services.compliance.alert_ledger import (
    AlertAlreadyResolvedError,
    AlertLedger,
    AlertNotFoundError,
)
from loanwatch.services.compliance.constants import ALERT_TYPES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", include_in_schema=False)


# ── Token dependency ────────────────────────────────────────────────


def _require_internal_token(x_internal_token: str = Header(...)) -> None:
    """Validate the internal job token from the request header.

    Uses constant-time comparison. Raises 403 if the token is empty or does
    not match the configured value.
    """
    expected = get_settings().internal_job_token
    if not expected or not secrets.compare_digest(x_internal_token, expected):
        logger.warning("Internal endpoint auth failed: invalid or missing token")
        raise HTTPException(status_code=403, detail="Invalid internal token")


# ── Jobs ────────────────────────────────────────────────────────────


@router.post("/jobs/{job_type}")
def trigger_job(
    job_type: str,
    db: Session = Depends(get_db),
    _token: None = Depends(_require_internal_token),
    x_idempotency_key: str | None = Header(None, alias="X-Idempotency-Key"),
):
    """Run a scheduled job now and return its result.

    Idempotency: a repeated X-Idempotency-Key for the same job_type returns
    the stored result of the completed run instead of running again.
    """
    from loanwatch.jobs.executor import run_job

    try:
        return run_job(db, job_type, idempotency_key=x_idempotency_key)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ── Alerts ──────────────────────────────────────────────────────────


@router.get("/alerts", response_model=AlertList)
def list_alerts(
    db: Session = Depends(get_db),
    _token: None = Depends(_require_internal_token),
    alert_type: str | None = Query(None, description="Filter by alert type"),
):
    """Unresolved alerts, most severe first."""
    if alert_type is not None and alert_type not in ALERT_TYPES:
        raise HTTPException(status_code=422, detail=f"Invalid alert_type: {alert_type}")
    alerts = AlertLedger(db).list_unresolved(alert_type)
    return AlertList(items=[AlertRead.model_validate(a) for a in alerts], total=len(alerts))


@router.post("/alerts/{alert_id}/resolve", response_model=AlertRead)
def resolve_alert(
    alert_id: int,
    body: AlertResolveRequest,
    db: Session = Depends(get_db),
    _token: None = Depends(_require_internal_token),
):
    """Resolve an alert. Resolution is terminal."""
    try:
        alert = AlertLedger(db).resolve(alert_id, body.resolved_by, body.action)
        db.commit()
    except AlertNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AlertAlreadyResolvedError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    db.refresh(alert)
    return AlertRead.model_validate(alert)
