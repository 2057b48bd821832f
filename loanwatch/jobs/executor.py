"""Job executor: JobRun audit row, idempotency and failure capture for every job."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from loanwatch.jobs.registry import get_job
from loanwatch.models import JobRun

logger = logging.getLogger(__name__)

JOB_STATUS_RUNNING = "running"
JOB_STATUS_COMPLETED = "completed"
JOB_STATUS_FAILED = "failed"


def _cached_result(job: JobRun) -> dict[str, Any]:
    return {**(job.result or {}), "job_run_id": job.id, "idempotent_replay": True}


def run_job(db: Session, job_type: str, idempotency_key: str | None = None) -> dict[str, Any]:
    """Run job_type and record it in job_runs.

    A completed run with the same idempotency key is not repeated; its stored
    result is returned. A job that raises is marked failed and reported as
    {"status": "failed", "error": ...} rather than propagated.

    Raises:
        ValueError: unknown job_type.
    """
    spec = get_job(job_type)

    if idempotency_key:
        existing = (
            db.query(JobRun)
            .filter(
                JobRun.job_type == job_type,
                JobRun.idempotency_key == idempotency_key,
                JobRun.status == JOB_STATUS_COMPLETED,
            )
            .order_by(JobRun.started_at.desc())
            .first()
        )
        if existing is not None:
            logger.info(
                "Idempotent skip: job_type=%s idempotency_key=%s job_run_id=%s",
                job_type,
                idempotency_key,
                existing.id,
            )
            return _cached_result(existing)

    job = JobRun(
        job_type=job_type,
        status=JOB_STATUS_RUNNING,
        started_at=datetime.now(UTC),
        idempotency_key=idempotency_key,
    )
    db.add(job)
    db.commit()
    job_id = job.id
    logger.info("Job started: job_type=%s job_run_id=%s", job_type, job_id)

    try:
        result = spec.run(db)
    except Exception as exc:
        db.rollback()
        logger.exception("Job failed: job_type=%s job_run_id=%s", job_type, job_id)
        job = db.get(JobRun, job_id)
        job.status = JOB_STATUS_FAILED
        job.finished_at = datetime.now(UTC)
        job.error_message = str(exc)
        job.result = {"status": JOB_STATUS_FAILED, "error": str(exc)}
        db.commit()
        return {"status": JOB_STATUS_FAILED, "job_run_id": job_id, "error": str(exc)}

    errors = result.get("errors") or []
    job = db.get(JobRun, job_id)
    job.status = JOB_STATUS_COMPLETED
    job.finished_at = datetime.now(UTC)
    job.records_processed = result.get(spec.count_key, 0) if spec.count_key else 1
    job.error_count = len(errors)
    job.error_message = "; ".join(e.get("message", "") for e in errors[:10]) if errors else None
    job.result = result
    db.commit()

    logger.info(
        "Job completed: job_type=%s job_run_id=%s status=%s errors=%d",
        job_type,
        job_id,
        result.get("status"),
        len(errors),
    )
    return {**result, "job_run_id": job_id}
