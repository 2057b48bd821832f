"""Tests for the job registry, executor and scripts/run_job.py."""

from __future__ import annotations

import os
import subprocess
import sys
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from loanwatch.jobs.executor import run_job
from loanwatch.jobs.registry import JOB_REGISTRY, JobSpec, crontab_lines, get_job
from loanwatch.models import JobRun

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _fake_job(result: dict | None = None, exc: Exception | None = None, count_key: str | None = "scanned"):
    calls = []

    def run(db):
        calls.append(db)
        if exc is not None:
            raise exc
        return dict(result or {"status": "completed", "scanned": 3, "errors": []})

    return JobSpec("fake_job", run, "* * * * *", "Fake job", count_key), calls


class TestRegistry:
    def test_all_jobs_registered(self) -> None:
        assert set(JOB_REGISTRY) == {
            "overdue_scan",
            "no_show_scan",
            "due_soon_reminders",
            "reservation_cleanup",
            "daily_report",
            "weekly_scoring",
        }

    def test_cadences(self) -> None:
        assert get_job("overdue_scan").cron == "0 * * * *"
        assert get_job("no_show_scan").cron == "*/30 * * * *"
        assert get_job("due_soon_reminders").cron == "0 9 * * *"
        assert get_job("reservation_cleanup").cron == "0 */2 * * *"
        assert get_job("daily_report").cron == "0 0 * * *"
        assert get_job("weekly_scoring").cron == "0 0 * * 0"

    def test_unknown_job_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown job_type"):
            get_job("nope")

    def test_crontab_lines_pin_business_timezone(self) -> None:
        lines = crontab_lines("run")
        assert lines[0] == "CRON_TZ=Asia/Bangkok"
        assert "0 * * * * run overdue_scan  # Overdue loan scan" in lines
        assert len(lines) == len(JOB_REGISTRY) + 1


class TestRunJob:
    def test_records_completed_run(self, db: Session) -> None:
        spec, calls = _fake_job()
        with patch.dict(JOB_REGISTRY, {"fake_job": spec}):
            result = run_job(db, "fake_job")

        assert len(calls) == 1
        assert result["status"] == "completed"
        job = db.get(JobRun, result["job_run_id"])
        assert job.status == "completed"
        assert job.records_processed == 3
        assert job.error_count == 0
        assert job.error_message is None
        assert job.finished_at is not None
        assert job.result["scanned"] == 3

    def test_record_errors_are_counted(self, db: Session) -> None:
        spec, _ = _fake_job(
            {
                "status": "completed_with_errors",
                "scanned": 2,
                "errors": [{"record_id": 7, "message": "boom"}],
            }
        )
        with patch.dict(JOB_REGISTRY, {"fake_job": spec}):
            result = run_job(db, "fake_job")

        job = db.get(JobRun, result["job_run_id"])
        assert job.status == "completed"
        assert job.error_count == 1
        assert job.error_message == "boom"

    def test_failure_marks_run_failed(self, db: Session) -> None:
        spec, _ = _fake_job(exc=RuntimeError("database went away"))
        with patch.dict(JOB_REGISTRY, {"fake_job": spec}):
            result = run_job(db, "fake_job")

        assert result["status"] == "failed"
        assert "database went away" in result["error"]
        job = db.get(JobRun, result["job_run_id"])
        assert job.status == "failed"
        assert job.error_message == "database went away"

    def test_idempotent_replay(self, db: Session) -> None:
        spec, calls = _fake_job()
        with patch.dict(JOB_REGISTRY, {"fake_job": spec}):
            first = run_job(db, "fake_job", idempotency_key="2026-03-10T05")
            second = run_job(db, "fake_job", idempotency_key="2026-03-10T05")

        assert len(calls) == 1
        assert second["idempotent_replay"] is True
        assert second["job_run_id"] == first["job_run_id"]
        assert second["scanned"] == 3
        assert db.query(JobRun).count() == 1

    def test_failed_run_is_not_replayed(self, db: Session) -> None:
        failing, _ = _fake_job(exc=RuntimeError("x"))
        working, calls = _fake_job()
        with patch.dict(JOB_REGISTRY, {"fake_job": failing}):
            run_job(db, "fake_job", idempotency_key="k")
        with patch.dict(JOB_REGISTRY, {"fake_job": working}):
            result = run_job(db, "fake_job", idempotency_key="k")

        assert len(calls) == 1
        assert result["status"] == "completed"
        assert db.query(JobRun).count() == 2

    def test_job_without_count_key_counts_one(self, db: Session) -> None:
        spec, _ = _fake_job({"status": "completed"}, count_key=None)
        with patch.dict(JOB_REGISTRY, {"fake_job": spec}):
            result = run_job(db, "fake_job")

        assert db.get(JobRun, result["job_run_id"]).records_processed == 1

    def test_unknown_job_writes_nothing(self, db: Session) -> None:
        with pytest.raises(ValueError):
            run_job(db, "nope")
        assert db.query(JobRun).count() == 0

    def test_real_overdue_scan_on_empty_db(self, db: Session) -> None:
        result = run_job(db, "overdue_scan")

        assert result["status"] == "completed"
        assert result["scanned"] == 0
        assert db.get(JobRun, result["job_run_id"]).records_processed == 0

    def test_real_daily_report(self, db: Session) -> None:
        result = run_job(db, "daily_report")

        assert result["status"] == "completed"
        assert result["report_id"] is not None


class TestRunJobScript:
    def test_print_crontab(self) -> None:
        result = subprocess.run(
            [sys.executable, "scripts/run_job.py", "--print-crontab"],
            env=os.environ.copy(),
            capture_output=True,
            text=True,
            cwd=PROJECT_ROOT,
        )
        assert result.returncode == 0
        assert result.stdout.startswith("CRON_TZ=Asia/Bangkok")
        assert "weekly_scoring" in result.stdout

    def test_unknown_job_type_rejected(self) -> None:
        result = subprocess.run(
            [sys.executable, "scripts/run_job.py", "not_a_job"],
            env=os.environ.copy(),
            capture_output=True,
            text=True,
            cwd=PROJECT_ROOT,
        )
        assert result.returncode != 0
        assert "invalid choice" in result.stderr
