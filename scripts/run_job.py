#!/usr/bin/env python3
"""Run one scheduled LoanWatch job locally or from cron.

Usage:
    python scripts/run_job.py overdue_scan
    python scripts/run_job.py weekly_scoring --idempotency-key 2026-W41
    python scripts/run_job.py --print-crontab

Jobs: overdue_scan, no_show_scan, due_soon_reminders, reservation_cleanup,
daily_report, weekly_scoring.
Exits 0 on success, 1 on failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loanwatch.db.session import SessionLocal
from loanwatch.jobs.executor import run_job
from loanwatch.jobs.registry import JOB_REGISTRY, crontab_lines

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a LoanWatch scheduled job.")
    parser.add_argument("job_type", nargs="?", choices=sorted(JOB_REGISTRY))
    parser.add_argument("--idempotency-key", default=None)
    parser.add_argument(
        "--print-crontab",
        action="store_true",
        help="Print crontab lines for every job and exit",
    )
    args = parser.parse_args(argv)
    if not args.print_crontab and not args.job_type:
        parser.error("job_type is required unless --print-crontab is given")
    return args


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.print_crontab:
        script = Path(__file__).resolve()
        print("\n".join(crontab_lines(f"{sys.executable} {script}")))
        return 0

    db = SessionLocal()
    try:
        result = run_job(db, args.job_type, idempotency_key=args.idempotency_key)
        print(
            f"status={result['status']} "
            f"job_run_id={result.get('job_run_id')} "
            f"errors={len(result.get('errors') or [])}"
        )
        if result["status"] == "failed":
            print(f"ERROR: {result.get('error')}", file=sys.stderr)
            return 1
        return 0
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
