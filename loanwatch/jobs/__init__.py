"""Scheduled jobs: registry and executor."""

from loanwatch.jobs.executor import run_job
from loanwatch.jobs.registry import JOB_REGISTRY, crontab_lines, get_job

__all__ = ["JOB_REGISTRY", "crontab_lines", "get_job", "run_job"]
