"""
Gunicorn configuration for the LoanWatch internal service.

Usage:
    gunicorn loanwatch.main:app -c gunicorn.conf.py
"""

import os

bind = os.getenv("BIND", "0.0.0.0:8000")

# Triggers arrive from cron a few times an hour; two workers are plenty
workers = int(os.getenv("WEB_CONCURRENCY", "2"))

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Request timeout (seconds). POST /internal/jobs/* runs the job inline;
# the weekly scoring run is the slowest.
timeout = 300

keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = "info"
