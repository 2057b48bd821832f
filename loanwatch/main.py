"""
LoanWatch service: HTTP triggers for the compliance and scoring jobs.

Cron normally drives the jobs through scripts/run_job.py; this app exposes the
same jobs under /internal/jobs/{job_type} together with the alert queue used
by the admin backend. /health reports database reachability.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from loanwatch import __version__
from loanwatch.config import get_settings
from loanwatch.db.session import check_db_connection, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to serve job triggers without a database; dispose the pool on exit."""
    from loanwatch.jobs.registry import JOB_REGISTRY

    settings = get_settings()
    check_db_connection()
    if not settings.internal_job_token:
        logger.warning("INTERNAL_JOB_TOKEN is empty; every /internal request will be rejected")
    logger.info(
        "LoanWatch ready: jobs=%s business_timezone=%s",
        ",".join(sorted(JOB_REGISTRY)),
        settings.business_timezone,
    )
    try:
        yield
    finally:
        engine.dispose()
        logger.info("LoanWatch stopped")


def _database_reachable() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        return False


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    from loanwatch.api.internal import router as internal_router

    app.include_router(internal_router, tags=["internal"])

    @app.get("/health")
    def health():
        """200 while the job store is reachable, 503 otherwise."""
        connected = _database_reachable()
        body = {
            "status": "ok" if connected else "unhealthy",
            "version": __version__,
            "database": "connected" if connected else "disconnected",
        }
        return body if connected else JSONResponse(status_code=503, content=body)

    return app


app = create_app()
