"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "LoanWatch"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; sqlite is accepted for local tests)
    database_url: str = "postgresql+psycopg://localhost:5432/loanwatch_dev"
    db_connect_timeout: int = 10  # seconds

    # Security
    internal_job_token: str = ""  # Required for /internal/* endpoints

    # Calendar boundaries (day/week cutoffs, due-soon window, report periods)
    business_timezone: str = "Asia/Bangkok"

    # No-show detection
    no_show_grace_hours: int = 2  # ready reservation not picked up within this many hours
    repeat_no_show_window_days: int = 30
    repeat_no_show_threshold: int = 3

    # Expired-reservation cleanup waits this long past the no-show deadline so the
    # no-show scan (every 30 min) claims stale reservations first.
    reservation_expiry_grace_minutes: int = 30

    # Weekly scoring
    utilization_analysis_days: int = 7
    idle_equipment_days: int = 60

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'loanwatch_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.internal_job_token = os.getenv("INTERNAL_JOB_TOKEN", "")

        self.business_timezone = os.getenv("BUSINESS_TIMEZONE", self.business_timezone)

        self.no_show_grace_hours = int(
            os.getenv("NO_SHOW_GRACE_HOURS", str(self.no_show_grace_hours))
        )
        self.repeat_no_show_window_days = int(
            os.getenv("REPEAT_NO_SHOW_WINDOW_DAYS", str(self.repeat_no_show_window_days))
        )
        self.repeat_no_show_threshold = int(
            os.getenv("REPEAT_NO_SHOW_THRESHOLD", str(self.repeat_no_show_threshold))
        )
        self.reservation_expiry_grace_minutes = int(
            os.getenv(
                "RESERVATION_EXPIRY_GRACE_MINUTES",
                str(self.reservation_expiry_grace_minutes),
            )
        )
        self.utilization_analysis_days = int(
            os.getenv("UTILIZATION_ANALYSIS_DAYS", str(self.utilization_analysis_days))
        )
        self.idle_equipment_days = int(
            os.getenv("IDLE_EQUIPMENT_DAYS", str(self.idle_equipment_days))
        )
