"""SQLAlchemy models."""

from loanwatch.models.activity_log import ActivityLog
from loanwatch.models.alert import Alert
from loanwatch.models.equipment import Equipment
from loanwatch.models.job_run import JobRun
from loanwatch.models.loan import Loan
from loanwatch.models.no_show_event import NoShowEvent
from loanwatch.models.notification import Notification
from loanwatch.models.reliability_record import ReliabilityRecord
from loanwatch.models.report import Report
from loanwatch.models.reservation import Reservation
from loanwatch.models.user import User

__all__ = [
    "ActivityLog",
    "Alert",
    "Equipment",
    "JobRun",
    "Loan",
    "NoShowEvent",
    "Notification",
    "ReliabilityRecord",
    "Report",
    "Reservation",
    "User",
]
