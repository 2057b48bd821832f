"""Compliance monitoring: overdue loans, no-show reservations, alert ledger."""

from loanwatch.services.compliance.alert_ledger import (
    AlertAlreadyExistsError,
    AlertAlreadyResolvedError,
    AlertLedger,
    AlertNotFoundError,
)
from loanwatch.services.compliance.no_show_tracker import NoShowTracker
from loanwatch.services.compliance.scanner import ComplianceScanner, ScanResult

__all__ = [
    "AlertAlreadyExistsError",
    "AlertAlreadyResolvedError",
    "AlertLedger",
    "AlertNotFoundError",
    "ComplianceScanner",
    "NoShowTracker",
    "ScanResult",
]
