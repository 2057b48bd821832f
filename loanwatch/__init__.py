"""LoanWatch — compliance monitoring and scoring jobs for the equipment lending portal."""

__version__ = "0.1.0"
