"""Scheduled summary reports."""
