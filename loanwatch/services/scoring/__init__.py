"""Reliability and utilization scoring."""
