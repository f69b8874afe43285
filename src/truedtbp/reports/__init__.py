"""Reconciliation reports built from the trade log."""

from truedtbp.reports.weekly import weekly_summary, week_number

__all__ = ["weekly_summary", "week_number"]
