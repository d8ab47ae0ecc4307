"""Recurring transaction processing package."""

from finance_tracker.recurring.processor import (
    RecurringProcessor,
    RecurringRunResult,
    RecurringRunSummary,
)
from finance_tracker.recurring.schedule import advance
from finance_tracker.recurring.scheduler import RecurringScheduler

__all__ = [
    "RecurringProcessor",
    "RecurringRunResult",
    "RecurringRunSummary",
    "RecurringScheduler",
    "advance",
]
