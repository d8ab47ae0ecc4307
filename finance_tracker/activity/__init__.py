"""Activity logging package."""

from finance_tracker.activity.logger import ActivityLogger

__all__ = ["ActivityLogger"]
