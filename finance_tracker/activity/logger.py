"""
Activity Logger

Every write, ledger adjustment and recurring run is logged as a
structured event. The logger:
- Never raises (a logging failure must not break the write that triggered it)
- Maps event severity onto the structlog level
- Keeps no history; events go to the log stream only
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class ActivityLogger:
    """Central activity logging service."""

    def __init__(self, logger_name: str = "finance_tracker"):
        self._logger = structlog.get_logger(logger_name)
        self._emitted: list[ActivityEvent] = []
        self._keep_events = False

    @classmethod
    def recording(cls) -> "ActivityLogger":
        """
        Logger that also keeps emitted events in memory.

        Used by tests to assert on what was logged.
        """
        logger = cls()
        logger._keep_events = True
        return logger

    @property
    def events(self) -> list[ActivityEvent]:
        return list(self._emitted)

    def log(self, event: ActivityEvent) -> None:
        """Log an activity event at the level matching its severity."""
        if self._keep_events:
            self._emitted.append(event)

        log_dict = event.to_log_dict()
        try:
            if event.severity.value == "error":
                self._logger.error("activity_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("activity_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("activity_event", **log_dict)
            else:
                self._logger.info("activity_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "activity_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

    def log_transaction_written(
        self,
        event_type: ActivityEventType,
        owner_id: str,
        entity_type: str,
        entity_id: UUID,
        label: str,
        amount: Decimal,
    ) -> None:
        """Log an expense or income create/update/delete."""
        self.log(ActivityEventBuilder.transaction_written(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            label=label,
            amount=amount,
        ))

    def log_budget_adjusted(
        self,
        owner_id: str,
        budget_id: UUID,
        delta: Decimal,
        spent: Decimal,
    ) -> None:
        self.log(ActivityEventBuilder.budget_adjusted(
            owner_id=owner_id,
            budget_id=budget_id,
            delta=delta,
            spent=spent,
        ))

    def log_budget_adjustment_failed(
        self,
        owner_id: str,
        category: str,
        delta: Decimal,
        error_message: str,
    ) -> None:
        self.log(ActivityEventBuilder.budget_adjustment_failed(
            owner_id=owner_id,
            category=category,
            delta=delta,
            error_message=error_message,
        ))

    def log_entity_event(
        self,
        event_type: ActivityEventType,
        owner_id: str,
        entity_type: str,
        entity_id: UUID,
        description: str,
    ) -> None:
        """Log a budget or goal create/update/delete."""
        self.log(ActivityEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
        ))

    def log_goal_achieved(self, owner_id: str, goal_id: UUID, title: str) -> None:
        self.log(ActivityEventBuilder.goal_achieved(owner_id, goal_id, title))

    def log_recurring_created(
        self,
        owner_id: str,
        entity_type: str,
        entity_id: UUID,
        template_id: UUID,
        label: str,
        occurred_on: date,
    ) -> None:
        self.log(ActivityEventBuilder.recurring_occurrence_created(
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            template_id=template_id,
            label=label,
            occurred_on=occurred_on,
        ))

    def log_recurring_failed(
        self,
        owner_id: str,
        entity_type: str,
        template_id: UUID,
        error_message: str,
    ) -> None:
        self.log(ActivityEventBuilder.recurring_occurrence_failed(
            owner_id=owner_id,
            entity_type=entity_type,
            template_id=template_id,
            error_message=error_message,
        ))

    def log_recurring_run(
        self,
        entity_type: str,
        created: int,
        skipped: int,
        failed: int,
    ) -> None:
        self.log(ActivityEventBuilder.recurring_run_completed(
            entity_type=entity_type,
            created=created,
            skipped=skipped,
            failed=failed,
        ))

    def log_recurring_skipped(self, reason: str) -> None:
        self.log(ActivityEventBuilder.recurring_run_skipped(reason))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(ActivityEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
