"""
Activity Event Models for Finance Tracker

Significant actions (writes, ledger adjustments, recurring runs) are
emitted as typed events so the structured log stays consistent.

DESIGN DECISION: Activity events are log records only. They are not
persisted and there is no history to query back.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we emit."""
    # Transactions
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    INCOME_CREATED = "income_created"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_ADJUSTED = "budget_adjusted"
    BUDGET_ADJUSTMENT_FAILED = "budget_adjustment_failed"

    # Goals
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_ACHIEVED = "goal_achieved"

    # Recurring processing
    RECURRING_OCCURRENCE_CREATED = "recurring_occurrence_created"
    RECURRING_OCCURRENCE_FAILED = "recurring_occurrence_failed"
    RECURRING_RUN_COMPLETED = "recurring_run_completed"
    RECURRING_RUN_SKIPPED = "recurring_run_skipped"

    # System events
    SYSTEM_ERROR = "system_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single activity event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # What entity is this about?
    owner_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'goal')"
    )
    entity_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.budget_adjusted(owner_id, budget_id, delta, spent)
    """

    @staticmethod
    def transaction_written(
        event_type: ActivityEventType,
        owner_id: str,
        entity_type: str,
        entity_id: UUID,
        label: str,
        amount: Decimal,
    ) -> ActivityEvent:
        verb = event_type.value.rsplit("_", 1)[-1]
        return ActivityEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {verb}: {label} {amount}",
            details={"label": label, "amount": str(amount)},
        )

    @staticmethod
    def budget_adjusted(
        owner_id: str,
        budget_id: UUID,
        delta: Decimal,
        spent: Decimal,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BUDGET_ADJUSTED,
            owner_id=owner_id,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget spent adjusted by {delta}",
            details={"delta": str(delta), "spent": str(spent)},
        )

    @staticmethod
    def budget_adjustment_failed(
        owner_id: str,
        category: str,
        delta: Decimal,
        error_message: str,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BUDGET_ADJUSTMENT_FAILED,
            severity=ActivitySeverity.ERROR,
            owner_id=owner_id,
            entity_type="budget",
            description=f"Could not adjust budget for category {category}",
            details={"category": category, "delta": str(delta)},
            error_message=error_message,
        )

    @staticmethod
    def goal_achieved(owner_id: str, goal_id: UUID, title: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.GOAL_ACHIEVED,
            owner_id=owner_id,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Goal achieved: {title}",
        )

    @staticmethod
    def recurring_occurrence_created(
        owner_id: str,
        entity_type: str,
        entity_id: UUID,
        template_id: UUID,
        label: str,
        occurred_on: date,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RECURRING_OCCURRENCE_CREATED,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Created recurring {entity_type} for {label} on {occurred_on.isoformat()}",
            details={
                "template_id": str(template_id),
                "label": label,
                "occurred_on": occurred_on.isoformat(),
            },
        )

    @staticmethod
    def recurring_occurrence_failed(
        owner_id: str,
        entity_type: str,
        template_id: UUID,
        error_message: str,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RECURRING_OCCURRENCE_FAILED,
            severity=ActivitySeverity.ERROR,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=template_id,
            description=f"Recurring {entity_type} projection failed",
            error_message=error_message,
        )

    @staticmethod
    def recurring_run_completed(
        entity_type: str,
        created: int,
        skipped: int,
        failed: int,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RECURRING_RUN_COMPLETED,
            severity=ActivitySeverity.WARNING if failed else ActivitySeverity.INFO,
            entity_type=entity_type,
            description=f"Recurring {entity_type} processing completed",
            details={"created": created, "skipped": skipped, "failed": failed},
        )

    @staticmethod
    def recurring_run_skipped(reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.RECURRING_RUN_SKIPPED,
            severity=ActivitySeverity.WARNING,
            description=f"Recurring processing skipped: {reason}",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SYSTEM_ERROR,
            severity=ActivitySeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
