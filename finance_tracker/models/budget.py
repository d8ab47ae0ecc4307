"""
Budget Models for Finance Tracker

A budget caps spending in one category over a date window.
Its `spent` field is an accumulator maintained by the budget ledger;
percentage, remaining amount and status are derived on read and never stored.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


class BudgetPeriod(str, Enum):
    """Nominal length of a budget window."""
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class BudgetHealth(str, Enum):
    """
    Derived budget status.

    EXCEEDED wins over ALERT: a budget above 100% is never reported as ALERT.
    """
    NORMAL = "Normal"
    ALERT = "Alert"
    EXCEEDED = "Exceeded"


class Budget(BaseModel):
    """
    Spending limit for one category over [start_date, end_date].

    INVARIANT: `spent` equals the sum of the owner's expenses in `category`
    dated inside the window. It is never recomputed from scratch.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: str = Field(..., min_length=1)
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Expense category this budget tracks"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Spending limit for the window"
    )
    spent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Running total of matching expenses"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: date
    end_date: date
    alert_threshold: int = Field(
        default=80,
        ge=1,
        le=100,
        description="Percentage used at which the budget enters Alert"
    )
    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode='after')
    def validate_window(self) -> 'Budget':
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self

    def covers(self, on: date) -> bool:
        """Is the date inside this budget's window (inclusive)?"""
        return self.start_date <= on <= self.end_date


class BudgetUpdate(BaseModel):
    """
    User edit of a budget.

    `spent` is deliberately absent: only the ledger mutates it.
    """

    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    alert_threshold: Optional[int] = Field(default=None, ge=1, le=100)
    is_active: Optional[bool] = None

    def apply_to(self, budget: Budget) -> Budget:
        changes = self.model_dump(exclude_none=True)
        # Re-validate so the window check runs on the merged values
        return Budget.model_validate(
            {**budget.model_dump(), **changes, "updated_at": datetime.utcnow()}
        )


class BudgetStatusReport(BaseModel):
    """Read-side view of a budget with its derived fields."""

    budget_id: UUID
    category: str
    amount: Decimal
    spent: Decimal
    start_date: date
    end_date: date
    alert_threshold: int
    percentage_used: int = Field(ge=0)
    remaining: Decimal = Field(ge=0)
    status: BudgetHealth
