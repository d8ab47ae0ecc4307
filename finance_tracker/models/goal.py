"""
Goal Models for Finance Tracker

A savings goal is an accumulator with a derived status, like a budget,
but it is only moved by explicit user actions (add funds, set progress).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class GoalPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        """Sort weight, higher is more important."""
        return {"Low": 0, "Medium": 1, "High": 2}[self.value]


class GoalStatus(str, Enum):
    ACTIVE = "Active"
    ACHIEVED = "Achieved"


class Goal(BaseModel):
    """A savings target with a running balance."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    category: str = Field(default="Savings", max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    target_date: date
    priority: GoalPriority = GoalPriority.MEDIUM
    status: GoalStatus = GoalStatus.ACTIVE

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def with_current_amount(self, current_amount: Decimal) -> 'Goal':
        """
        Return a copy with a new balance.

        Reaching the target marks the goal ACHIEVED. Dropping below it
        afterwards does not reopen the goal.
        """
        status = self.status
        if current_amount >= self.target_amount:
            status = GoalStatus.ACHIEVED
        return self.model_copy(update={
            "current_amount": current_amount,
            "status": status,
            "updated_at": datetime.utcnow(),
        })


class GoalUpdate(BaseModel):
    """User edit of a goal. Fields left as None keep their value."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = Field(default=None, max_length=100)
    target_amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    current_amount: Optional[Decimal] = Field(default=None, ge=0)
    target_date: Optional[date] = None
    priority: Optional[GoalPriority] = None
    status: Optional[GoalStatus] = None

    def apply_to(self, goal: Goal) -> Goal:
        changes = self.model_dump(exclude_none=True)
        return goal.model_copy(update={**changes, "updated_at": datetime.utcnow()})


class GoalProgress(BaseModel):
    """Read-side view of an active goal."""

    goal_id: UUID
    title: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: date
    priority: GoalPriority
    progress: int = Field(ge=0, description="Rounded percentage of the target reached")
    days_remaining: int = Field(ge=0)
    monthly_required: Decimal = Field(description="Amount to save per 30 days to hit the target")
