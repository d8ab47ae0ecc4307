"""
Transaction Models for Finance Tracker

Expenses and income share one shape: an owner, an amount, an occurrence
date and an optional recurrence rule. They differ only in the label used
to group them (category for expenses, source for income) and a few
descriptive fields.

DESIGN DECISION: A recurring transaction always carries a frequency.
Missing or unrecognized frequencies are normalized to MONTHLY when the
record is loaded, so downstream code never has to guess.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class RecurringFrequency(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, value: Any) -> "RecurringFrequency":
        """
        Parse a stored frequency, falling back to MONTHLY.

        Matching is case-insensitive so rows edited by hand still resolve.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.MONTHLY


class PaymentMethod(str, Enum):
    """How an expense was paid."""
    CASH = "Cash"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    DIGITAL_WALLET = "Digital Wallet"


class TransactionKind(str, Enum):
    """Which collection a transaction belongs to."""
    EXPENSE = "expense"
    INCOME = "income"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    Fields shared by expenses and income.

    Ownership is a strict filter: every storage query is scoped by owner_id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="User that owns this transaction"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Transaction amount"
    )
    occurred_on: date = Field(
        default_factory=date.today,
        description="Date the transaction occurred"
    )
    description: str = Field(
        default="",
        max_length=500
    )

    # Recurrence
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('recurring_frequency', mode='before')
    @classmethod
    def normalize_frequency(cls, v: Any) -> Optional[RecurringFrequency]:
        """Unknown frequencies fall back to MONTHLY instead of failing."""
        if v is None or v == "":
            return None
        return RecurringFrequency.parse(v)

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Transaction':
        """Only recurring transactions carry a frequency."""
        if not self.is_recurring:
            self.recurring_frequency = None
        elif self.recurring_frequency is None:
            self.recurring_frequency = RecurringFrequency.MONTHLY
        return self

    @property
    def group_label(self) -> str:
        """Label used to find the previous occurrence of a recurring entry."""
        raise NotImplementedError

    def next_occurrence(self, occurred_on: date) -> 'Transaction':
        """
        Build a new occurrence of this transaction on the given date.

        The copy gets a fresh id and timestamps and keeps the recurrence
        rule, so it can seed further projection.
        """
        data = self.model_dump(exclude={"id", "created_at", "updated_at", "occurred_on"})
        return type(self)(**data, occurred_on=occurred_on)


class Expense(Transaction):
    """An amount spent in a category."""

    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Expense category (required)"
    )
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CARD,
        description="How the expense was paid"
    )
    notes: str = Field(
        default="",
        max_length=1000
    )

    @property
    def group_label(self) -> str:
        return self.category


class Income(Transaction):
    """An amount received from a source."""

    source: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Where the income came from (required)"
    )
    category: str = Field(
        default="Salary",
        max_length=100
    )

    @property
    def group_label(self) -> str:
        return self.source


# =============================================================================
# UPDATE MODELS
# =============================================================================

class ExpenseUpdate(BaseModel):
    """
    User edit of an existing expense.

    Fields left as None keep their current value.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    occurred_on: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    def apply_to(self, expense: Expense) -> Expense:
        changes = self.model_dump(exclude_none=True)
        return expense.model_copy(update={**changes, "updated_at": datetime.utcnow()})


class IncomeUpdate(BaseModel):
    """User edit of an existing income entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    source: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    occurred_on: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=100)

    def apply_to(self, income: Income) -> Income:
        changes = self.model_dump(exclude_none=True)
        return income.model_copy(update={**changes, "updated_at": datetime.utcnow()})
