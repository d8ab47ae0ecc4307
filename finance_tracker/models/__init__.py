"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.transaction import (
    Expense,
    ExpenseUpdate,
    Income,
    IncomeUpdate,
    PaymentMethod,
    RecurringFrequency,
    Transaction,
    TransactionKind,
)
from finance_tracker.models.budget import (
    Budget,
    BudgetHealth,
    BudgetPeriod,
    BudgetStatusReport,
    BudgetUpdate,
)
from finance_tracker.models.goal import (
    Goal,
    GoalPriority,
    GoalProgress,
    GoalStatus,
    GoalUpdate,
)
from finance_tracker.models.page import Page
from finance_tracker.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)

__all__ = [
    # Transaction models
    "Expense",
    "ExpenseUpdate",
    "Income",
    "IncomeUpdate",
    "PaymentMethod",
    "RecurringFrequency",
    "Transaction",
    "TransactionKind",
    # Budget models
    "Budget",
    "BudgetHealth",
    "BudgetPeriod",
    "BudgetStatusReport",
    "BudgetUpdate",
    # Goal models
    "Goal",
    "GoalPriority",
    "GoalProgress",
    "GoalStatus",
    "GoalUpdate",
    # Pagination
    "Page",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
]
