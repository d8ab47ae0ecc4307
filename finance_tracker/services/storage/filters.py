"""
Filtering and ordering rules shared by the storage backends.

Both backends filter in Python, so the ordering rules live here once
and the backends cannot drift apart.
"""

from datetime import date
from typing import Optional

from finance_tracker.models.budget import Budget
from finance_tracker.models.goal import Goal
from finance_tracker.models.transaction import Transaction


def transaction_matches(
    transaction: Transaction,
    owner_id: str,
    label: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> bool:
    if transaction.owner_id != owner_id:
        return False
    if label is not None and transaction.group_label != label:
        return False
    if date_from and transaction.occurred_on < date_from:
        return False
    if date_to and transaction.occurred_on > date_to:
        return False
    return True


def newest_first(transaction: Transaction) -> tuple:
    """Sort key: latest date, then latest created."""
    return (transaction.occurred_on, transaction.created_at, str(transaction.id))


def budget_age(budget: Budget) -> tuple:
    """
    Sort key: creation time, then id.

    Ascending, the first covering budget is the one charged, so a budget
    created later never takes over charges an earlier one already holds.
    Listing uses it reversed (newest first).
    """
    return (budget.created_at, str(budget.id))


def goal_order(goal: Goal) -> tuple:
    """Sort key: highest priority first, then nearest target date."""
    return (-goal.priority.rank, goal.target_date, goal.created_at)
