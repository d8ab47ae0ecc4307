"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Use in-memory storage for tests and local runs
2. Use Google Sheets (or a real database later) in production
3. Keep the ledger and recurring processor decoupled from storage

Every query is owner-scoped except `list_recurring`, which the
background processor uses to scan all users.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.budget import Budget
from finance_tracker.models.goal import Goal, GoalStatus
from finance_tracker.models.transaction import Transaction


class TransactionStorageInterface(ABC):
    """
    Abstract interface for expense or income storage.

    One instance holds one kind of transaction. The group label
    (expense category or income source) is the filter used for
    recurring anchor lookups.
    """

    @abstractmethod
    async def save(self, transaction: Transaction) -> bool:
        """
        Save a new transaction.

        Raises:
            StorageError: If save fails
            DuplicateError: If the id already exists
        """
        pass

    @abstractmethod
    async def get_by_id(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """Retrieve one of the owner's transactions, or None."""
        pass

    @abstractmethod
    async def update(self, transaction: Transaction) -> bool:
        """
        Replace an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist for its owner
        """
        pass

    @abstractmethod
    async def delete(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """
        Delete a transaction.

        Returns:
            The removed transaction (so callers can undo its effects),
            or None if nothing matched
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List the owner's transactions, newest first.

        Args:
            owner_id: Owner to scope by
            label: Exact group label (category or source)
            date_from: Include transactions on or after this date
            date_to: Include transactions on or before this date
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def count_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Count transactions matching the same filters as list_transactions."""
        pass

    @abstractmethod
    async def list_recurring(self) -> list[Transaction]:
        """List every transaction flagged recurring, across all owners."""
        pass

    @abstractmethod
    async def find_latest(
        self,
        owner_id: str,
        label: str,
        exclude_id: UUID,
    ) -> Optional[Transaction]:
        """
        Most recent transaction with the same owner and label.

        The transaction with `exclude_id` is never returned. Ties on date
        resolve to the most recently created record.
        """
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for budget storage."""

    @abstractmethod
    async def save(self, budget: Budget) -> bool:
        pass

    @abstractmethod
    async def get_by_id(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        pass

    @abstractmethod
    async def update(self, budget: Budget) -> bool:
        """
        Replace a budget's user-editable fields.

        The stored `spent` value is kept: only adjust_spent changes it.

        Raises:
            NotFoundError: If the budget doesn't exist for its owner
        """
        pass

    @abstractmethod
    async def delete(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        pass

    @abstractmethod
    async def list_budgets(
        self,
        owner_id: str,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Budget]:
        """List the owner's budgets, most recently created first."""
        pass

    @abstractmethod
    async def find_covering(
        self,
        owner_id: str,
        category: str,
        on: date,
    ) -> list[Budget]:
        """
        Active budgets for the category whose window contains `on`.

        Ordered oldest created first, ties broken by id, so the first
        element is a deterministic choice that later budgets cannot displace.
        """
        pass

    @abstractmethod
    async def adjust_spent(
        self,
        owner_id: str,
        budget_id: UUID,
        delta: Decimal,
    ) -> Budget:
        """
        Atomically add `delta` to a budget's spent total.

        The result is floored at zero. Implementations must not lose
        updates when called concurrently for the same budget.

        Returns:
            The budget after the adjustment

        Raises:
            NotFoundError: If the budget doesn't exist for the owner
        """
        pass


class GoalStorageInterface(ABC):
    """Abstract interface for savings goal storage."""

    @abstractmethod
    async def save(self, goal: Goal) -> bool:
        pass

    @abstractmethod
    async def get_by_id(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        pass

    @abstractmethod
    async def update(self, goal: Goal) -> bool:
        """
        Raises:
            NotFoundError: If the goal doesn't exist for its owner
        """
        pass

    @abstractmethod
    async def delete(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        pass

    @abstractmethod
    async def list_goals(
        self,
        owner_id: str,
        status: Optional[GoalStatus] = None,
    ) -> list[Goal]:
        """List goals, highest priority first, then nearest target date."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
