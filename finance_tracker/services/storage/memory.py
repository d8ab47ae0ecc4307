"""
In-Memory Storage Implementation

Keeps records in dictionaries keyed by id. Used by the test suite and
for local runs without Google credentials.

Records are copied on the way in and out so callers never hold a
reference to the stored object.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.budget import Budget
from finance_tracker.models.goal import Goal, GoalStatus
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.filters import (
    budget_age,
    goal_order,
    newest_first,
    transaction_matches,
)
from finance_tracker.services.storage.interface import (
    BudgetStorageInterface,
    DuplicateError,
    GoalStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Dictionary-backed expense or income storage."""

    def __init__(self):
        self._records: dict[UUID, Transaction] = {}

    async def save(self, transaction: Transaction) -> bool:
        if transaction.id in self._records:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._records[transaction.id] = transaction.model_copy()
        return True

    async def get_by_id(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        record = self._records.get(transaction_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record.model_copy()

    async def update(self, transaction: Transaction) -> bool:
        existing = self._records.get(transaction.id)
        if existing is None or existing.owner_id != transaction.owner_id:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._records[transaction.id] = transaction.model_copy()
        return True

    async def delete(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        existing = self._records.get(transaction_id)
        if existing is None or existing.owner_id != owner_id:
            return None
        return self._records.pop(transaction_id)

    def _filtered(self, owner_id, label, date_from, date_to) -> list[Transaction]:
        return [
            t for t in self._records.values()
            if transaction_matches(t, owner_id, label, date_from, date_to)
        ]

    async def list_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transaction]:
        matches = self._filtered(owner_id, label, date_from, date_to)
        matches.sort(key=newest_first, reverse=True)
        return [t.model_copy() for t in matches[offset:offset + limit]]

    async def count_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        return len(self._filtered(owner_id, label, date_from, date_to))

    async def list_recurring(self) -> list[Transaction]:
        return [t.model_copy() for t in self._records.values() if t.is_recurring]

    async def find_latest(
        self,
        owner_id: str,
        label: str,
        exclude_id: UUID,
    ) -> Optional[Transaction]:
        candidates = [
            t for t in self._filtered(owner_id, label, None, None)
            if t.id != exclude_id
        ]
        if not candidates:
            return None
        return max(candidates, key=newest_first).model_copy()


class InMemoryBudgetStorage(BudgetStorageInterface):
    """
    Dictionary-backed budget storage.

    adjust_spent holds a lock across its read-modify-write so concurrent
    ledger updates against the same budget are serialized.
    """

    def __init__(self):
        self._records: dict[UUID, Budget] = {}
        self._spent_lock = asyncio.Lock()

    async def save(self, budget: Budget) -> bool:
        if budget.id in self._records:
            raise DuplicateError(f"Budget already exists: {budget.id}")
        self._records[budget.id] = budget.model_copy()
        return True

    async def get_by_id(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        record = self._records.get(budget_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record.model_copy()

    async def update(self, budget: Budget) -> bool:
        async with self._spent_lock:
            existing = self._records.get(budget.id)
            if existing is None or existing.owner_id != budget.owner_id:
                raise NotFoundError(f"Budget not found: {budget.id}")
            self._records[budget.id] = budget.model_copy(update={"spent": existing.spent})
        return True

    async def delete(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        existing = self._records.get(budget_id)
        if existing is None or existing.owner_id != owner_id:
            return None
        return self._records.pop(budget_id)

    async def list_budgets(
        self,
        owner_id: str,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Budget]:
        budgets = [
            b for b in self._records.values()
            if b.owner_id == owner_id and (b.is_active or not active_only)
        ]
        budgets.sort(key=budget_age, reverse=True)
        return [b.model_copy() for b in budgets[offset:offset + limit]]

    async def find_covering(
        self,
        owner_id: str,
        category: str,
        on: date,
    ) -> list[Budget]:
        budgets = [
            b for b in self._records.values()
            if b.owner_id == owner_id
            and b.is_active
            and b.category == category
            and b.covers(on)
        ]
        budgets.sort(key=budget_age)
        return [b.model_copy() for b in budgets]

    async def adjust_spent(
        self,
        owner_id: str,
        budget_id: UUID,
        delta: Decimal,
    ) -> Budget:
        async with self._spent_lock:
            existing = self._records.get(budget_id)
            if existing is None or existing.owner_id != owner_id:
                raise NotFoundError(f"Budget not found: {budget_id}")
            spent = max(Decimal("0"), existing.spent + delta)
            updated = existing.model_copy(update={
                "spent": spent,
                "updated_at": datetime.utcnow(),
            })
            self._records[budget_id] = updated
            return updated.model_copy()


class InMemoryGoalStorage(GoalStorageInterface):
    """Dictionary-backed goal storage."""

    def __init__(self):
        self._records: dict[UUID, Goal] = {}

    async def save(self, goal: Goal) -> bool:
        if goal.id in self._records:
            raise DuplicateError(f"Goal already exists: {goal.id}")
        self._records[goal.id] = goal.model_copy()
        return True

    async def get_by_id(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        record = self._records.get(goal_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record.model_copy()

    async def update(self, goal: Goal) -> bool:
        existing = self._records.get(goal.id)
        if existing is None or existing.owner_id != goal.owner_id:
            raise NotFoundError(f"Goal not found: {goal.id}")
        self._records[goal.id] = goal.model_copy()
        return True

    async def delete(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        existing = self._records.get(goal_id)
        if existing is None or existing.owner_id != owner_id:
            return None
        return self._records.pop(goal_id)

    async def list_goals(
        self,
        owner_id: str,
        status: Optional[GoalStatus] = None,
    ) -> list[Goal]:
        goals = [
            g for g in self._records.values()
            if g.owner_id == owner_id and (status is None or g.status == status)
        ]
        goals.sort(key=goal_order)
        return [g.model_copy() for g in goals]
