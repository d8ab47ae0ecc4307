"""Shared fixtures: in-memory storage, a fixed clock and a recording logger."""

import pytest

from finance_tracker.activity import ActivityLogger
from finance_tracker.ledger import BudgetLedger
from finance_tracker.services.storage import (
    InMemoryBudgetStorage,
    InMemoryGoalStorage,
    InMemoryTransactionStorage,
)
from tests.factories import TODAY


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def activity():
    return ActivityLogger.recording()


@pytest.fixture
def expense_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def income_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def budget_storage():
    return InMemoryBudgetStorage()


@pytest.fixture
def goal_storage():
    return InMemoryGoalStorage()


@pytest.fixture
def ledger(budget_storage, activity):
    return BudgetLedger(budget_storage, activity)
