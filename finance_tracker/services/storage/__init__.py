"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The in-memory backend needs no configuration; the Google Sheets backend
is imported lazily so it is only required when selected.
"""

from finance_tracker.services.storage.interface import (
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoalStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from finance_tracker.services.storage.memory import (
    InMemoryBudgetStorage,
    InMemoryGoalStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "BudgetStorageInterface",
    "GoalStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryBudgetStorage",
    "InMemoryGoalStorage",
    "InMemoryTransactionStorage",
]
