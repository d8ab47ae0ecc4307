"""Budget ledger package."""

from finance_tracker.ledger.budget_ledger import BudgetLedger, compute_budget_status

__all__ = ["BudgetLedger", "compute_budget_status"]
