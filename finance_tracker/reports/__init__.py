"""Reporting package."""

from finance_tracker.reports.summary import (
    ExpenseStats,
    FinancialSummary,
    IncomeStats,
    ReportBuilder,
    compute_goal_progress,
    summarize_expenses,
    summarize_income,
)

__all__ = [
    "ExpenseStats",
    "FinancialSummary",
    "IncomeStats",
    "ReportBuilder",
    "compute_goal_progress",
    "summarize_expenses",
    "summarize_income",
]
