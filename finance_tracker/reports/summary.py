"""
Financial Report Builder

Aggregates stored data into period summaries: totals per category,
source and payment method, net savings, budget status and goal progress.

The builder only reads; it never changes stored data. Rendering the
result as CSV or PDF is left to the caller.
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from pydantic import BaseModel, Field

from finance_tracker.ledger import compute_budget_status
from finance_tracker.models.budget import BudgetStatusReport
from finance_tracker.models.goal import Goal, GoalProgress, GoalStatus
from finance_tracker.models.transaction import Expense, Income
from finance_tracker.services.storage import (
    BudgetStorageInterface,
    GoalStorageInterface,
    TransactionStorageInterface,
)

CENTS = Decimal("0.01")

# Upper bound on records pulled into a single report
REPORT_FETCH_LIMIT = 10000


class ExpenseStats(BaseModel):
    total_expenses: Decimal = Decimal("0")
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    by_payment_method: dict[str, Decimal] = Field(default_factory=dict)
    average_daily_expense: Decimal = Decimal("0")


class IncomeStats(BaseModel):
    total_income: Decimal = Decimal("0")
    by_source: dict[str, Decimal] = Field(default_factory=dict)
    by_category: dict[str, Decimal] = Field(default_factory=dict)


class FinancialSummary(BaseModel):
    """Everything a period report shows."""

    owner_id: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    expenses: ExpenseStats
    income: IncomeStats
    net_savings: Decimal
    savings_rate: Decimal = Field(description="Net savings as a percentage of income, to two decimals")
    budgets: list[BudgetStatusReport] = Field(default_factory=list)
    goals: list[GoalProgress] = Field(default_factory=list)


def _days_in_range(
    date_from: Optional[date],
    date_to: Optional[date],
    expenses: list[Expense],
) -> int:
    """Inclusive day count; open ends fall back to the expenses' own span."""
    if not expenses and (date_from is None or date_to is None):
        return 0
    start = date_from or min(e.occurred_on for e in expenses)
    end = date_to or max(e.occurred_on for e in expenses)
    return max(1, (end - start).days + 1)


def summarize_expenses(
    expenses: list[Expense],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ExpenseStats:
    by_category: dict[str, Decimal] = defaultdict(Decimal)
    by_method: dict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        by_category[expense.category] += expense.amount
        by_method[expense.payment_method.value] += expense.amount

    total = sum((e.amount for e in expenses), Decimal("0"))
    days = _days_in_range(date_from, date_to, expenses)
    average = (total / days).quantize(CENTS, rounding=ROUND_HALF_UP) if days and expenses else Decimal("0")

    return ExpenseStats(
        total_expenses=total,
        by_category=dict(by_category),
        by_payment_method=dict(by_method),
        average_daily_expense=average,
    )


def summarize_income(incomes: list[Income]) -> IncomeStats:
    by_source: dict[str, Decimal] = defaultdict(Decimal)
    by_category: dict[str, Decimal] = defaultdict(Decimal)
    for income in incomes:
        by_source[income.source] += income.amount
        by_category[income.category] += income.amount

    return IncomeStats(
        total_income=sum((i.amount for i in incomes), Decimal("0")),
        by_source=dict(by_source),
        by_category=dict(by_category),
    )


def compute_goal_progress(goal: Goal, today: date) -> GoalProgress:
    """
    Progress view of a goal.

    monthly_required spreads the remaining amount over 30-day months
    until the target date; it is zero once the date has passed.
    """
    days_remaining = (goal.target_date - today).days
    progress = goal.current_amount / goal.target_amount * 100
    if days_remaining > 0:
        monthly = (goal.target_amount - goal.current_amount) / (Decimal(days_remaining) / 30)
    else:
        monthly = Decimal("0")

    return GoalProgress(
        goal_id=goal.id,
        title=goal.title,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        target_date=goal.target_date,
        priority=goal.priority,
        progress=int(progress.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        days_remaining=max(0, days_remaining),
        monthly_required=max(Decimal("0"), monthly).quantize(CENTS, rounding=ROUND_HALF_UP),
    )


class ReportBuilder:
    """Builds owner-scoped reports from storage."""

    def __init__(
        self,
        expense_storage: TransactionStorageInterface,
        income_storage: TransactionStorageInterface,
        budget_storage: BudgetStorageInterface,
        goal_storage: GoalStorageInterface,
        today: Callable[[], date] = date.today,
    ):
        self._expenses = expense_storage
        self._income = income_storage
        self._budgets = budget_storage
        self._goals = goal_storage
        self._today = today

    async def expense_stats(
        self,
        owner_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> ExpenseStats:
        expenses = await self._expenses.list_transactions(
            owner_id, date_from=date_from, date_to=date_to, limit=REPORT_FETCH_LIMIT,
        )
        return summarize_expenses(expenses, date_from, date_to)

    async def income_stats(
        self,
        owner_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> IncomeStats:
        incomes = await self._income.list_transactions(
            owner_id, date_from=date_from, date_to=date_to, limit=REPORT_FETCH_LIMIT,
        )
        return summarize_income(incomes)

    async def budget_status(self, owner_id: str) -> list[BudgetStatusReport]:
        budgets = await self._budgets.list_budgets(
            owner_id, active_only=True, limit=REPORT_FETCH_LIMIT,
        )
        return [compute_budget_status(b) for b in budgets]

    async def goal_progress(self, owner_id: str) -> list[GoalProgress]:
        goals = await self._goals.list_goals(owner_id, status=GoalStatus.ACTIVE)
        today = self._today()
        return [compute_goal_progress(g, today) for g in goals]

    async def summary(
        self,
        owner_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> FinancialSummary:
        expenses = await self.expense_stats(owner_id, date_from, date_to)
        income = await self.income_stats(owner_id, date_from, date_to)

        net = income.total_income - expenses.total_expenses
        if income.total_income > 0:
            rate = (net / income.total_income * 100).quantize(CENTS, rounding=ROUND_HALF_UP)
        else:
            rate = Decimal("0")

        return FinancialSummary(
            owner_id=owner_id,
            date_from=date_from,
            date_to=date_to,
            expenses=expenses,
            income=income,
            net_savings=net,
            savings_rate=rate,
            budgets=await self.budget_status(owner_id),
            goals=await self.goal_progress(owner_id),
        )
