"""
Main Orchestrator for Finance Tracker

This module ties together storage, the budget ledger and the recurring
processor, and defines the owner-scoped flows for:
1. Expenses (every write keeps budget spent totals in step)
2. Income
3. Budgets (with derived status)
4. Goals (add funds, set progress)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every lookup is scoped by owner_id; a missing record raises NotFoundError
- Only the ledger changes a budget's spent total
- A ledger failure never fails the expense write itself
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from finance_tracker.activity import ActivityLogger
from finance_tracker.config import get_settings
from finance_tracker.ledger import BudgetLedger, compute_budget_status
from finance_tracker.models.activity import ActivityEventType
from finance_tracker.models.budget import Budget, BudgetStatusReport, BudgetUpdate
from finance_tracker.models.goal import Goal, GoalProgress, GoalStatus, GoalUpdate
from finance_tracker.models.page import Page
from finance_tracker.models.transaction import (
    Expense,
    ExpenseUpdate,
    Income,
    IncomeUpdate,
)
from finance_tracker.recurring import (
    RecurringProcessor,
    RecurringRunSummary,
    RecurringScheduler,
)
from finance_tracker.reports import ReportBuilder, compute_goal_progress
from finance_tracker.services.storage import (
    BudgetStorageInterface,
    GoalStorageInterface,
    InMemoryBudgetStorage,
    InMemoryGoalStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    TransactionStorageInterface,
)


def _offset(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


class ExpenseFlow:
    """
    Orchestrates expense writes and reads.

    Flow for every write:
    1. Persist the expense change (errors propagate to the caller)
    2. Apply the matching ledger change (best-effort)
    """

    def __init__(
        self,
        expense_storage: TransactionStorageInterface,
        ledger: BudgetLedger,
        activity_logger: Optional[ActivityLogger] = None,
        page_size: int = 10,
    ):
        self._storage = expense_storage
        self._ledger = ledger
        self._activity = activity_logger or ActivityLogger()
        self._page_size = page_size

    async def create_expense(self, expense: Expense) -> Expense:
        """Save a new expense and charge it to its budget."""
        await self._storage.save(expense)
        await self._ledger.record_expense(expense)

        self._activity.log_transaction_written(
            event_type=ActivityEventType.EXPENSE_CREATED,
            owner_id=expense.owner_id,
            entity_type="expense",
            entity_id=expense.id,
            label=expense.category,
            amount=expense.amount,
        )
        return expense

    async def get_expense(self, owner_id: str, expense_id: UUID) -> Expense:
        expense = await self._storage.get_by_id(owner_id, expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return expense

    async def list_expenses(
        self,
        owner_id: str,
        category: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page[Expense]:
        """List expenses newest first, one page at a time."""
        page_size = page_size or self._page_size
        items = await self._storage.list_transactions(
            owner_id,
            label=category,
            date_from=date_from,
            date_to=date_to,
            limit=page_size,
            offset=_offset(page, page_size),
        )
        total = await self._storage.count_transactions(
            owner_id, label=category, date_from=date_from, date_to=date_to,
        )
        return Page[Expense](items=items, total=total, page=max(page, 1), page_size=page_size)

    async def update_expense(
        self,
        owner_id: str,
        expense_id: UUID,
        changes: ExpenseUpdate,
    ) -> Expense:
        """
        Apply a user edit and move the budget charge with it.

        The old amount, category and date are captured before the write
        so the old budget can be credited back.
        """
        before = await self.get_expense(owner_id, expense_id)
        after = changes.apply_to(before)
        await self._storage.update(after)
        await self._ledger.rebalance_expense(before, after)

        self._activity.log_transaction_written(
            event_type=ActivityEventType.EXPENSE_UPDATED,
            owner_id=owner_id,
            entity_type="expense",
            entity_id=after.id,
            label=after.category,
            amount=after.amount,
        )
        return after

    async def delete_expense(self, owner_id: str, expense_id: UUID) -> Expense:
        """Delete an expense and credit its budget."""
        removed = await self._storage.delete(owner_id, expense_id)
        if removed is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        await self._ledger.reverse_expense(removed)

        self._activity.log_transaction_written(
            event_type=ActivityEventType.EXPENSE_DELETED,
            owner_id=owner_id,
            entity_type="expense",
            entity_id=removed.id,
            label=removed.category,
            amount=removed.amount,
        )
        return removed


class IncomeFlow:
    """Orchestrates income writes and reads. Income never touches budgets."""

    def __init__(
        self,
        income_storage: TransactionStorageInterface,
        activity_logger: Optional[ActivityLogger] = None,
        page_size: int = 10,
    ):
        self._storage = income_storage
        self._activity = activity_logger or ActivityLogger()
        self._page_size = page_size

    async def create_income(self, income: Income) -> Income:
        await self._storage.save(income)
        self._activity.log_transaction_written(
            event_type=ActivityEventType.INCOME_CREATED,
            owner_id=income.owner_id,
            entity_type="income",
            entity_id=income.id,
            label=income.source,
            amount=income.amount,
        )
        return income

    async def get_income(self, owner_id: str, income_id: UUID) -> Income:
        income = await self._storage.get_by_id(owner_id, income_id)
        if income is None:
            raise NotFoundError(f"Income not found: {income_id}")
        return income

    async def list_income(
        self,
        owner_id: str,
        source: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page[Income]:
        page_size = page_size or self._page_size
        items = await self._storage.list_transactions(
            owner_id,
            label=source,
            date_from=date_from,
            date_to=date_to,
            limit=page_size,
            offset=_offset(page, page_size),
        )
        total = await self._storage.count_transactions(
            owner_id, label=source, date_from=date_from, date_to=date_to,
        )
        return Page[Income](items=items, total=total, page=max(page, 1), page_size=page_size)

    async def update_income(
        self,
        owner_id: str,
        income_id: UUID,
        changes: IncomeUpdate,
    ) -> Income:
        income = changes.apply_to(await self.get_income(owner_id, income_id))
        await self._storage.update(income)
        self._activity.log_transaction_written(
            event_type=ActivityEventType.INCOME_UPDATED,
            owner_id=owner_id,
            entity_type="income",
            entity_id=income.id,
            label=income.source,
            amount=income.amount,
        )
        return income

    async def delete_income(self, owner_id: str, income_id: UUID) -> Income:
        removed = await self._storage.delete(owner_id, income_id)
        if removed is None:
            raise NotFoundError(f"Income not found: {income_id}")
        self._activity.log_transaction_written(
            event_type=ActivityEventType.INCOME_DELETED,
            owner_id=owner_id,
            entity_type="income",
            entity_id=removed.id,
            label=removed.source,
            amount=removed.amount,
        )
        return removed


class BudgetFlow:
    """Orchestrates budget CRUD and status reads."""

    def __init__(
        self,
        budget_storage: BudgetStorageInterface,
        activity_logger: Optional[ActivityLogger] = None,
        page_size: int = 10,
        default_alert_threshold: int = 80,
    ):
        self._storage = budget_storage
        self._activity = activity_logger or ActivityLogger()
        self._page_size = page_size
        self._default_alert_threshold = default_alert_threshold

    async def create_budget(self, budget: Budget) -> Budget:
        """Save a new budget. Its spent total always starts at zero."""
        defaults = {"spent": Decimal("0"), "is_active": True}
        if "alert_threshold" not in budget.model_fields_set:
            defaults["alert_threshold"] = self._default_alert_threshold
        budget = budget.model_copy(update=defaults)
        await self._storage.save(budget)
        self._activity.log_entity_event(
            event_type=ActivityEventType.BUDGET_CREATED,
            owner_id=budget.owner_id,
            entity_type="budget",
            entity_id=budget.id,
            description=f"Budget created for {budget.category}: {budget.amount}",
        )
        return budget

    async def get_budget(self, owner_id: str, budget_id: UUID) -> Budget:
        budget = await self._storage.get_by_id(owner_id, budget_id)
        if budget is None:
            raise NotFoundError(f"Budget not found: {budget_id}")
        return budget

    async def list_budgets(
        self,
        owner_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page[Budget]:
        """List budgets, most recently created first."""
        page_size = page_size or self._page_size
        everything = await self._storage.list_budgets(owner_id, limit=10000)
        start = _offset(page, page_size)
        return Page[Budget](
            items=everything[start:start + page_size],
            total=len(everything),
            page=max(page, 1),
            page_size=page_size,
        )

    async def update_budget(
        self,
        owner_id: str,
        budget_id: UUID,
        changes: BudgetUpdate,
    ) -> Budget:
        budget = changes.apply_to(await self.get_budget(owner_id, budget_id))
        await self._storage.update(budget)
        self._activity.log_entity_event(
            event_type=ActivityEventType.BUDGET_UPDATED,
            owner_id=owner_id,
            entity_type="budget",
            entity_id=budget.id,
            description=f"Budget updated for {budget.category}",
        )
        # Re-read so the returned spent total is the stored one
        return await self.get_budget(owner_id, budget_id)

    async def delete_budget(self, owner_id: str, budget_id: UUID) -> Budget:
        removed = await self._storage.delete(owner_id, budget_id)
        if removed is None:
            raise NotFoundError(f"Budget not found: {budget_id}")
        self._activity.log_entity_event(
            event_type=ActivityEventType.BUDGET_DELETED,
            owner_id=owner_id,
            entity_type="budget",
            entity_id=removed.id,
            description=f"Budget deleted for {removed.category}",
        )
        return removed

    async def get_budget_status(self, owner_id: str, budget_id: UUID) -> BudgetStatusReport:
        return compute_budget_status(await self.get_budget(owner_id, budget_id))

    async def check_budget_status(self, owner_id: str) -> list[BudgetStatusReport]:
        """Status of every active budget."""
        budgets = await self._storage.list_budgets(owner_id, active_only=True, limit=10000)
        return [compute_budget_status(b) for b in budgets]


class GoalFlow:
    """Orchestrates savings goals."""

    def __init__(
        self,
        goal_storage: GoalStorageInterface,
        activity_logger: Optional[ActivityLogger] = None,
        today: Callable[[], date] = date.today,
    ):
        self._storage = goal_storage
        self._activity = activity_logger or ActivityLogger()
        self._today = today

    async def create_goal(self, goal: Goal) -> Goal:
        await self._storage.save(goal)
        self._activity.log_entity_event(
            event_type=ActivityEventType.GOAL_CREATED,
            owner_id=goal.owner_id,
            entity_type="goal",
            entity_id=goal.id,
            description=f"Goal created: {goal.title}",
        )
        return goal

    async def get_goal(self, owner_id: str, goal_id: UUID) -> Goal:
        goal = await self._storage.get_by_id(owner_id, goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        return goal

    async def list_goals(
        self,
        owner_id: str,
        status: Optional[GoalStatus] = GoalStatus.ACTIVE,
    ) -> list[Goal]:
        """Goals with the given status (all goals if None), most important first."""
        return await self._storage.list_goals(owner_id, status=status)

    async def update_goal(
        self,
        owner_id: str,
        goal_id: UUID,
        changes: GoalUpdate,
    ) -> Goal:
        goal = changes.apply_to(await self.get_goal(owner_id, goal_id))
        await self._storage.update(goal)
        self._activity.log_entity_event(
            event_type=ActivityEventType.GOAL_UPDATED,
            owner_id=owner_id,
            entity_type="goal",
            entity_id=goal.id,
            description=f"Goal updated: {goal.title}",
        )
        return goal

    async def delete_goal(self, owner_id: str, goal_id: UUID) -> Goal:
        removed = await self._storage.delete(owner_id, goal_id)
        if removed is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        self._activity.log_entity_event(
            event_type=ActivityEventType.GOAL_DELETED,
            owner_id=owner_id,
            entity_type="goal",
            entity_id=removed.id,
            description=f"Goal deleted: {removed.title}",
        )
        return removed

    async def add_funds(self, owner_id: str, goal_id: UUID, amount: Decimal) -> Goal:
        """Add money to a goal's balance."""
        if amount <= 0:
            raise ValueError("Amount added to a goal must be positive")
        goal = await self.get_goal(owner_id, goal_id)
        return await self._save_progress(goal, goal.current_amount + amount)

    async def set_progress(self, owner_id: str, goal_id: UUID, current_amount: Decimal) -> Goal:
        """Overwrite a goal's balance."""
        if current_amount < 0:
            raise ValueError("Goal balance cannot be negative")
        goal = await self.get_goal(owner_id, goal_id)
        return await self._save_progress(goal, current_amount)

    async def _save_progress(self, goal: Goal, current_amount: Decimal) -> Goal:
        updated = goal.with_current_amount(current_amount)
        await self._storage.update(updated)
        if goal.status != GoalStatus.ACHIEVED and updated.status == GoalStatus.ACHIEVED:
            self._activity.log_goal_achieved(updated.owner_id, updated.id, updated.title)
        return updated

    async def goal_progress(self, owner_id: str) -> list[GoalProgress]:
        """Progress of every active goal."""
        goals = await self._storage.list_goals(owner_id, status=GoalStatus.ACTIVE)
        today = self._today()
        return [compute_goal_progress(g, today) for g in goals]


@dataclass
class AppComponents:
    """Everything the application needs, wired together."""

    expenses: ExpenseFlow
    income: IncomeFlow
    budgets: BudgetFlow
    goals: GoalFlow
    reports: ReportBuilder
    ledger: BudgetLedger
    processor: RecurringProcessor
    scheduler: RecurringScheduler
    activity_logger: ActivityLogger

    async def run_recurring_processing(self) -> Optional[RecurringRunSummary]:
        """Run recurring income, then recurring expenses, to completion."""
        return await self.scheduler.run_once()


def create_app_components(
    use_google_sheets: Optional[bool] = None,
    activity_logger: Optional[ActivityLogger] = None,
    today: Callable[[], date] = date.today,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_google_sheets: Force the storage backend. None reads the
                          STORAGE_BACKEND setting.
        activity_logger: Logger shared by every component
        today: Clock used by the recurring processor and goal progress
    """
    settings = get_settings()
    app_settings = settings.app
    scheduler_settings = settings.scheduler
    activity_logger = activity_logger or ActivityLogger()

    if use_google_sheets is None:
        use_google_sheets = app_settings.uses_google_sheets

    if use_google_sheets:
        from finance_tracker.services.storage.google_sheets import (
            GoogleSheetsBudgetStorage,
            GoogleSheetsClient,
            GoogleSheetsGoalStorage,
            GoogleSheetsTransactionStorage,
        )

        client = GoogleSheetsClient()
        expense_storage = GoogleSheetsTransactionStorage.for_expenses(client)
        income_storage = GoogleSheetsTransactionStorage.for_income(client)
        budget_storage = GoogleSheetsBudgetStorage(client)
        goal_storage = GoogleSheetsGoalStorage(client)
    else:
        expense_storage = InMemoryTransactionStorage()
        income_storage = InMemoryTransactionStorage()
        budget_storage = InMemoryBudgetStorage()
        goal_storage = InMemoryGoalStorage()

    page_size = app_settings.default_page_size
    ledger = BudgetLedger(budget_storage, activity_logger)
    processor = RecurringProcessor(
        income_storage=income_storage,
        expense_storage=expense_storage,
        ledger=ledger,
        activity_logger=activity_logger,
        today=today,
    )
    scheduler = RecurringScheduler(
        processor,
        interval_seconds=scheduler_settings.interval_seconds,
        run_on_startup=scheduler_settings.run_on_startup,
        activity_logger=activity_logger,
    )

    return AppComponents(
        expenses=ExpenseFlow(expense_storage, ledger, activity_logger, page_size),
        income=IncomeFlow(income_storage, activity_logger, page_size),
        budgets=BudgetFlow(
            budget_storage,
            activity_logger,
            page_size,
            app_settings.default_alert_threshold,
        ),
        goals=GoalFlow(goal_storage, activity_logger, today),
        reports=ReportBuilder(
            expense_storage, income_storage, budget_storage, goal_storage, today,
        ),
        ledger=ledger,
        processor=processor,
        scheduler=scheduler,
        activity_logger=activity_logger,
    )
