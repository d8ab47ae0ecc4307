"""
Tests for the application flows and the component factory.

All flows run against in-memory storage.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.activity import ActivityEventType
from finance_tracker.models.budget import BudgetHealth, BudgetUpdate
from finance_tracker.models.transaction import ExpenseUpdate, IncomeUpdate
from finance_tracker.orchestrator import (
    BudgetFlow,
    ExpenseFlow,
    IncomeFlow,
    create_app_components,
)
from finance_tracker.recurring import RecurringRunSummary
from finance_tracker.services.storage import InMemoryTransactionStorage, NotFoundError
from tests.factories import OWNER, TODAY, make_budget, make_expense, make_income


@pytest.fixture
def expenses(expense_storage, ledger, activity):
    return ExpenseFlow(expense_storage, ledger, activity, page_size=2)


@pytest.fixture
def income(income_storage, activity):
    return IncomeFlow(income_storage, activity)


@pytest.fixture
def budgets(budget_storage, activity):
    return BudgetFlow(budget_storage, activity, default_alert_threshold=70)


class TestExpenseFlow:
    """Tests for expense CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, expenses, activity):
        expense = await expenses.create_expense(make_expense())

        fetched = await expenses.get_expense(OWNER, expense.id)
        assert fetched.amount == Decimal("100.00")
        assert activity.events[-1].event_type == ActivityEventType.EXPENSE_CREATED

    @pytest.mark.asyncio
    async def test_other_owner_cannot_read(self, expenses):
        """Test that records are invisible to other owners."""
        expense = await expenses.create_expense(make_expense())
        with pytest.raises(NotFoundError):
            await expenses.get_expense("user-2", expense.id)

    @pytest.mark.asyncio
    async def test_other_owner_cannot_delete(self, expenses):
        expense = await expenses.create_expense(make_expense())
        with pytest.raises(NotFoundError):
            await expenses.delete_expense("user-2", expense.id)
        assert await expenses.get_expense(OWNER, expense.id) is not None

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, expenses):
        with pytest.raises(NotFoundError):
            await expenses.update_expense(OWNER, uuid4(), ExpenseUpdate(amount=Decimal("1.00")))

    @pytest.mark.asyncio
    async def test_list_is_paged_newest_first(self, expenses):
        for day in (1, 5, 3):
            await expenses.create_expense(make_expense(occurred_on=date(2024, 3, day)))

        first = await expenses.list_expenses(OWNER)
        second = await expenses.list_expenses(OWNER, page=2)

        assert first.total == 3
        assert first.pages == 2
        assert [e.occurred_on.day for e in first.items] == [5, 3]
        assert [e.occurred_on.day for e in second.items] == [1]

    @pytest.mark.asyncio
    async def test_list_filters(self, expenses):
        await expenses.create_expense(make_expense(category="Food", occurred_on=date(2024, 3, 2)))
        await expenses.create_expense(make_expense(category="Travel", occurred_on=date(2024, 3, 4)))
        await expenses.create_expense(make_expense(category="Food", occurred_on=date(2024, 2, 20)))

        food = await expenses.list_expenses(OWNER, category="Food")
        march = await expenses.list_expenses(
            OWNER, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31), page_size=10,
        )

        assert food.total == 2
        assert march.total == 2
        assert {e.category for e in march.items} == {"Food", "Travel"}


class TestIncomeFlow:
    """Tests for income CRUD."""

    @pytest.mark.asyncio
    async def test_crud(self, income, activity):
        created = await income.create_income(make_income())

        updated = await income.update_income(
            OWNER, created.id, IncomeUpdate(amount=Decimal("3500.00")),
        )
        assert updated.amount == Decimal("3500.00")
        assert (await income.get_income(OWNER, created.id)).amount == Decimal("3500.00")

        await income.delete_income(OWNER, created.id)
        with pytest.raises(NotFoundError):
            await income.get_income(OWNER, created.id)

        types = [e.event_type for e in activity.events]
        assert types == [
            ActivityEventType.INCOME_CREATED,
            ActivityEventType.INCOME_UPDATED,
            ActivityEventType.INCOME_DELETED,
        ]

    @pytest.mark.asyncio
    async def test_list_by_source(self, income):
        await income.create_income(make_income(source="Acme Corp"))
        await income.create_income(make_income(source="Freelance"))

        page = await income.list_income(OWNER, source="Freelance")
        assert page.total == 1
        assert page.items[0].source == "Freelance"


class TestBudgetFlow:
    """Tests for budget CRUD and status."""

    @pytest.mark.asyncio
    async def test_create_starts_at_zero(self, budgets):
        """Test that spent supplied on create is ignored."""
        budget = await budgets.create_budget(make_budget(spent=Decimal("500.00")))
        assert (await budgets.get_budget(OWNER, budget.id)).spent == Decimal("0")

    @pytest.mark.asyncio
    async def test_create_uses_default_threshold(self, budgets):
        budget = await budgets.create_budget(make_budget())
        assert budget.alert_threshold == 70

    @pytest.mark.asyncio
    async def test_create_keeps_explicit_threshold(self, budgets):
        budget = await budgets.create_budget(make_budget(alert_threshold=90))
        assert budget.alert_threshold == 90

    @pytest.mark.asyncio
    async def test_update_keeps_spent(self, budgets, budget_storage):
        """Test that editing a budget never overwrites the ledger total."""
        budget = await budgets.create_budget(make_budget())
        await budget_storage.adjust_spent(OWNER, budget.id, Decimal("400.00"))

        updated = await budgets.update_budget(
            OWNER, budget.id, BudgetUpdate(amount=Decimal("500.00")),
        )

        assert updated.amount == Decimal("500.00")
        assert updated.spent == Decimal("400.00")
        status = await budgets.get_budget_status(OWNER, budget.id)
        assert status.percentage_used == 80
        assert status.status == BudgetHealth.ALERT

    @pytest.mark.asyncio
    async def test_status_lists_active_budgets(self, budgets):
        active = await budgets.create_budget(make_budget(category="Food"))
        paused = await budgets.create_budget(make_budget(category="Travel"))
        await budgets.update_budget(OWNER, paused.id, BudgetUpdate(is_active=False))

        reports = await budgets.check_budget_status(OWNER)

        assert [r.budget_id for r in reports] == [active.id]

    @pytest.mark.asyncio
    async def test_list_newest_first(self, budgets):
        older = await budgets.create_budget(make_budget(created_offset=0))
        newer = await budgets.create_budget(make_budget(created_offset=10))

        page = await budgets.list_budgets(OWNER)

        assert [b.id for b in page.items] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, budgets):
        with pytest.raises(NotFoundError):
            await budgets.delete_budget(OWNER, uuid4())


class TestAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_memory_components_are_wired(self, monkeypatch, today):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        components = create_app_components(today=today)

        budget = await components.budgets.create_budget(make_budget())
        await components.expenses.create_expense(make_expense(amount=Decimal("60.00")))

        assert (await components.budgets.get_budget(OWNER, budget.id)).spent == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_run_recurring_processing(self, today):
        components = create_app_components(use_google_sheets=False, today=today)
        await components.income.create_income(make_income(
            is_recurring=True, occurred_on=date(2024, 1, 15),
        ))
        await components.income.create_income(make_income(occurred_on=date(2024, 2, 15)))

        summary = await components.run_recurring_processing()

        assert isinstance(summary, RecurringRunSummary)
        assert summary.run_date == TODAY
        assert len(summary.income.created) == 1
        page = await components.income.list_income(OWNER)
        assert page.items[0].occurred_on == TODAY

    def test_storage_is_not_shared_between_factories(self):
        first = create_app_components(use_google_sheets=False)
        second = create_app_components(use_google_sheets=False)
        assert first.ledger is not second.ledger
        assert isinstance(first.processor._expense_storage, InMemoryTransactionStorage)
