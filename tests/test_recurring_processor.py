"""
Tests for the recurring processor.

Every test runs against in-memory storage with the clock pinned to TODAY.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from finance_tracker.models.activity import ActivityEventType
from finance_tracker.models.transaction import RecurringFrequency
from finance_tracker.recurring import RecurringProcessor
from finance_tracker.services.storage import InMemoryTransactionStorage, StorageError
from tests.factories import OWNER, TODAY, make_budget, make_expense, make_income


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


class FailingLabelStorage(InMemoryTransactionStorage):
    """Storage whose lookups fail for one label."""

    def __init__(self, broken_label: str):
        super().__init__()
        self._broken_label = broken_label

    async def find_latest(self, owner_id, label, exclude_id):
        if label == self._broken_label:
            raise StorageError("sheet unavailable")
        return await super().find_latest(owner_id, label, exclude_id)


class UnreadableStorage(InMemoryTransactionStorage):
    async def list_recurring(self):
        raise StorageError("sheet unavailable")


@pytest.fixture
def processor(income_storage, expense_storage, ledger, activity, today):
    return RecurringProcessor(
        income_storage=income_storage,
        expense_storage=expense_storage,
        ledger=ledger,
        activity_logger=activity,
        today=today,
    )


class TestRecurringExpenses:
    """Tests for projecting recurring expenses."""

    @pytest.mark.asyncio
    async def test_creates_one_occurrence_after_last(self, processor, expense_storage):
        """Test that a daily entry last seen 3 days ago gets exactly one new occurrence."""
        template = make_expense(
            category="Gym", is_recurring=True,
            recurring_frequency=RecurringFrequency.DAILY, occurred_on=days_ago(10),
        )
        await expense_storage.save(template)
        await expense_storage.save(make_expense(category="Gym", occurred_on=days_ago(3)))

        result = await processor.process_recurring_expenses()

        assert len(result.created) == 1
        created = await expense_storage.get_by_id(OWNER, result.created[0])
        assert created.occurred_on == days_ago(2)
        assert created.category == "Gym"
        assert created.is_recurring is True
        assert await expense_storage.count_transactions(OWNER, label="Gym") == 3

    @pytest.mark.asyncio
    async def test_no_anchor_creates_nothing(self, processor, expense_storage):
        """Test that a lone template has no date to project from."""
        await expense_storage.save(make_expense(
            category="Gym", is_recurring=True, occurred_on=days_ago(90),
        ))

        result = await processor.process_recurring_expenses()

        assert result.created == []
        assert result.skipped == 1
        assert await expense_storage.count_transactions(OWNER) == 1

    @pytest.mark.asyncio
    async def test_not_yet_due(self, processor, expense_storage):
        """Test that an occurrence dated after today is not created."""
        await expense_storage.save(make_expense(
            category="Rent", is_recurring=True, occurred_on=days_ago(40),
        ))
        await expense_storage.save(make_expense(category="Rent", occurred_on=days_ago(10)))

        result = await processor.process_recurring_expenses()

        assert result.created == []
        assert result.skipped == 1

    @pytest.mark.asyncio
    async def test_second_run_same_day_is_idempotent(self, processor, expense_storage):
        """Test that running twice on the same day creates nothing the second time."""
        await expense_storage.save(make_expense(
            category="Coffee", is_recurring=True,
            recurring_frequency=RecurringFrequency.DAILY, occurred_on=days_ago(6),
        ))
        await expense_storage.save(make_expense(category="Coffee", occurred_on=days_ago(1)))

        first = await processor.process_recurring_expenses()
        second = await processor.process_recurring_expenses()

        assert len(first.created) == 1
        created = await expense_storage.get_by_id(OWNER, first.created[0])
        assert created.occurred_on == TODAY
        assert second.created == []
        assert await expense_storage.count_transactions(OWNER, label="Coffee") == 3

    @pytest.mark.asyncio
    async def test_never_projects_before_template(self, processor, expense_storage):
        """Test that an older non-recurring record does not pull the date back."""
        await expense_storage.save(make_expense(category="Gym", occurred_on=days_ago(20)))
        await expense_storage.save(make_expense(
            category="Gym", is_recurring=True,
            recurring_frequency=RecurringFrequency.DAILY, occurred_on=days_ago(2),
        ))

        result = await processor.process_recurring_expenses()

        created = await expense_storage.get_by_id(OWNER, result.created[0])
        assert created.occurred_on == days_ago(1)

    @pytest.mark.asyncio
    async def test_one_stream_per_label(self, processor, expense_storage):
        """Test that two recurring entries under one label project only the earliest."""
        electricity = make_expense(
            category="Utilities", amount=Decimal("80.00"), is_recurring=True,
            occurred_on=date(2024, 1, 15),
        )
        internet = make_expense(
            category="Utilities", amount=Decimal("45.00"), is_recurring=True,
            occurred_on=date(2024, 2, 15),
        )
        await expense_storage.save(electricity)
        await expense_storage.save(internet)

        result = await processor.process_recurring_expenses()

        assert len(result.created) == 1
        created = await expense_storage.get_by_id(OWNER, result.created[0])
        assert created.amount == Decimal("80.00")
        assert created.occurred_on == TODAY

    @pytest.mark.asyncio
    async def test_owners_are_processed_separately(self, processor, expense_storage):
        """Test that two owners with the same category each get their own occurrence."""
        for owner in (OWNER, "user-2"):
            await expense_storage.save(make_expense(
                owner_id=owner, category="Rent", is_recurring=True,
                occurred_on=date(2024, 1, 15),
            ))
            await expense_storage.save(make_expense(
                owner_id=owner, category="Rent", occurred_on=date(2024, 2, 15),
            ))

        result = await processor.process_recurring_expenses()

        assert len(result.created) == 2
        assert await expense_storage.count_transactions(OWNER, label="Rent") == 3
        assert await expense_storage.count_transactions("user-2", label="Rent") == 3

    @pytest.mark.asyncio
    async def test_created_expense_charges_budget(self, processor, expense_storage, budget_storage):
        """Test that a projected expense goes through the budget ledger."""
        budget = make_budget()
        await budget_storage.save(budget)
        await expense_storage.save(make_expense(
            is_recurring=True, recurring_frequency=RecurringFrequency.DAILY,
            occurred_on=days_ago(5), amount=Decimal("12.50"),
        ))
        await expense_storage.save(make_expense(occurred_on=days_ago(1)))

        await processor.process_recurring_expenses()

        stored = await budget_storage.get_by_id(OWNER, budget.id)
        assert stored.spent == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(self, income_storage, ledger, activity, today):
        """Test that a failing group is logged and the rest still run."""
        expense_storage = FailingLabelStorage("Broken")
        processor = RecurringProcessor(
            income_storage, expense_storage, ledger, activity, today,
        )
        for category in ("Broken", "Gym"):
            await expense_storage.save(make_expense(
                category=category, is_recurring=True,
                recurring_frequency=RecurringFrequency.DAILY, occurred_on=days_ago(5),
            ))
            await expense_storage.save(make_expense(category=category, occurred_on=days_ago(1)))

        result = await processor.process_recurring_expenses()

        assert result.failed == 1
        assert len(result.created) == 1
        failures = [
            e for e in activity.events
            if e.event_type == ActivityEventType.RECURRING_OCCURRENCE_FAILED
        ]
        assert len(failures) == 1
        assert failures[0].error_message == "sheet unavailable"

    @pytest.mark.asyncio
    async def test_scan_failure_is_reported(self, income_storage, activity, today):
        """Test that an unreadable collection is counted as a failure, not raised."""
        processor = RecurringProcessor(
            income_storage, UnreadableStorage(), activity_logger=activity, today=today,
        )

        result = await processor.process_recurring_expenses()

        assert result.failed == 1
        assert any(e.event_type == ActivityEventType.SYSTEM_ERROR for e in activity.events)


class TestRecurringIncome:
    """Tests for projecting recurring income."""

    @pytest.mark.asyncio
    async def test_monthly_salary(self, processor, income_storage, budget_storage):
        """Test that monthly income due today is created and budgets are untouched."""
        budget = make_budget()
        await budget_storage.save(budget)
        await income_storage.save(make_income(
            is_recurring=True, recurring_frequency="Monthly", occurred_on=date(2024, 1, 15),
        ))
        await income_storage.save(make_income(occurred_on=date(2024, 2, 15)))

        result = await processor.process_recurring_income()

        assert len(result.created) == 1
        created = await income_storage.get_by_id(OWNER, result.created[0])
        assert created.occurred_on == TODAY
        assert created.source == "Acme Corp"
        assert (await budget_storage.get_by_id(OWNER, budget.id)).spent == Decimal("0")

    @pytest.mark.asyncio
    async def test_run_processes_income_then_expenses(self, processor, income_storage, expense_storage, activity):
        """Test a full run and its summary."""
        await income_storage.save(make_income(
            is_recurring=True, occurred_on=date(2024, 1, 15),
        ))
        await income_storage.save(make_income(occurred_on=date(2024, 2, 15)))
        await expense_storage.save(make_expense(
            category="Rent", is_recurring=True, occurred_on=date(2024, 1, 1),
        ))
        await expense_storage.save(make_expense(category="Rent", occurred_on=date(2024, 3, 1)))

        summary = await processor.run()

        assert summary.run_date == TODAY
        assert len(summary.income.created) == 1
        assert summary.expenses.created == []
        assert summary.created_count == 1
        assert summary.failed_count == 0
        completed = [
            e.entity_type for e in activity.events
            if e.event_type == ActivityEventType.RECURRING_RUN_COMPLETED
        ]
        assert completed == ["income", "expense"]
