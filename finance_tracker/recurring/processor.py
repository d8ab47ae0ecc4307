"""
Recurring Schedule Processor

Scans every transaction flagged recurring and materializes the next
occurrence once it is due.

FLOW (per owner and label, e.g. one user's "Rent" expenses):
1. Pick the group's template: its earliest recurring record
2. Find the most recent other record in the group (the anchor)
3. Advance the anchor date by the template's frequency
4. If that date is today or earlier, create one occurrence on it

LIMITATIONS:
- At most one occurrence per group per run. A processor that was
  offline for ten days on a daily template catches up one day per run,
  not ten.
- A group with no record besides the template is skipped: there is no
  anchor date to project from.
- One template per group. A second recurring stream under the same
  label (internet next to electricity under "Utilities") is not projected
  on its own, and edits to later recurring records in the group do not
  change what is projected. Give each stream its own label.

A failure in one group is logged and never stops the others.
"""

from collections import defaultdict
from datetime import date
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.activity import ActivityLogger
from finance_tracker.ledger import BudgetLedger
from finance_tracker.models.transaction import Expense, Transaction, TransactionKind
from finance_tracker.recurring.schedule import advance
from finance_tracker.services.storage import TransactionStorageInterface


class RecurringRunResult(BaseModel):
    """Outcome of processing one kind of transaction."""

    kind: TransactionKind
    created: list[UUID] = Field(default_factory=list)
    skipped: int = 0
    failed: int = 0


class RecurringRunSummary(BaseModel):
    """Outcome of a full processing run (income, then expenses)."""

    run_date: date
    income: RecurringRunResult
    expenses: RecurringRunResult

    @property
    def created_count(self) -> int:
        return len(self.income.created) + len(self.expenses.created)

    @property
    def failed_count(self) -> int:
        return self.income.failed + self.expenses.failed


def _group_templates(recurring: list[Transaction]) -> list[Transaction]:
    """One template per (owner, label): the earliest recurring record."""
    groups: dict[tuple[str, str], list[Transaction]] = defaultdict(list)
    for transaction in recurring:
        groups[(transaction.owner_id, transaction.group_label)].append(transaction)
    return [
        min(members, key=lambda t: (t.occurred_on, t.created_at, str(t.id)))
        for members in groups.values()
    ]


class RecurringProcessor:
    """
    Materializes due occurrences of recurring income and expenses.

    New expenses are charged to their budget through the ledger, the
    same way a user-created expense is.
    """

    def __init__(
        self,
        income_storage: TransactionStorageInterface,
        expense_storage: TransactionStorageInterface,
        ledger: Optional[BudgetLedger] = None,
        activity_logger: Optional[ActivityLogger] = None,
        today: Callable[[], date] = date.today,
    ):
        self._income_storage = income_storage
        self._expense_storage = expense_storage
        self._ledger = ledger
        self._activity = activity_logger or ActivityLogger()
        self._today = today

    async def process_recurring_income(self) -> RecurringRunResult:
        return await self._process(TransactionKind.INCOME, self._income_storage)

    async def process_recurring_expenses(self) -> RecurringRunResult:
        return await self._process(TransactionKind.EXPENSE, self._expense_storage)

    async def run(self) -> RecurringRunSummary:
        """Process recurring income, then recurring expenses."""
        income = await self.process_recurring_income()
        expenses = await self.process_recurring_expenses()
        return RecurringRunSummary(
            run_date=self._today(),
            income=income,
            expenses=expenses,
        )

    async def _process(
        self,
        kind: TransactionKind,
        storage: TransactionStorageInterface,
    ) -> RecurringRunResult:
        result = RecurringRunResult(kind=kind)
        today = self._today()

        try:
            templates = _group_templates(await storage.list_recurring())
        except Exception as e:
            result.failed += 1
            self._activity.log_error(
                error_type="recurring_scan_failed",
                error_message=str(e),
                details={"kind": kind.value},
            )
            self._activity.log_recurring_run(kind.value, 0, 0, result.failed)
            return result

        for template in templates:
            try:
                occurrence = await self._project(template, storage, today)
            except Exception as e:
                result.failed += 1
                self._activity.log_recurring_failed(
                    owner_id=template.owner_id,
                    entity_type=kind.value,
                    template_id=template.id,
                    error_message=str(e),
                )
                continue

            if occurrence is None:
                result.skipped += 1
                continue

            result.created.append(occurrence.id)
            self._activity.log_recurring_created(
                owner_id=occurrence.owner_id,
                entity_type=kind.value,
                entity_id=occurrence.id,
                template_id=template.id,
                label=occurrence.group_label,
                occurred_on=occurrence.occurred_on,
            )

        self._activity.log_recurring_run(
            entity_type=kind.value,
            created=len(result.created),
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    async def _project(
        self,
        template: Transaction,
        storage: TransactionStorageInterface,
        today: date,
    ) -> Optional[Transaction]:
        """Create the template's next occurrence if it is due."""
        anchor = await storage.find_latest(
            owner_id=template.owner_id,
            label=template.group_label,
            exclude_id=template.id,
        )
        if anchor is None:
            return None

        # The template is an occurrence too; never project before it
        last_date = max(anchor.occurred_on, template.occurred_on)
        next_date = advance(last_date, template.recurring_frequency)
        if next_date > today:
            return None

        occurrence = template.next_occurrence(next_date)
        await storage.save(occurrence)

        if self._ledger is not None and isinstance(occurrence, Expense):
            await self._ledger.record_expense(occurrence)

        return occurrence
