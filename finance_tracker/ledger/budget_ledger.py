"""
Budget Ledger

Keeps each budget's `spent` accumulator in step with the expenses that
fall inside its category and window.

GUARANTEES:
- Create adds the amount to exactly one matching budget
- Delete subtracts it again, floored at zero
- Update reverses the old effect, then applies the new one
- Every change goes through the store's atomic adjust_spent

Ledger updates are best-effort: a failure is logged and never fails
the expense write that triggered it.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from finance_tracker.activity import ActivityLogger
from finance_tracker.models.budget import (
    Budget,
    BudgetHealth,
    BudgetStatusReport,
)
from finance_tracker.models.transaction import Expense
from finance_tracker.services.storage import BudgetStorageInterface, NotFoundError


def compute_budget_status(budget: Budget) -> BudgetStatusReport:
    """
    Derive percentage used, remaining amount and status for a budget.

    The status thresholds compare the unrounded percentage, so a budget
    at 100.4% is EXCEEDED even though it reports 100.
    """
    percentage = budget.spent / budget.amount * 100
    if percentage > 100:
        status = BudgetHealth.EXCEEDED
    elif percentage >= budget.alert_threshold:
        status = BudgetHealth.ALERT
    else:
        status = BudgetHealth.NORMAL

    return BudgetStatusReport(
        budget_id=budget.id,
        category=budget.category,
        amount=budget.amount,
        spent=budget.spent,
        start_date=budget.start_date,
        end_date=budget.end_date,
        alert_threshold=budget.alert_threshold,
        percentage_used=int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        remaining=max(Decimal("0"), budget.amount - budget.spent),
        status=status,
    )


class BudgetLedger:
    """
    Applies expense writes to budget accumulators.

    When several active budgets cover the same category and date, the
    oldest one is charged. The store returns candidates in that order, so
    a delete or edit credits the same budget the create charged, even if
    an overlapping budget was added in between.
    """

    def __init__(
        self,
        budget_storage: BudgetStorageInterface,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._storage = budget_storage
        self._activity = activity_logger or ActivityLogger()

    async def resolve_budget(
        self,
        owner_id: str,
        category: str,
        on: date,
    ) -> Optional[Budget]:
        """The budget an expense with this category and date is charged to."""
        candidates = await self._storage.find_covering(owner_id, category, on)
        return candidates[0] if candidates else None

    async def record_expense(self, expense: Expense) -> Optional[Budget]:
        """Charge a newly created expense to its budget."""
        return await self._adjust(
            expense.owner_id,
            expense.category,
            expense.occurred_on,
            expense.amount,
        )

    async def reverse_expense(self, expense: Expense) -> Optional[Budget]:
        """
        Undo a deleted expense's charge.

        Pass the expense as it was before deletion: its original
        category and date pick the budget.
        """
        return await self._adjust(
            expense.owner_id,
            expense.category,
            expense.occurred_on,
            -expense.amount,
        )

    async def rebalance_expense(self, before: Expense, after: Expense) -> None:
        """Move an edited expense's charge from its old budget to its new one."""
        if (
            before.amount == after.amount
            and before.category == after.category
            and before.occurred_on == after.occurred_on
        ):
            return
        await self.reverse_expense(before)
        await self.record_expense(after)

    async def _adjust(
        self,
        owner_id: str,
        category: str,
        on: date,
        delta: Decimal,
    ) -> Optional[Budget]:
        try:
            budget = await self.resolve_budget(owner_id, category, on)
            if budget is None:
                return None
            updated = await self._storage.adjust_spent(owner_id, budget.id, delta)
        except NotFoundError:
            # Budget removed between lookup and adjustment
            return None
        except Exception as e:
            self._activity.log_budget_adjustment_failed(
                owner_id=owner_id,
                category=category,
                delta=delta,
                error_message=str(e),
            )
            return None

        self._activity.log_budget_adjusted(
            owner_id=owner_id,
            budget_id=updated.id,
            delta=delta,
            spent=updated.spent,
        )
        return updated
