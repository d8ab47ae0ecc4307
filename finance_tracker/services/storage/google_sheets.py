"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted storage backend because:
1. Users can view their expenses and budgets directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions or atomic increments. The budget spent update is
  serialized with an in-process lock, which is enough for a single
  application process but not for several writers.
- Limited query capabilities (we filter in Python)

Each collection lives in its own worksheet with a header row.
Rows are encoded from the model's JSON dump, one column per field.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Generic, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import get_settings
from finance_tracker.models.budget import Budget
from finance_tracker.models.goal import Goal, GoalStatus
from finance_tracker.models.transaction import Expense, Income, Transaction
from finance_tracker.services.storage.filters import (
    budget_age,
    goal_order,
    newest_first,
    transaction_matches,
)
from finance_tracker.services.storage.interface import (
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoalStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


# Column mappings, one per worksheet. The first column is always the id.
EXPENSE_COLUMNS = [
    "id",
    "owner_id",
    "amount",
    "category",
    "description",
    "occurred_on",
    "payment_method",
    "is_recurring",
    "recurring_frequency",
    "notes",
    "created_at",
    "updated_at",
]

INCOME_COLUMNS = [
    "id",
    "owner_id",
    "amount",
    "source",
    "category",
    "description",
    "occurred_on",
    "is_recurring",
    "recurring_frequency",
    "created_at",
    "updated_at",
]

BUDGET_COLUMNS = [
    "id",
    "owner_id",
    "category",
    "amount",
    "spent",
    "period",
    "start_date",
    "end_date",
    "alert_threshold",
    "is_active",
    "created_at",
    "updated_at",
]

GOAL_COLUMNS = [
    "id",
    "owner_id",
    "title",
    "description",
    "category",
    "target_amount",
    "current_amount",
    "target_date",
    "priority",
    "status",
    "created_at",
    "updated_at",
]

SPENT_COLUMN_INDEX = BUDGET_COLUMNS.index("spent")

# Missing or duplicate records will not fix themselves on retry
write_retry = retry(
    retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


ModelT = TypeVar("ModelT", bound=BaseModel)


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SheetCollection(Generic[ModelT]):
    """
    One worksheet holding one model type.

    Malformed rows are skipped on read, matching how hand-edited
    sheets tend to break.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        columns: list[str],
        model: type[ModelT],
    ):
        self._client = client
        self._title = title
        self._columns = columns
        self._model = model

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def to_row(self, record: ModelT) -> list[str]:
        data = record.model_dump(mode="json")
        return [_cell(data.get(column)) for column in self._columns]

    def from_row(self, row: list[str]) -> ModelT:
        data = {
            column: value
            for column, value in zip(self._columns, row)
            if value != ""
        }
        return self._model.model_validate(data)

    def records(self) -> list[tuple[int, ModelT]]:
        """All parseable records with their 1-based sheet row index."""
        all_rows = self.sheet().get_all_values()
        records = []
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if not row or not row[0]:
                continue
            try:
                records.append((idx, self.from_row(row)))
            except Exception:
                continue  # Skip malformed rows
        return records

    def find(self, record_id: UUID, owner_id: str) -> Optional[tuple[int, ModelT]]:
        for idx, record in self.records():
            if record.id == record_id and record.owner_id == owner_id:
                return idx, record
        return None

    def append(self, record: ModelT) -> None:
        if any(existing.id == record.id for _, existing in self.records()):
            raise DuplicateError(f"Record already exists: {record.id}")
        self.sheet().append_row(self.to_row(record), value_input_option="RAW")

    def replace(self, idx: int, record: ModelT) -> None:
        self.sheet().update(
            range_name=f"A{idx}",
            values=[self.to_row(record)],
            value_input_option="RAW",
        )

    def remove(self, idx: int) -> None:
        self.sheet().delete_rows(idx)


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of expense or income storage.

    Use `for_expenses` / `for_income` to get the right worksheet and model.
    """

    def __init__(self, collection: SheetCollection[Transaction]):
        self._collection = collection

    @classmethod
    def for_expenses(
        cls,
        client: Optional[GoogleSheetsClient] = None,
    ) -> "GoogleSheetsTransactionStorage":
        client = client or GoogleSheetsClient()
        return cls(SheetCollection(
            client, client.settings.expenses_sheet_name, EXPENSE_COLUMNS, Expense,
        ))

    @classmethod
    def for_income(
        cls,
        client: Optional[GoogleSheetsClient] = None,
    ) -> "GoogleSheetsTransactionStorage":
        client = client or GoogleSheetsClient()
        return cls(SheetCollection(
            client, client.settings.income_sheet_name, INCOME_COLUMNS, Income,
        ))

    def _all(self) -> list[Transaction]:
        try:
            return [record for _, record in self._collection.records()]
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

    @write_retry
    async def save(self, transaction: Transaction) -> bool:
        try:
            self._collection.append(transaction)
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_by_id(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        try:
            found = self._collection.find(transaction_id, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")
        return found[1] if found else None

    @write_retry
    async def update(self, transaction: Transaction) -> bool:
        try:
            found = self._collection.find(transaction.id, transaction.owner_id)
            if found is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            transaction.updated_at = datetime.utcnow()
            self._collection.replace(found[0], transaction)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete(
        self,
        owner_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        try:
            found = self._collection.find(transaction_id, owner_id)
            if found is None:
                return None
            self._collection.remove(found[0])
            return found[1]
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transaction]:
        matches = [
            t for t in self._all()
            if transaction_matches(t, owner_id, label, date_from, date_to)
        ]
        # Sort by date descending (newest first)
        matches.sort(key=newest_first, reverse=True)
        return matches[offset:offset + limit]

    async def count_transactions(
        self,
        owner_id: str,
        label: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        return sum(
            1 for t in self._all()
            if transaction_matches(t, owner_id, label, date_from, date_to)
        )

    async def list_recurring(self) -> list[Transaction]:
        return [t for t in self._all() if t.is_recurring]

    async def find_latest(
        self,
        owner_id: str,
        label: str,
        exclude_id: UUID,
    ) -> Optional[Transaction]:
        candidates = [
            t for t in self._all()
            if transaction_matches(t, owner_id, label) and t.id != exclude_id
        ]
        if not candidates:
            return None
        return max(candidates, key=newest_first)


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """
    Google Sheets implementation of budget storage.

    The spent column is written only by adjust_spent, under a lock.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._collection: SheetCollection[Budget] = SheetCollection(
            client, client.settings.budgets_sheet_name, BUDGET_COLUMNS, Budget,
        )
        self._spent_lock = asyncio.Lock()

    def _all(self) -> list[Budget]:
        try:
            return [record for _, record in self._collection.records()]
        except Exception as e:
            raise StorageError(f"Failed to read budgets: {e}")

    @write_retry
    async def save(self, budget: Budget) -> bool:
        try:
            self._collection.append(budget)
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def get_by_id(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        try:
            found = self._collection.find(budget_id, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to get budget: {e}")
        return found[1] if found else None

    async def update(self, budget: Budget) -> bool:
        async with self._spent_lock:
            try:
                found = self._collection.find(budget.id, budget.owner_id)
                if found is None:
                    raise NotFoundError(f"Budget not found: {budget.id}")
                idx, existing = found
                self._collection.replace(
                    idx,
                    budget.model_copy(update={
                        "spent": existing.spent,
                        "updated_at": datetime.utcnow(),
                    }),
                )
                return True
            except NotFoundError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to update budget: {e}")

    async def delete(self, owner_id: str, budget_id: UUID) -> Optional[Budget]:
        try:
            found = self._collection.find(budget_id, owner_id)
            if found is None:
                return None
            self._collection.remove(found[0])
            return found[1]
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")

    async def list_budgets(
        self,
        owner_id: str,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Budget]:
        budgets = [
            b for b in self._all()
            if b.owner_id == owner_id and (b.is_active or not active_only)
        ]
        budgets.sort(key=budget_age, reverse=True)
        return budgets[offset:offset + limit]

    async def find_covering(
        self,
        owner_id: str,
        category: str,
        on: date,
    ) -> list[Budget]:
        budgets = [
            b for b in self._all()
            if b.owner_id == owner_id
            and b.is_active
            and b.category == category
            and b.covers(on)
        ]
        budgets.sort(key=budget_age)
        return budgets

    async def adjust_spent(
        self,
        owner_id: str,
        budget_id: UUID,
        delta: Decimal,
    ) -> Budget:
        async with self._spent_lock:
            try:
                found = self._collection.find(budget_id, owner_id)
                if found is None:
                    raise NotFoundError(f"Budget not found: {budget_id}")
                idx, existing = found
                spent = max(Decimal("0"), existing.spent + delta)
                # Only the spent cell is written, so concurrent edits to
                # other columns are not clobbered
                self._collection.sheet().update_cell(idx, SPENT_COLUMN_INDEX + 1, str(spent))
                return existing.model_copy(update={"spent": spent})
            except NotFoundError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to adjust budget: {e}")


class GoogleSheetsGoalStorage(GoalStorageInterface):
    """Google Sheets implementation of goal storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._collection: SheetCollection[Goal] = SheetCollection(
            client, client.settings.goals_sheet_name, GOAL_COLUMNS, Goal,
        )

    @write_retry
    async def save(self, goal: Goal) -> bool:
        try:
            self._collection.append(goal)
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save goal: {e}")

    async def get_by_id(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        try:
            found = self._collection.find(goal_id, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to get goal: {e}")
        return found[1] if found else None

    @write_retry
    async def update(self, goal: Goal) -> bool:
        try:
            found = self._collection.find(goal.id, goal.owner_id)
            if found is None:
                raise NotFoundError(f"Goal not found: {goal.id}")
            self._collection.replace(found[0], goal)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update goal: {e}")

    async def delete(self, owner_id: str, goal_id: UUID) -> Optional[Goal]:
        try:
            found = self._collection.find(goal_id, owner_id)
            if found is None:
                return None
            self._collection.remove(found[0])
            return found[1]
        except Exception as e:
            raise StorageError(f"Failed to delete goal: {e}")

    async def list_goals(
        self,
        owner_id: str,
        status: Optional[GoalStatus] = None,
    ) -> list[Goal]:
        try:
            goals = [
                g for _, g in self._collection.records()
                if g.owner_id == owner_id and (status is None or g.status == status)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list goals: {e}")
        goals.sort(key=goal_order)
        return goals
