"""
In-Memory Storage Implementation

Backs tests and callers that already hold a full snapshot in memory.
Records are kept in insertion order, sorted by date on read.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from crystal_budget.models.audit import AuditEvent
from crystal_budget.models.budget import (
    BudgetSnapshot,
    Category,
    Expense,
    Income,
    IncomeSource,
)
from crystal_budget.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    NotFoundError,
    in_window,
)


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Budget storage held entirely in memory."""

    def __init__(self, snapshot: Optional[BudgetSnapshot] = None):
        snapshot = snapshot or BudgetSnapshot()
        self._sources: dict[str, IncomeSource] = {s.id: s for s in snapshot.income_sources}
        self._categories: dict[str, Category] = {c.id: c for c in snapshot.categories}
        self._incomes: dict[str, Income] = {i.id: i for i in snapshot.incomes}
        self._expenses: dict[str, Expense] = {e.id: e for e in snapshot.expenses}

    # -- reads ---------------------------------------------------------------

    async def list_income_sources(self) -> list[IncomeSource]:
        return list(self._sources.values())

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def list_incomes(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Income]:
        matching = [
            inc for inc in self._incomes.values()
            if in_window(inc.date, date_from, date_before)
        ]
        return sorted(matching, key=lambda inc: inc.date)

    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Expense]:
        matching = [
            exp for exp in self._expenses.values()
            if in_window(exp.date, date_from, date_before)
        ]
        return sorted(matching, key=lambda exp: exp.date)

    # -- writes --------------------------------------------------------------
    # Adding a record with an existing id replaces it.

    def add_income_source(self, source: IncomeSource) -> None:
        self._sources[source.id] = source

    def add_category(self, category: Category) -> None:
        self._categories[category.id] = category

    def add_income(self, income: Income) -> None:
        self._incomes[income.id] = income

    def add_expense(self, expense: Expense) -> None:
        self._expenses[expense.id] = expense

    def delete_income_source(self, source_id: str) -> None:
        self._delete(self._sources, source_id, "income source")

    def delete_category(self, category_id: str) -> None:
        self._delete(self._categories, category_id, "category")

    def delete_income(self, income_id: str) -> None:
        self._delete(self._incomes, income_id, "income")

    def delete_expense(self, expense_id: str) -> None:
        self._delete(self._expenses, expense_id, "expense")

    def snapshot(self) -> BudgetSnapshot:
        """Copy of everything currently stored."""
        return BudgetSnapshot(
            income_sources=list(self._sources.values()),
            categories=list(self._categories.values()),
            incomes=list(self._incomes.values()),
            expenses=list(self._expenses.values()),
        )

    @staticmethod
    def _delete(records: dict, record_id: str, kind: str) -> None:
        # Deleting a source or category leaves records that reference it
        # untouched; the core treats such references as zero contributions.
        if record_id not in records:
            raise NotFoundError(f"No {kind} with id {record_id}")
        del records[record_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
