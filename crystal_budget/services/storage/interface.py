"""
Abstract Storage Interface

DESIGN DECISION: The budget core never talks to storage. This interface
is the boundary where already owner-scoped records are fetched. It allows
us to:
1. Swap the local snapshot for the hosted backend
2. Use in-memory storage for testing
3. Keep the computation decoupled from data access

Date windows are half-open: [date_from, date_before). Either bound may be
omitted; carry-over queries use only `date_before`.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from crystal_budget.models.audit import AuditEvent
from crystal_budget.models.budget import (
    Category,
    Expense,
    Income,
    IncomeSource,
    align_moment,
)


class BudgetStorageInterface(ABC):
    """
    Abstract interface for budget record storage.

    Any storage implementation (local snapshot, hosted tables, ...)
    must implement these methods.
    """

    @abstractmethod
    async def list_income_sources(self) -> list[IncomeSource]:
        """
        List all income sources.

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """
        List all categories with their allocation rules.

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def list_incomes(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Income]:
        """
        List incomes dated in [date_from, date_before).

        Args:
            date_from: Inclusive lower bound (None = no lower bound)
            date_before: Exclusive upper bound (None = no upper bound)

        Returns:
            Matching incomes
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Expense]:
        """
        List expenses dated in [date_from, date_before).

        Args:
            date_from: Inclusive lower bound (None = no lower bound)
            date_before: Exclusive upper bound (None = no upper bound)

        Returns:
            Matching expenses
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one dashboard computation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


def in_window(
    moment: datetime,
    date_from: Optional[datetime],
    date_before: Optional[datetime],
) -> bool:
    """Shared [date_from, date_before) filter for implementations."""
    if date_from is not None and align_moment(moment, date_from) < date_from:
        return False
    if date_before is not None and align_moment(moment, date_before) >= date_before:
        return False
    return True


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not reach the storage backend. Transient; safe to retry."""
    pass


class SnapshotFormatError(StorageError):
    """The stored snapshot could not be parsed."""
    pass
