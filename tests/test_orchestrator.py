"""
Integration tests for the dashboard flow.

Uses in-memory storage; retries are configured without waiting.
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from crystal_budget.audit import AuditLogger
from crystal_budget.config import StorageSettings
from crystal_budget.models.audit import AuditEventType
from crystal_budget.models.budget import (
    Allocation,
    AllocationType,
    BudgetSnapshot,
    Category,
    Expense,
    Income,
    IncomeSource,
)
from crystal_budget.orchestrator import BudgetDashboardFlow, create_dashboard_flow
from crystal_budget.services.storage import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    JsonFileBudgetStorage,
    StorageConnectionError,
    StorageError,
)


NO_WAIT = StorageSettings(
    fetch_retry_attempts=3,
    fetch_retry_wait_min=0,
    fetch_retry_wait_max=0,
)


def make_snapshot():
    return BudgetSnapshot(
        income_sources=[IncomeSource(id="salary", name="Salary", amount=50000)],
        categories=[
            Category(
                id="food",
                name="Food",
                allocations=[Allocation(
                    income_source_id="salary",
                    allocation_type=AllocationType.PERCENT,
                    allocation_value=20,
                )],
            ),
            # Legacy fixed amount, normalized on load
            Category(id="rent", name="Rent", linked_source_id="salary", allocation_amount=15000),
        ],
        incomes=[
            Income(id="i0", source_id="salary", amount=1000, date=datetime(2024, 2, 20)),
            Income(id="i1", source_id="salary", amount=60000, date=datetime(2024, 3, 5)),
        ],
        expenses=[
            Expense(id="e0", category_id="food", amount=400, date=datetime(2024, 2, 21)),
            Expense(id="e1", category_id="rent", amount=15001, date=datetime(2024, 3, 1)),
            Expense(id="e2", category_id="food", amount=3000, date=datetime(2024, 3, 12)),
            Expense(id="e3", category_id="deleted", amount=99, date=datetime(2024, 3, 13)),
            Expense(id="e4", category_id="food", amount=777, date=datetime(2024, 4, 1)),
        ],
    )


class FlakyStorage(InMemoryBudgetStorage):
    """Fails the first N source listings with the given error."""

    def __init__(self, snapshot, failures, error=StorageConnectionError):
        super().__init__(snapshot)
        self.failures = failures
        self.error = error
        self.calls = 0

    async def list_income_sources(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("backend unavailable")
        return await super().list_income_sources()


class UnreadableCategoriesStorage(InMemoryBudgetStorage):
    """Category listing always fails."""

    async def list_categories(self):
        raise StorageError("categories file is locked")


def make_flow(storage):
    audit_storage = InMemoryAuditStorage()
    flow = BudgetDashboardFlow(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        settings=NO_WAIT,
    )
    return flow, audit_storage


class TestLoadPeriod:
    """Tests for fetching one month."""

    def test_windows_and_normalization(self):
        """Test period records, prior history and legacy folding."""
        flow, _ = make_flow(InMemoryBudgetStorage(make_snapshot()))
        data = asyncio.run(flow.load_period(date(2024, 3, 15)))

        assert data.period.month_key == "2024-03"
        assert [i.id for i in data.incomes] == ["i1"]
        assert [e.id for e in data.expenses] == ["e1", "e2", "e3"]
        assert [i.id for i in data.incomes_before] == ["i0"]
        assert [e.id for e in data.expenses_before] == ["e0"]
        assert data.normalized_category_ids == ["rent"]
        assert all(not c.is_legacy for c in data.categories)
        assert data.counts["expenses"] == 3


class TestComputeDashboard:
    """Tests for the dashboard flow."""

    def test_dashboard_figures(self):
        """Test figures for March with prior history."""
        flow, _ = make_flow(InMemoryBudgetStorage(make_snapshot()))
        report = asyncio.run(flow.compute_dashboard(datetime(2024, 3, 31, 12)))

        assert report.budget_for("food").allocated == Decimal("12000")
        assert report.budget_for("rent").remaining == Decimal("-1")
        assert report.summary_for("salary").total_allocated == Decimal("27000")
        assert report.summary_for("salary").remaining == Decimal("33000")
        assert report.balance.carry_over == Decimal("600")
        assert report.balance.total_expenses == Decimal("18100")
        assert report.balance.total_balance == Decimal("42500")

    def test_dangling_references_are_reported(self):
        """Test expenses of deleted categories count in totals and are listed."""
        flow, _ = make_flow(InMemoryBudgetStorage(make_snapshot()))
        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert [issue.field for issue in report.issues] == ["expense:e3.category_id"]

    def test_audit_trail(self):
        """Test events share one correlation id, in order."""
        flow, audit_storage = make_flow(InMemoryBudgetStorage(make_snapshot()))
        correlation_id = uuid4()
        asyncio.run(flow.compute_dashboard(date(2024, 3, 1), correlation_id=correlation_id))

        events = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [
            AuditEventType.SNAPSHOT_LOADED,
            AuditEventType.CATEGORIES_NORMALIZED,
            AuditEventType.DANGLING_REFERENCE,
            AuditEventType.DASHBOARD_COMPUTED,
        ]
        assert events[1].details["category_ids"] == ["rent"]
        assert events[-1].details["total_balance"] == "42500"

    def test_invalid_categories_are_audited(self):
        """Test a category without allocations still computes and is logged."""
        storage = InMemoryBudgetStorage(make_snapshot())
        storage.add_category(Category(id="misc", name="Misc"))
        flow, audit_storage = make_flow(storage)

        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert report.budget_for("misc").allocated == 0
        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.SNAPSHOT_LOADED,
            AuditEventType.CATEGORIES_NORMALIZED,
            AuditEventType.VALIDATION_FAILED,
            AuditEventType.DANGLING_REFERENCE,
            AuditEventType.DASHBOARD_COMPUTED,
        ]
        failed = audit_storage.events[2]
        assert failed.entity_id == "misc"
        assert [issue["field"] for issue in failed.details["issues"]] == ["allocations"]

    def test_recomputes_on_every_call(self):
        """Test new records show up without any cache."""
        storage = InMemoryBudgetStorage(make_snapshot())
        flow, _ = make_flow(storage)
        before = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        storage.add_expense(Expense(id="e9", category_id="food", amount=1, date=datetime(2024, 3, 20)))
        after = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert after.balance.total_expenses - before.balance.total_expenses == Decimal("1")

    def test_empty_storage(self):
        """Test a month with no data at all."""
        flow, _ = make_flow(InMemoryBudgetStorage())
        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert report.category_budgets == []
        assert report.source_summaries == []
        assert report.balance.total_balance == 0


class TestRetries:
    """Tests for transient fetch failures."""

    def test_transient_failure_is_retried(self):
        """Test a connection error followed by success."""
        storage = FlakyStorage(make_snapshot(), failures=2)
        flow, _ = make_flow(storage)
        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert storage.calls == 3
        assert report.budget_for("food").allocated == Decimal("12000")

    def test_persistent_failure_is_raised_and_audited(self):
        """Test retries give up and the failure is logged."""
        storage = FlakyStorage(make_snapshot(), failures=10)
        flow, audit_storage = make_flow(storage)

        with pytest.raises(StorageConnectionError):
            asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert storage.calls == NO_WAIT.fetch_retry_attempts
        [fetch_failed, storage_error] = audit_storage.events
        assert fetch_failed.event_type == AuditEventType.SNAPSHOT_FETCH_FAILED
        assert fetch_failed.entity_id == "2024-03"
        assert storage_error.event_type == AuditEventType.STORAGE_ERROR
        assert storage_error.details["backend"] == "FlakyStorage"
        assert storage_error.correlation_id == fetch_failed.correlation_id

    def test_other_storage_errors_are_not_retried(self):
        """Test only connection errors are retried."""
        storage = FlakyStorage(make_snapshot(), failures=1, error=StorageError)
        flow, _ = make_flow(storage)

        with pytest.raises(StorageError):
            asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))
        assert storage.calls == 1

    def test_unexpected_errors_are_audited_as_system_errors(self):
        """Test non-storage failures propagate without retry and are logged."""
        storage = FlakyStorage(make_snapshot(), failures=1, error=RuntimeError)
        flow, audit_storage = make_flow(storage)

        with pytest.raises(RuntimeError):
            asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert storage.calls == 1
        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.SNAPSHOT_FETCH_FAILED,
            AuditEventType.SYSTEM_ERROR,
        ]
        assert audit_storage.events[-1].details["month"] == "2024-03"


class TestComputeReport:
    """Tests for the monthly report flow."""

    def test_report(self):
        """Test monthly analytics and audit."""
        flow, audit_storage = make_flow(InMemoryBudgetStorage(make_snapshot()))
        report = asyncio.run(flow.compute_report(date(2024, 3, 1)))

        assert report.total_income == Decimal("60000")
        assert report.total_expenses == Decimal("18100")
        assert report.savings == Decimal("41900")
        assert [s.name for s in report.category_breakdown] == ["Rent", "Food", "Uncategorized"]
        assert audit_storage.events[-1].event_type == AuditEventType.REPORT_GENERATED

    def test_report_fetch_failure_is_audited(self):
        """Test a failed report fetch records the storage error."""
        flow, audit_storage = make_flow(UnreadableCategoriesStorage(make_snapshot()))

        with pytest.raises(StorageError):
            asyncio.run(flow.compute_report(date(2024, 3, 1)))

        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.SNAPSHOT_FETCH_FAILED,
            AuditEventType.STORAGE_ERROR,
        ]


class TestFactory:
    """Tests for create_dashboard_flow."""

    def test_uses_configured_snapshot(self, tmp_path, monkeypatch):
        """Test the JSON snapshot path comes from settings."""
        path = tmp_path / "snapshot.json"
        JsonFileBudgetStorage(path).save_snapshot(make_snapshot())
        monkeypatch.setenv("CRYSTALBUDGET_STORAGE_SNAPSHOT_PATH", str(path))

        flow = create_dashboard_flow()
        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))

        assert report.budget_for("food").allocated == Decimal("12000")

    def test_explicit_storage(self):
        """Test a given storage is used as is."""
        flow = create_dashboard_flow(storage=InMemoryBudgetStorage())
        report = asyncio.run(flow.compute_dashboard(date(2024, 3, 1)))
        assert report.category_budgets == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
