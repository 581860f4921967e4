"""
Main Orchestrator for CrystalBudget

This module ties the data-access boundary to the pure budget core and
defines the two end-to-end flows:
1. Dashboard (fetch month + history -> normalize -> compute -> audit)
2. Monthly report (fetch month -> aggregate -> audit)

DESIGN DECISION: The orchestrator owns everything impure:
- Fetches, with retries on transient storage failures
- Legacy category normalization at load time
- Audit logging

The core functions it calls stay pure. Every call recomputes from freshly
fetched records; nothing is cached between calls.
"""

from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crystal_budget.audit import AuditLogger, configure_logging, create_correlation_id
from crystal_budget.budget import build_dashboard, normalize_categories
from crystal_budget.config import StorageSettings, get_settings
from crystal_budget.models.budget import (
    BudgetSnapshot,
    Category,
    Expense,
    Income,
    IncomeSource,
    Period,
)
from crystal_budget.models.report import DashboardReport, MonthlyReport
from crystal_budget.reports import build_monthly_report
from crystal_budget.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    JsonFileBudgetStorage,
    StorageConnectionError,
    StorageError,
)
from crystal_budget.validation import BudgetValidator

T = TypeVar("T")


class PeriodData(BaseModel):
    """Everything fetched for one month, categories already normalized."""
    model_config = ConfigDict(frozen=True)

    period: Period
    income_sources: list[IncomeSource] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    incomes_before: list[Income] = Field(default_factory=list)
    expenses_before: list[Expense] = Field(default_factory=list)
    normalized_category_ids: list[str] = Field(
        default_factory=list,
        description="Legacy categories converted to allocation rules on load"
    )

    @property
    def counts(self) -> dict[str, int]:
        return {
            "income_sources": len(self.income_sources),
            "categories": len(self.categories),
            "incomes": len(self.incomes),
            "expenses": len(self.expenses),
            "incomes_before": len(self.incomes_before),
            "expenses_before": len(self.expenses_before),
        }


class BudgetDashboardFlow:
    """
    Orchestrates the dashboard and report computations.

    Flow:
    1. Resolve the month from an explicit selected date
    2. Fetch sources, categories, the month's records and prior history
    3. Normalize legacy categories
    4. Compute with the pure core
    5. Audit what was loaded, what was degraded, what was computed
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[BudgetValidator] = None,
        settings: Optional[StorageSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._validator = validator or BudgetValidator()
        self._settings = settings or get_settings().storage

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._settings.fetch_retry_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.fetch_retry_wait_min,
                max=self._settings.fetch_retry_wait_max,
            ),
            retry=retry_if_exception_type(StorageConnectionError),
            reraise=True,
        )

    async def _fetch(self, fetch: Callable[[], Awaitable[T]]) -> T:
        """Run one storage call, retrying transient connection failures."""
        async for attempt in self._retrying():
            with attempt:
                result = await fetch()
        return result

    async def _audit_fetch_failure(
        self,
        month: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        """Record a failed fetch, then what kind of failure it was."""
        if not self._audit_logger:
            return

        await self._audit_logger.log_snapshot_fetch_failed(
            month=month,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        if isinstance(error, StorageError):
            await self._audit_logger.log_storage_error(
                backend=type(self._storage).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"month": month},
                correlation_id=correlation_id,
            )

    async def _audit_invalid_categories(
        self,
        data: PeriodData,
        correlation_id: UUID,
    ) -> None:
        """Categories the entry forms would reject still compute; log them."""
        for category in data.categories:
            result = self._validator.validate_category(category, data.income_sources)
            if result.has_errors:
                await self._audit_logger.log_validation_failed(
                    entity_type=result.entity_type,
                    entity_id=result.entity_id,
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )

    async def load_period(
        self,
        selected_date: Union[date, datetime],
    ) -> PeriodData:
        """
        Fetch everything needed for the month containing `selected_date`.

        Raises:
            StorageError: If a fetch still fails after retries
        """
        period = Period.containing(selected_date)
        storage = self._storage

        sources = await self._fetch(storage.list_income_sources)
        raw_categories = await self._fetch(storage.list_categories)
        incomes = await self._fetch(
            lambda: storage.list_incomes(date_from=period.start, date_before=period.end)
        )
        expenses = await self._fetch(
            lambda: storage.list_expenses(date_from=period.start, date_before=period.end)
        )
        incomes_before = await self._fetch(
            lambda: storage.list_incomes(date_before=period.start)
        )
        expenses_before = await self._fetch(
            lambda: storage.list_expenses(date_before=period.start)
        )

        return PeriodData(
            period=period,
            income_sources=sources,
            categories=normalize_categories(raw_categories),
            incomes=incomes,
            expenses=expenses,
            incomes_before=incomes_before,
            expenses_before=expenses_before,
            normalized_category_ids=[c.id for c in raw_categories if c.is_legacy],
        )

    async def compute_dashboard(
        self,
        selected_date: Union[date, datetime],
        correlation_id: Optional[UUID] = None,
    ) -> DashboardReport:
        """
        Compute every dashboard figure for the selected month.

        Returns:
            DashboardReport, with references to deleted records listed in
            `issues` (they were counted as zero)

        Raises:
            StorageError: If the data could not be fetched
        """
        correlation_id = correlation_id or create_correlation_id()
        month = Period.containing(selected_date).month_key

        try:
            data = await self.load_period(selected_date)
        except Exception as e:
            await self._audit_fetch_failure(month, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_snapshot_loaded(
                month=month,
                counts=data.counts,
                correlation_id=correlation_id,
            )
            if data.normalized_category_ids:
                await self._audit_logger.log_categories_normalized(
                    category_ids=data.normalized_category_ids,
                    correlation_id=correlation_id,
                )
            await self._audit_invalid_categories(data, correlation_id)

        issues = self._validator.find_dangling_references(BudgetSnapshot(
            income_sources=data.income_sources,
            categories=data.categories,
            incomes=data.incomes,
            expenses=data.expenses,
        ))

        report = build_dashboard(
            period=data.period,
            income_sources=data.income_sources,
            categories=data.categories,
            period_incomes=data.incomes,
            period_expenses=data.expenses,
            incomes_before=data.incomes_before,
            expenses_before=data.expenses_before,
        ).model_copy(update={"issues": issues})

        if self._audit_logger:
            for issue in issues:
                await self._audit_logger.log_dangling_reference(
                    field=issue.field,
                    message=issue.message,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_dashboard_computed(
                month=month,
                figures={
                    "month_balance": str(report.balance.month_balance),
                    "total_expenses": str(report.balance.total_expenses),
                    "total_balance": str(report.balance.total_balance),
                    "carry_over": str(report.balance.carry_over),
                },
                correlation_id=correlation_id,
            )

        return report

    async def compute_report(
        self,
        selected_date: Union[date, datetime],
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyReport:
        """
        Income/expense analytics for the selected month.

        Raises:
            StorageError: If the data could not be fetched
        """
        correlation_id = correlation_id or create_correlation_id()
        period = Period.containing(selected_date)
        storage = self._storage

        try:
            categories = await self._fetch(storage.list_categories)
            incomes = await self._fetch(
                lambda: storage.list_incomes(date_from=period.start, date_before=period.end)
            )
            expenses = await self._fetch(
                lambda: storage.list_expenses(date_from=period.start, date_before=period.end)
            )
        except Exception as e:
            await self._audit_fetch_failure(period.month_key, e, correlation_id)
            raise

        report = build_monthly_report(period, incomes, expenses, categories)

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                month=period.month_key,
                figures={
                    "total_income": str(report.total_income),
                    "total_expenses": str(report.total_expenses),
                    "savings": str(report.savings),
                },
                correlation_id=correlation_id,
            )

        return report


def create_dashboard_flow(
    storage: Optional[BudgetStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> BudgetDashboardFlow:
    """
    Factory function to create the dashboard flow.

    Without an explicit storage, the local JSON snapshot configured in
    settings is used. Applies the configured log level.
    """
    settings = get_settings()
    configure_logging(settings.app)

    if storage is None:
        storage = JsonFileBudgetStorage(settings.storage.snapshot_path)

    return BudgetDashboardFlow(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        settings=settings.storage,
    )
