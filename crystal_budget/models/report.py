"""
Report Models

What the dashboard and the monthly report hand to the presentation layer.
Everything is computed from one fetched snapshot; nothing here is stored.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crystal_budget.models.budget import (
    CategoryBudget,
    Period,
    PeriodBalance,
    SourceSummary,
    ValidationIssue,
)


class DashboardReport(BaseModel):
    """
    Everything the dashboard shows for one month.

    `issues` lists references to deleted records that were counted as zero.
    """
    model_config = ConfigDict(frozen=True)

    period: Period
    balance: PeriodBalance
    source_summaries: list[SourceSummary] = Field(default_factory=list)
    category_budgets: list[CategoryBudget] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)

    def budget_for(self, category_id: str) -> Optional[CategoryBudget]:
        return next(
            (b for b in self.category_budgets if b.category_id == category_id),
            None,
        )

    def summary_for(self, source_id: str) -> Optional[SourceSummary]:
        return next(
            (s for s in self.source_summaries if s.source_id == source_id),
            None,
        )


class CategoryBreakdown(BaseModel):
    """One slice of the expenses-by-category chart."""
    model_config = ConfigDict(frozen=True)

    name: str
    icon: str
    amount: Decimal
    color: str


class DailyExpense(BaseModel):
    """Total spent on one day."""
    model_config = ConfigDict(frozen=True)

    day: date
    amount: Decimal


class MonthlyReport(BaseModel):
    """Income/expense analytics for one month."""
    model_config = ConfigDict(frozen=True)

    period: Period
    total_income: Decimal
    total_expenses: Decimal
    savings: Decimal = Field(..., description="Income minus expenses")
    savings_rate: Decimal = Field(
        ...,
        description="Savings as a percentage of income, 0 without income"
    )
    average_daily_expense: Decimal = Field(
        ...,
        description="Expenses divided by the number of days in the month"
    )
    category_breakdown: list[CategoryBreakdown] = Field(default_factory=list)
    daily_expenses: list[DailyExpense] = Field(default_factory=list)
