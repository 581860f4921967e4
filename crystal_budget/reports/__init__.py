"""Reporting package."""

from crystal_budget.reports.builder import (
    BudgetFilter,
    BudgetSort,
    build_monthly_report,
    category_breakdown,
    daily_expenses,
    filter_category_budgets,
    format_amount,
    sort_category_budgets,
)

__all__ = [
    "BudgetFilter",
    "BudgetSort",
    "build_monthly_report",
    "category_breakdown",
    "daily_expenses",
    "filter_category_budgets",
    "format_amount",
    "sort_category_budgets",
]
