"""
Dashboard composition.

Runs the four computations over one month's already-fetched records in
dependency order: source figures, category budgets and source summaries,
carry-over, period balance.
"""

from collections.abc import Iterable

from crystal_budget.budget.balance import compute_category_budgets, compute_period_balance
from crystal_budget.budget.carry_over import compute_carry_over
from crystal_budget.budget.sources import build_source_figures, summarize_sources
from crystal_budget.models.budget import (
    Category,
    Expense,
    Income,
    IncomeSource,
    Period,
)
from crystal_budget.models.report import DashboardReport


def build_dashboard(
    period: Period,
    income_sources: Iterable[IncomeSource],
    categories: Iterable[Category],
    period_incomes: Iterable[Income],
    period_expenses: Iterable[Expense],
    incomes_before: Iterable[Income],
    expenses_before: Iterable[Expense],
) -> DashboardReport:
    """
    All dashboard figures for one month.

    `period_*` records must already be windowed to the period and
    `*_before` records to everything before its start.
    """
    sources = list(income_sources)
    categories = list(categories)
    incomes = list(period_incomes)
    expenses = list(period_expenses)

    figures = build_source_figures(sources, incomes)
    carry_over = compute_carry_over(incomes_before, expenses_before)

    return DashboardReport(
        period=period,
        balance=compute_period_balance(incomes, expenses, carry_over),
        source_summaries=summarize_sources(sources, incomes, categories, expenses),
        category_budgets=compute_category_budgets(categories, figures, expenses),
    )
