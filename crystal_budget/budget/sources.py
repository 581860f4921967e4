"""
Source Summary Aggregator

For one income source: how much came in, how much was allocated away to
categories, how much those categories spent, and whether the source is
over-committed.

CRITICAL: Expected income is used ONLY when nothing has actually been
received from the source this period. Any non-zero actual income fully
replaces the expected figure (no blending).

Remaining/debt compare income against ALLOCATED budget, not against
spending. A source can show remaining money while its categories are
overspent, and the other way round.
"""

from collections.abc import Iterable
from decimal import Decimal

from crystal_budget.budget.allocation import source_allocation
from crystal_budget.models.budget import (
    ZERO,
    Category,
    Expense,
    Income,
    IncomeSource,
    SourceSummary,
    finite_or_zero,
)


def actual_income(source_id: str, incomes: Iterable[Income]) -> Decimal:
    """Sum of recorded incomes for one source."""
    return sum(
        (finite_or_zero(inc.amount) for inc in incomes if inc.source_id == source_id),
        ZERO,
    )


def effective_income(source: IncomeSource, incomes: Iterable[Income]) -> Decimal:
    """Actual income if any was received, else the expected amount (or 0)."""
    actual = actual_income(source.id, incomes)
    if actual > 0:
        return actual
    return finite_or_zero(source.amount)


def build_source_figures(
    sources: Iterable[IncomeSource],
    period_incomes: Iterable[Income],
) -> dict[str, Decimal]:
    """Map every source id to its effective income for the period."""
    incomes = list(period_incomes)
    return {source.id: effective_income(source, incomes) for source in sources}


def summarize_source(
    source: IncomeSource,
    source_incomes: Iterable[Income],
    categories: Iterable[Category],
    period_expenses: Iterable[Expense],
) -> SourceSummary:
    """
    Summarize one income source for a period.

    Args:
        source: The income source
        source_incomes: Its incomes in the period (other sources' records are ignored)
        categories: All categories (their rules decide what is allocated from the source)
        period_expenses: All expenses in the period

    Returns:
        SourceSummary with total_income, total_spent, remaining and debt
    """
    categories = list(categories)
    figure = effective_income(source, source_incomes)
    figures = {source.id: figure}

    total_allocated = sum(
        (source_allocation(category, source.id, figures) for category in categories),
        ZERO,
    )

    linked_category_ids = {
        category.id for category in categories if category.is_linked_to(source.id)
    }
    total_spent = sum(
        (
            finite_or_zero(exp.amount)
            for exp in period_expenses
            if exp.category_id in linked_category_ids
        ),
        ZERO,
    )

    balance = figure - total_allocated
    if balance < 0:
        remaining, debt = ZERO, -balance
    else:
        remaining, debt = balance, ZERO

    return SourceSummary(
        source_id=source.id,
        total_income=figure,
        total_allocated=total_allocated,
        total_spent=total_spent,
        remaining=remaining,
        debt=debt,
    )


def summarize_sources(
    sources: Iterable[IncomeSource],
    period_incomes: Iterable[Income],
    categories: Iterable[Category],
    period_expenses: Iterable[Expense],
) -> list[SourceSummary]:
    """Summaries for every source, in input order."""
    incomes = list(period_incomes)
    categories = list(categories)
    expenses = list(period_expenses)
    return [
        summarize_source(source, incomes, categories, expenses)
        for source in sources
    ]
