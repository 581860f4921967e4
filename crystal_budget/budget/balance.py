"""
Period Balance Calculator

Headline month figures plus per-category budgets.

NOTE: Two different "remaining" conventions exist in this package.
Category remaining (here) is allocated - spent and may go negative.
Source remaining (sources.py) is clamped at zero with the overflow
reported as debt. Do not mix them up.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Union

from crystal_budget.budget.allocation import resolve_category_allocation
from crystal_budget.models.budget import (
    HUNDRED,
    ZERO,
    BudgetStatus,
    Category,
    CategoryBudget,
    Expense,
    Income,
    PeriodBalance,
    finite_or_zero,
)


# Usage bands, in percent of the allocated budget (strictly greater than)
CRITICAL_THRESHOLD = Decimal("90")
ATTENTION_THRESHOLD = Decimal("70")
NORMAL_THRESHOLD = Decimal("50")


def total_amount(records: Iterable[Union[Income, Expense]]) -> Decimal:
    return sum((finite_or_zero(record.amount) for record in records), ZERO)


def usage_percent(spent: Decimal, allocated: Decimal) -> Decimal:
    """spent / allocated as a percentage; 0 when nothing is allocated."""
    if allocated > 0:
        return finite_or_zero(spent) / allocated * HUNDRED
    return ZERO


def classify_budget(spent: Decimal, allocated: Decimal) -> BudgetStatus:
    """Display band for a category budget."""
    if spent > allocated:
        return BudgetStatus.OVER_BUDGET

    used = usage_percent(spent, allocated)
    if used > CRITICAL_THRESHOLD:
        return BudgetStatus.CRITICAL
    if used > ATTENTION_THRESHOLD:
        return BudgetStatus.ATTENTION
    if used > NORMAL_THRESHOLD:
        return BudgetStatus.NORMAL
    return BudgetStatus.GOOD


def compute_category_budget(
    category: Category,
    source_figures: Mapping[str, Decimal],
    category_expenses: Iterable[Expense],
) -> CategoryBudget:
    """
    Budget figures for one category.

    Expenses belonging to other categories are ignored, so the caller may
    pass the whole period's expenses.
    """
    allocated = resolve_category_allocation(category, source_figures)
    spent = total_amount(
        exp for exp in category_expenses if exp.category_id == category.id
    )

    return CategoryBudget(
        category_id=category.id,
        allocated=allocated,
        spent=spent,
        remaining=allocated - spent,
        usage_percent=usage_percent(spent, allocated),
        status=classify_budget(spent, allocated),
    )


def compute_category_budgets(
    categories: Iterable[Category],
    source_figures: Mapping[str, Decimal],
    period_expenses: Iterable[Expense],
) -> list[CategoryBudget]:
    expenses = list(period_expenses)
    return [
        compute_category_budget(category, source_figures, expenses)
        for category in categories
    ]


def compute_period_balance(
    period_incomes: Iterable[Income],
    period_expenses: Iterable[Expense],
    carry_over: Decimal,
) -> PeriodBalance:
    """
    Month balance, total expenses and total balance for a period.

    Totals cover every record, whether or not it is allocated anywhere.
    """
    income = total_amount(period_incomes)
    expenses = total_amount(period_expenses)
    carry_over = finite_or_zero(carry_over)

    return PeriodBalance(
        month_balance=income - expenses,
        total_expenses=expenses,
        total_balance=income + carry_over - expenses,
        current_month_income=income,
        carry_over=carry_over,
    )
