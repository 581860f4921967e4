"""
Report Builder

DESIGN DECISION: Reports are DETERMINISTIC aggregations of an already
fetched snapshot. They never fetch and never read the clock; the period
is always passed in.

Also holds the dashboard's category filters/sorts and amount formatting,
which are presentation helpers over the core's figures.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from crystal_budget.budget.balance import ATTENTION_THRESHOLD, total_amount
from crystal_budget.config import get_settings
from crystal_budget.models.budget import (
    HUNDRED,
    ZERO,
    Category,
    CategoryBudget,
    Expense,
    Income,
    Period,
    finite_or_zero,
)
from crystal_budget.models.report import (
    CategoryBreakdown,
    DailyExpense,
    MonthlyReport,
)


UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_ICON = "📦"

CHART_COLORS = [
    "#8b5cf6", "#ec4899", "#f59e0b", "#10b981",
    "#3b82f6", "#ef4444", "#06b6d4", "#84cc16",
]

CURRENCY_SYMBOLS = {
    "RUB": "₽",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "KRW": "₩",
    "GEL": "₾",
    "AMD": "֏",
}
DEFAULT_SYMBOL = "₽"


class BudgetFilter(str, Enum):
    """Which category budgets the dashboard shows."""
    ALL = "all"
    ATTENTION = "attention"  # Above 70% used, not yet over
    EXCEEDED = "exceeded"    # Over budget


class BudgetSort(str, Enum):
    NAME = "name"            # Ascending
    SPENT = "spent"          # Largest first
    REMAINING = "remaining"  # Largest first


def filter_category_budgets(
    budgets: Iterable[CategoryBudget],
    mode: BudgetFilter = BudgetFilter.ALL,
) -> list[CategoryBudget]:
    mode = BudgetFilter(mode)
    if mode == BudgetFilter.ATTENTION:
        return [
            b for b in budgets
            if b.usage_percent > ATTENTION_THRESHOLD and not b.is_over_budget
        ]
    if mode == BudgetFilter.EXCEEDED:
        return [b for b in budgets if b.is_over_budget]
    return list(budgets)


def sort_category_budgets(
    budgets: Iterable[CategoryBudget],
    categories: Iterable[Category],
    key: BudgetSort = BudgetSort.NAME,
) -> list[CategoryBudget]:
    """
    Order category budgets for display.

    Budgets whose category is unknown sort by an empty name.
    """
    key = BudgetSort(key)
    if key == BudgetSort.SPENT:
        return sorted(budgets, key=lambda b: b.spent, reverse=True)
    if key == BudgetSort.REMAINING:
        return sorted(budgets, key=lambda b: b.remaining, reverse=True)

    names = {category.id: category.name for category in categories}
    return sorted(budgets, key=lambda b: names.get(b.category_id, "").casefold())


def category_breakdown(
    expenses: Iterable[Expense],
    categories: Iterable[Category],
) -> list[CategoryBreakdown]:
    """
    Expenses grouped by category name, largest first.

    Expenses of unknown categories are grouped as uncategorized.
    """
    by_id = {category.id: category for category in categories}
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    icons: dict[str, str] = {}

    for exp in expenses:
        category = by_id.get(exp.category_id)
        name = category.name if category else UNCATEGORIZED_NAME
        icons.setdefault(name, category.icon if category else UNCATEGORIZED_ICON)
        totals[name] += finite_or_zero(exp.amount)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryBreakdown(
            name=name,
            icon=icons[name],
            amount=amount,
            color=CHART_COLORS[index % len(CHART_COLORS)],
        )
        for index, (name, amount) in enumerate(ranked)
    ]


def daily_expenses(expenses: Iterable[Expense]) -> list[DailyExpense]:
    """Expenses summed per calendar day, in day order."""
    totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for exp in expenses:
        totals[exp.date.date()] += finite_or_zero(exp.amount)
    return [
        DailyExpense(day=day, amount=amount)
        for day, amount in sorted(totals.items())
    ]


def build_monthly_report(
    period: Period,
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    categories: Iterable[Category],
) -> MonthlyReport:
    """
    Income/expense analytics for one month.

    Records outside the period are ignored, so the caller may pass a
    wider history.
    """
    incomes = [inc for inc in incomes if period.contains(inc.date)]
    expenses = [exp for exp in expenses if period.contains(exp.date)]

    total_income = total_amount(incomes)
    total_expenses = total_amount(expenses)
    savings = total_income - total_expenses
    savings_rate = savings / total_income * HUNDRED if total_income > 0 else ZERO

    return MonthlyReport(
        period=period,
        total_income=total_income,
        total_expenses=total_expenses,
        savings=savings,
        savings_rate=savings_rate,
        average_daily_expense=total_expenses / period.days,
        category_breakdown=category_breakdown(expenses, categories),
        daily_expenses=daily_expenses(expenses),
    )


def format_amount(amount: Decimal, currency: Optional[str] = None) -> str:
    """
    Format an amount for display: "1 234,5 ₽".

    Rounded to two decimals, thousands separated by spaces, decimal comma,
    trailing fractional zeros dropped. Without a currency the configured
    default_currency is used; unknown currencies use ₽.
    """
    if currency is None:
        currency = get_settings().app.default_currency
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), DEFAULT_SYMBOL)
    value = finite_or_zero(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    grouped = f"{int(whole):,}".replace(",", " ")
    fraction = fraction.rstrip("0")

    text = f"{sign}{grouped},{fraction}" if fraction else f"{sign}{grouped}"
    return f"{text} {symbol}"
