"""
Carry-Over Accumulator

The balance rolling into a month from everything that happened before it.

DESIGN DECISION: This is a full recompute over all history on every call.
No running ledger is kept, so there is nothing that can drift.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from crystal_budget.budget.balance import total_amount
from crystal_budget.models.budget import Expense, Income, align_moment

T = TypeVar("T", Income, Expense)


def records_before(records: Iterable[T], boundary: datetime) -> list[T]:
    """Records dated strictly before `boundary`, with no lower bound."""
    return [
        record for record in records
        if align_moment(record.date, boundary) < boundary
    ]


def compute_carry_over(
    incomes_before: Iterable[Income],
    expenses_before: Iterable[Expense],
) -> Decimal:
    """
    All prior income minus all prior expenses.

    May be negative (a carried-forward deficit). Empty history gives 0.
    """
    return total_amount(incomes_before) - total_amount(expenses_before)


def compute_carry_over_at(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    boundary: datetime,
) -> Decimal:
    """Carry-over into the period starting at `boundary`, from unfiltered history."""
    return compute_carry_over(
        records_before(incomes, boundary),
        records_before(expenses, boundary),
    )
