"""
Allocation Resolver

Turns a category's allocation rules into a single allocated figure for a
period.

Each rule is either a fixed amount or a percentage of one income source's
EFFECTIVE income (actual income if any was received this period, else the
source's expected amount; see sources.effective_income).

DESIGN DECISION: Legacy single-link categories are normalized into the
same rule list (Category.resolved_allocations). The resolver itself has a
single code path. A category that has a rule list AND legacy fields uses
only the rule list.

Nothing here raises: a rule pointing at an unknown source contributes 0.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from crystal_budget.models.budget import (
    HUNDRED,
    ZERO,
    Allocation,
    AllocationType,
    Category,
    finite_or_zero,
)


def allocation_contribution(
    allocation: Allocation,
    source_figures: Mapping[str, Decimal],
) -> Decimal:
    """Budget produced by one rule."""
    value = finite_or_zero(allocation.allocation_value)

    if allocation.allocation_type == AllocationType.AMOUNT:
        return value

    if allocation.allocation_type == AllocationType.PERCENT:
        if allocation.income_source_id is None:
            return ZERO
        figure = finite_or_zero(source_figures.get(allocation.income_source_id))
        return figure * value / HUNDRED

    return ZERO


def resolve_category_allocation(
    category: Category,
    source_figures: Mapping[str, Decimal],
) -> Decimal:
    """
    Total allocated budget for a category.

    Args:
        category: Category with its rules (or legacy fields)
        source_figures: source id -> effective income for the period

    Returns:
        Sum of every rule's contribution. Order of rules does not matter.
    """
    return sum(
        (
            allocation_contribution(alloc, source_figures)
            for alloc in category.resolved_allocations
        ),
        ZERO,
    )


def source_allocation(
    category: Category,
    source_id: str,
    source_figures: Mapping[str, Decimal],
) -> Decimal:
    """Portion of a category's budget drawn from one source."""
    return sum(
        (
            allocation_contribution(alloc, source_figures)
            for alloc in category.resolved_allocations
            if alloc.income_source_id == source_id
        ),
        ZERO,
    )


def normalize_category(category: Category) -> Category:
    """
    Return the category with legacy fields folded into its rule list.

    Run once where data is loaded. Categories already using the rule list
    just lose their (ignored) legacy fields.
    """
    if not category.allocations and not category.is_legacy:
        return category

    return category.model_copy(update={
        "allocations": category.resolved_allocations,
        "linked_source_id": None,
        "allocation_amount": None,
        "allocation_percent": None,
    })


def normalize_categories(categories: Iterable[Category]) -> list[Category]:
    return [normalize_category(category) for category in categories]
