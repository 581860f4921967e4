"""
Budget computation core.

Pure, synchronous functions over in-memory snapshots. Nothing in this
package performs I/O, reads the clock, logs or raises on bad data.
"""

from crystal_budget.budget.allocation import (
    allocation_contribution,
    normalize_categories,
    normalize_category,
    resolve_category_allocation,
    source_allocation,
)
from crystal_budget.budget.balance import (
    classify_budget,
    compute_category_budget,
    compute_category_budgets,
    compute_period_balance,
    total_amount,
    usage_percent,
)
from crystal_budget.budget.carry_over import (
    compute_carry_over,
    compute_carry_over_at,
    records_before,
)
from crystal_budget.budget.dashboard import build_dashboard
from crystal_budget.budget.sources import (
    actual_income,
    build_source_figures,
    effective_income,
    summarize_source,
    summarize_sources,
)

__all__ = [
    "actual_income",
    "allocation_contribution",
    "build_dashboard",
    "build_source_figures",
    "classify_budget",
    "compute_carry_over",
    "compute_carry_over_at",
    "compute_category_budget",
    "compute_category_budgets",
    "compute_period_balance",
    "effective_income",
    "normalize_categories",
    "normalize_category",
    "records_before",
    "resolve_category_allocation",
    "source_allocation",
    "summarize_source",
    "summarize_sources",
    "total_amount",
    "usage_percent",
]
