"""Record validation package."""

from crystal_budget.validation.validator import BudgetValidator, parse_amount_input

__all__ = ["BudgetValidator", "parse_amount_input"]
