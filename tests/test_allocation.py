"""
Tests for the allocation resolver.

Covers rule contributions, legacy precedence and normalization.
"""

import pytest
from decimal import Decimal

from crystal_budget.budget import (
    allocation_contribution,
    normalize_categories,
    normalize_category,
    resolve_category_allocation,
    source_allocation,
)
from crystal_budget.models.budget import Allocation, AllocationType, Category


def amount_rule(source_id, value):
    return Allocation(
        income_source_id=source_id,
        allocation_type=AllocationType.AMOUNT,
        allocation_value=value,
    )


def percent_rule(source_id, value):
    return Allocation(
        income_source_id=source_id,
        allocation_type=AllocationType.PERCENT,
        allocation_value=value,
    )


class TestAllocationContribution:
    """Tests for a single rule's contribution."""

    def test_amount_rule_is_its_value(self):
        """Test fixed amounts ignore the source figure."""
        assert allocation_contribution(amount_rule("a", 500), {}) == Decimal("500")

    def test_percent_rule_uses_source_figure(self):
        """Test percent of the source's effective income."""
        figures = {"salary": Decimal("60000")}
        assert allocation_contribution(percent_rule("salary", 20), figures) == Decimal("12000")

    def test_percent_rule_of_unknown_source_is_zero(self):
        """Test a dangling percent rule contributes nothing."""
        assert allocation_contribution(percent_rule("gone", 50), {"salary": Decimal("100")}) == 0

    def test_percent_rule_without_source_is_zero(self):
        """Test a percent rule with no source contributes nothing."""
        assert allocation_contribution(percent_rule(None, 50), {}) == 0

    def test_percent_above_hundred_is_not_clamped(self):
        """Test percentages are taken as given."""
        figures = {"salary": Decimal("1000")}
        assert allocation_contribution(percent_rule("salary", 150), figures) == Decimal("1500")


class TestResolveCategoryAllocation:
    """Tests for the per-category allocated figure."""

    def test_scenario_percent_of_actual_income(self):
        """Test Food gets 20% of the 60000 actually received."""
        food = Category(id="food", name="Food", allocations=[percent_rule("salary", 20)])
        assert resolve_category_allocation(food, {"salary": Decimal("60000")}) == Decimal("12000")

    def test_scenario_percent_of_expected_income(self):
        """Test Food gets 20% of the 50000 expected when nothing arrived."""
        food = Category(id="food", name="Food", allocations=[percent_rule("salary", 20)])
        assert resolve_category_allocation(food, {"salary": Decimal("50000")}) == Decimal("10000")

    def test_sum_of_mixed_rules(self):
        """Test the allocated figure is the exact sum of each rule."""
        rules = [
            amount_rule("salary", "1000.10"),
            percent_rule("salary", "12.5"),
            percent_rule("bonus", 10),
            amount_rule("bonus", "0.05"),
        ]
        figures = {"salary": Decimal("8000"), "bonus": Decimal("333")}
        category = Category(id="c", name="C", allocations=rules)

        expected = sum(
            (allocation_contribution(rule, figures) for rule in rules),
            Decimal("0"),
        )
        assert resolve_category_allocation(category, figures) == expected
        assert expected == Decimal("2033.45")

    def test_rule_order_does_not_matter(self):
        """Test reordering rules gives the same figure."""
        rules = [amount_rule("a", 10), percent_rule("b", 33), percent_rule("a", 7)]
        figures = {"a": Decimal("1234.56"), "b": Decimal("789")}
        forward = Category(id="c", name="C", allocations=rules)
        backward = Category(id="c", name="C", allocations=list(reversed(rules)))
        assert resolve_category_allocation(forward, figures) == resolve_category_allocation(backward, figures)

    def test_rule_list_wins_over_legacy_fields(self):
        """Test legacy fields are ignored when rules exist."""
        category = Category(
            id="food",
            name="Food",
            allocations=[amount_rule("a", 500)],
            linked_source_id="a",
            allocation_amount=9999,
        )
        assert resolve_category_allocation(category, {"a": Decimal("100000")}) == Decimal("500")

    def test_legacy_fixed_amount(self):
        """Test a legacy amount is allocated as is."""
        category = Category(id="rent", name="Rent", linked_source_id="salary", allocation_amount=15000)
        assert resolve_category_allocation(category, {}) == Decimal("15000")

    def test_legacy_percent(self):
        """Test a legacy percent of the linked source."""
        category = Category(id="food", name="Food", linked_source_id="salary", allocation_percent=10)
        assert resolve_category_allocation(category, {"salary": Decimal("40000")}) == Decimal("4000")

    def test_no_rules_allocates_nothing(self):
        """Test an empty category allocates 0."""
        assert resolve_category_allocation(Category(id="x", name="X"), {"a": Decimal("10")}) == 0


class TestSourceAllocation:
    """Tests for the per-source share of a category."""

    def test_only_rules_of_that_source_count(self):
        """Test rules on other sources are excluded."""
        category = Category(
            id="c",
            name="C",
            allocations=[amount_rule("a", 100), percent_rule("b", 50), percent_rule("a", 10)],
        )
        figures = {"a": Decimal("1000"), "b": Decimal("1000")}
        assert source_allocation(category, "a", figures) == Decimal("200")
        assert source_allocation(category, "b", figures) == Decimal("500")
        assert source_allocation(category, "c", figures) == 0


class TestNormalization:
    """Tests for folding legacy fields into rules."""

    def test_legacy_category_gets_rules(self):
        """Test legacy fields become one rule and are cleared."""
        legacy = Category(id="rent", name="Rent", linked_source_id="salary", allocation_amount=15000)
        normalized = normalize_category(legacy)

        assert normalized.linked_source_id is None
        assert normalized.allocation_amount is None
        assert len(normalized.allocations) == 1
        assert normalized.allocations[0].allocation_value == Decimal("15000")
        assert normalized.is_legacy is False

    def test_normalization_keeps_the_figure(self):
        """Test allocated figure is unchanged by normalization."""
        figures = {"salary": Decimal("50000")}
        legacy = Category(id="food", name="Food", linked_source_id="salary", allocation_percent=20)
        assert resolve_category_allocation(normalize_category(legacy), figures) == \
            resolve_category_allocation(legacy, figures)

    def test_rule_list_category_drops_stale_legacy_fields(self):
        """Test ignored legacy fields are removed."""
        category = Category(
            id="food",
            name="Food",
            allocations=[amount_rule("a", 500)],
            allocation_amount=9999,
        )
        normalized = normalize_category(category)
        assert normalized.allocation_amount is None
        assert normalized.allocations == category.allocations

    def test_plain_category_is_returned_unchanged(self):
        """Test categories with nothing to normalize are kept."""
        category = Category(id="x", name="X")
        assert normalize_category(category) is category

    def test_normalize_categories_keeps_order(self):
        """Test list normalization."""
        categories = [
            Category(id="b", name="B", linked_source_id="s"),
            Category(id="a", name="A"),
        ]
        assert [c.id for c in normalize_categories(categories)] == ["b", "a"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
