"""
Tests for the period balance calculator, carry-over and dashboard
composition.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from crystal_budget.budget import (
    build_dashboard,
    classify_budget,
    compute_carry_over,
    compute_carry_over_at,
    compute_category_budget,
    compute_category_budgets,
    compute_period_balance,
    records_before,
    usage_percent,
)
from crystal_budget.models.budget import (
    Allocation,
    AllocationType,
    BudgetStatus,
    Category,
    Expense,
    Income,
    IncomeSource,
    Period,
)


def income(income_id, amount, when=datetime(2024, 3, 10), source_id="salary"):
    return Income(id=income_id, source_id=source_id, amount=amount, date=when)


def expense(expense_id, amount, when=datetime(2024, 3, 10), category_id="rent"):
    return Expense(id=expense_id, category_id=category_id, amount=amount, date=when)


def rent_category(value=15000):
    return Category(
        id="rent",
        name="Rent",
        allocations=[Allocation(
            income_source_id="salary",
            allocation_type=AllocationType.AMOUNT,
            allocation_value=value,
        )],
    )


class TestCategoryBudget:
    """Tests for per-category figures."""

    def test_overspent_category_goes_negative(self):
        """Test Rent 15000 allocated, 15001 spent, -1 remaining."""
        budget = compute_category_budget(rent_category(), {}, [expense("e1", 15001)])
        assert budget.allocated == Decimal("15000")
        assert budget.spent == Decimal("15001")
        assert budget.remaining == Decimal("-1")
        assert budget.status == BudgetStatus.OVER_BUDGET
        assert budget.is_over_budget is True

    def test_zero_allocated_usage_is_zero(self):
        """Test usage is 0, not NaN, when nothing is allocated."""
        category = Category(id="rent", name="Rent")
        budget = compute_category_budget(category, {}, [expense("e1", 300)])
        assert budget.allocated == 0
        assert budget.usage_percent == 0
        assert budget.remaining == Decimal("-300")
        assert budget.status == BudgetStatus.OVER_BUDGET

    def test_zero_allocated_zero_spent_is_good(self):
        """Test an idle unfunded category."""
        budget = compute_category_budget(Category(id="rent", name="Rent"), {}, [])
        assert budget.usage_percent == 0
        assert budget.status == BudgetStatus.GOOD

    def test_other_categories_expenses_are_ignored(self):
        """Test spent only counts this category."""
        budget = compute_category_budget(
            rent_category(),
            {},
            [expense("e1", 100), expense("e2", 999, category_id="food")],
        )
        assert budget.spent == Decimal("100")
        assert budget.usage_percent == Decimal("100") / Decimal("15000") * Decimal("100")

    def test_compute_category_budgets_in_order(self):
        """Test one budget per category."""
        categories = [rent_category(), Category(id="food", name="Food")]
        budgets = compute_category_budgets(categories, {}, [expense("e1", 10)])
        assert [b.category_id for b in budgets] == ["rent", "food"]


class TestStatusBands:
    """Tests for usage banding."""

    @pytest.mark.parametrize("spent,status", [
        (0, BudgetStatus.GOOD),
        (50, BudgetStatus.GOOD),
        ("50.01", BudgetStatus.NORMAL),
        (70, BudgetStatus.NORMAL),
        (71, BudgetStatus.ATTENTION),
        (90, BudgetStatus.ATTENTION),
        (91, BudgetStatus.CRITICAL),
        (100, BudgetStatus.CRITICAL),
        ("100.01", BudgetStatus.OVER_BUDGET),
    ])
    def test_band_boundaries(self, spent, status):
        """Test thresholds are strictly greater than."""
        assert classify_budget(Decimal(str(spent)), Decimal("100")) == status

    def test_usage_percent(self):
        """Test usage percentage."""
        assert usage_percent(Decimal("25"), Decimal("200")) == Decimal("12.5")
        assert usage_percent(Decimal("25"), Decimal("0")) == 0
        assert usage_percent(Decimal("25"), Decimal("-10")) == 0


class TestPeriodBalance:
    """Tests for headline month figures."""

    def test_balance_figures(self):
        """Test month balance, expenses and total balance."""
        balance = compute_period_balance(
            [income("i1", 60000), income("i2", 5000, source_id="gone")],
            [expense("e1", 15001), expense("e2", 1000, category_id="deleted")],
            Decimal("250"),
        )
        assert balance.current_month_income == Decimal("65000")
        assert balance.total_expenses == Decimal("16001")
        assert balance.month_balance == Decimal("48999")
        assert balance.total_balance == Decimal("49249")
        assert balance.carry_over == Decimal("250")

    def test_negative_carry_over(self):
        """Test a carried deficit lowers the total balance."""
        balance = compute_period_balance([], [expense("e1", 10)], Decimal("-90"))
        assert balance.month_balance == Decimal("-10")
        assert balance.total_balance == Decimal("-100")

    def test_empty_month(self):
        """Test an empty month is all zeros."""
        balance = compute_period_balance([], [], Decimal("0"))
        assert balance.month_balance == 0
        assert balance.total_balance == 0


class TestCarryOver:
    """Tests for the carry-over accumulator."""

    def test_empty_history_is_zero(self):
        """Test no prior records means no carry-over."""
        assert compute_carry_over([], []) == 0

    def test_prior_income_minus_prior_expenses(self):
        """Test incomes 100 and 200 against expense 50 carry 250."""
        february = datetime(2024, 2, 10)
        incomes = [income("i1", 100, february), income("i2", 200, february)]
        expenses = [expense("e1", 50, february)]
        assert compute_carry_over(incomes, expenses) == Decimal("250")

    def test_boundary_is_exclusive(self):
        """Test records at the period start belong to the period."""
        start = datetime(2024, 3, 1)
        incomes = [
            income("i1", 100, datetime(2024, 2, 29, 23, 59)),
            income("i2", 999, start),
        ]
        expenses = [
            expense("e1", 30, datetime(2023, 1, 1)),
            expense("e2", 500, datetime(2024, 3, 2)),
        ]
        assert [r.id for r in records_before(incomes, start)] == ["i1"]
        assert compute_carry_over_at(incomes, expenses, start) == Decimal("70")

    def test_deficit_carries_forward(self):
        """Test carry-over may be negative."""
        assert compute_carry_over([income("i1", 10)], [expense("e1", 40)]) == Decimal("-30")


class TestBuildDashboard:
    """Tests for composing the dashboard figures."""

    def test_dashboard_for_month(self):
        """Test every figure is derived from the same records."""
        period = Period.containing(date(2024, 3, 15))
        sources = [IncomeSource(id="salary", name="Salary", amount=50000)]
        food = Category(
            id="food",
            name="Food",
            allocations=[Allocation(
                income_source_id="salary",
                allocation_type=AllocationType.PERCENT,
                allocation_value=20,
            )],
        )

        report = build_dashboard(
            period=period,
            income_sources=sources,
            categories=[rent_category(), food],
            period_incomes=[income("i1", 60000)],
            period_expenses=[expense("e1", 15001), expense("e2", 3000, category_id="food")],
            incomes_before=[income("i0", 1000, datetime(2024, 2, 1))],
            expenses_before=[expense("e0", 400, datetime(2024, 2, 2))],
        )

        assert report.budget_for("food").allocated == Decimal("12000")
        assert report.budget_for("rent").remaining == Decimal("-1")

        salary = report.summary_for("salary")
        assert salary.total_income == Decimal("60000")
        assert salary.total_allocated == Decimal("27000")
        assert salary.remaining == Decimal("33000")
        assert salary.total_spent == Decimal("18001")

        assert report.balance.carry_over == Decimal("600")
        assert report.balance.month_balance == Decimal("41999")
        assert report.balance.total_balance == Decimal("42599")
        assert report.issues == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
