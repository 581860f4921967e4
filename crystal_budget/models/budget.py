"""
Core Data Models for CrystalBudget

These models define the schemas for every record the budget core reads
and every figure it produces. They are designed to:
1. Be immutable snapshots (the core never mutates its inputs)
2. Keep money in Decimal end-to-end
3. Be serializable for the local snapshot store and for logging

DESIGN DECISION: Amount fields coerce non-finite numbers (NaN, Infinity)
to zero at construction. A single NaN would otherwise poison every sum
it touches, and budget data is forgiving by nature.
"""

import calendar
import math
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def finite_or_zero(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal, mapping anything non-finite to 0.

    None and unparseable values also map to 0.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def _coerce_amount(value: Any) -> Any:
    """Neutralize non-finite amounts but leave garbage for pydantic to reject."""
    if value is None:
        return value
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    if isinstance(value, Decimal) and not value.is_finite():
        return ZERO
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return value
        return parsed if parsed.is_finite() else ZERO
    return value


Amount = Annotated[Decimal, BeforeValidator(_coerce_amount)]


# =============================================================================
# ENUMS
# =============================================================================

class AllocationType(str, Enum):
    """How an allocation rule turns income into budget."""
    AMOUNT = "amount"    # Fixed amount
    PERCENT = "percent"  # Share of the source's effective income


class BudgetStatus(str, Enum):
    """
    Display banding of a category budget.

    Derived from spent / allocated; presentation only.
    """
    OVER_BUDGET = "over_budget"
    CRITICAL = "critical"
    ATTENTION = "attention"
    NORMAL = "normal"
    GOOD = "good"


# =============================================================================
# INPUT RECORDS
# =============================================================================

class IncomeSource(BaseModel):
    """
    Where money comes from (salary, freelance, ...).

    `amount` is the EXPECTED periodic income. It only matters for a period
    in which nothing has actually been received from this source.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., description="Unique source identifier")
    name: str = Field(..., description="Display name")
    color: str = Field(default="#8b5cf6", description="Color tag")
    amount: Optional[Amount] = Field(
        default=None,
        description="Expected periodic amount"
    )
    frequency: Optional[str] = Field(
        default=None,
        description="Frequency label (monthly, weekly, ...)"
    )
    received_date: Optional[date] = Field(
        default=None,
        description="Date the income is usually received"
    )


class Allocation(BaseModel):
    """
    One budget rule linking a category to an income source.

    `income_source_id` is None only for allocations produced from a legacy
    fixed amount that was never linked to any source.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    income_source_id: Optional[str] = Field(
        default=None,
        description="Source this rule draws from"
    )
    allocation_type: AllocationType = Field(
        default=AllocationType.AMOUNT,
        description="Fixed amount or percentage of the source"
    )
    allocation_value: Amount = Field(
        default=ZERO,
        description="Amount, or percent (conventionally 0-100)"
    )


class Category(BaseModel):
    """
    An expense category with its allocation rules.

    DESIGN DECISION: The legacy single-link fields are kept for old data
    only. When `allocations` is non-empty the legacy fields are ignored
    entirely (never merged). `resolved_allocations` is the one place that
    turns legacy fields into allocation rules.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., description="Unique category identifier")
    name: str = Field(..., description="Display name")
    icon: str = Field(default="📁", description="Icon glyph")
    allocations: list[Allocation] = Field(default_factory=list)

    # Legacy fields
    linked_source_id: Optional[str] = None
    allocation_amount: Optional[Amount] = None
    allocation_percent: Optional[Amount] = None

    @property
    def is_legacy(self) -> bool:
        """True when the category still relies on the single-link fields."""
        return not self.allocations and (
            self.linked_source_id is not None
            or bool(self.allocation_amount)
            or bool(self.allocation_percent)
        )

    @property
    def resolved_allocations(self) -> list[Allocation]:
        """
        Allocation rules in normalized form.

        Legacy fields map as follows (a zero amount or percent counts as unset):
        - fixed amount -> one "amount" rule on the linked source (if any)
        - percent with a linked source -> one "percent" rule
        - linked source alone -> one zero "amount" rule, so the category
          stays linked to the source for spending attribution
        """
        if self.allocations:
            return list(self.allocations)

        if self.allocation_amount:
            return [Allocation(
                income_source_id=self.linked_source_id,
                allocation_type=AllocationType.AMOUNT,
                allocation_value=self.allocation_amount,
            )]
        if self.linked_source_id and self.allocation_percent:
            return [Allocation(
                income_source_id=self.linked_source_id,
                allocation_type=AllocationType.PERCENT,
                allocation_value=self.allocation_percent,
            )]
        if self.linked_source_id:
            return [Allocation(
                income_source_id=self.linked_source_id,
                allocation_type=AllocationType.AMOUNT,
                allocation_value=ZERO,
            )]
        return []

    def is_linked_to(self, source_id: str) -> bool:
        """Does any rule reference this source (even a zero-valued one)?"""
        return any(
            alloc.income_source_id == source_id
            for alloc in self.resolved_allocations
        )


class Income(BaseModel):
    """A recorded income transaction."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    source_id: str
    amount: Amount
    date: datetime
    description: Optional[str] = None


class Expense(BaseModel):
    """A recorded expense transaction."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    category_id: str
    amount: Amount
    date: datetime
    description: Optional[str] = None


# =============================================================================
# PERIOD
# =============================================================================

def align_moment(moment: datetime, reference: datetime) -> datetime:
    """
    Make `moment` comparable with `reference`.

    A naive moment compared against an aware boundary (or the reverse) is
    read as wall-clock time in the boundary's zone.
    """
    if (moment.tzinfo is None) != (reference.tzinfo is None):
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


class Period(BaseModel):
    """
    A calendar month, half-open: [start, end).

    Always built from an explicitly supplied date. The core never reads
    the clock.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="First instant of the month")
    end: datetime = Field(..., description="First instant of the next month")

    @model_validator(mode='after')
    def validate_bounds(self) -> 'Period':
        if self.end <= self.start:
            raise ValueError("Period end must be after its start")
        return self

    @classmethod
    def containing(cls, moment: Union[date, datetime]) -> 'Period':
        """Build the month period that contains `moment`."""
        if isinstance(moment, datetime):
            tzinfo = moment.tzinfo
        else:
            tzinfo = None
        start = datetime(moment.year, moment.month, 1, tzinfo=tzinfo)
        if moment.month == 12:
            end = datetime(moment.year + 1, 1, 1, tzinfo=tzinfo)
        else:
            end = datetime(moment.year, moment.month + 1, 1, tzinfo=tzinfo)
        return cls(start=start, end=end)

    def previous(self) -> 'Period':
        return Period.containing(self.start - timedelta(days=1))

    def next(self) -> 'Period':
        return Period.containing(self.end)

    def contains(self, moment: datetime) -> bool:
        moment = align_moment(moment, self.start)
        return self.start <= moment < self.end

    @property
    def days(self) -> int:
        """Number of days in the month."""
        return calendar.monthrange(self.start.year, self.start.month)[1]

    @property
    def month_key(self) -> str:
        return self.start.strftime("%Y-%m")


# =============================================================================
# COMPUTED FIGURES
# =============================================================================

class CategoryBudget(BaseModel):
    """
    Budget figures for one category in one period.

    `remaining` is NOT clamped: a negative value means over budget.
    """
    model_config = ConfigDict(frozen=True)

    category_id: str
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    usage_percent: Decimal = Field(
        default=ZERO,
        description="spent / allocated * 100, 0 when nothing is allocated"
    )
    status: BudgetStatus = BudgetStatus.GOOD

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.allocated


class SourceSummary(BaseModel):
    """
    Figures for one income source in one period.

    Remaining and debt are computed from what is ALLOCATED, not from what
    is spent. At most one of them is non-zero.
    """
    model_config = ConfigDict(frozen=True)

    source_id: str
    total_income: Decimal = Field(
        ...,
        description="Effective income: actual if any was received, else expected"
    )
    total_allocated: Decimal = ZERO
    total_spent: Decimal
    remaining: Decimal = Field(..., ge=0)
    debt: Decimal = Field(..., ge=0)

    @property
    def has_debt(self) -> bool:
        return self.debt > 0

    @property
    def spent_percent(self) -> Decimal:
        """Share of the effective income spent by linked categories."""
        if self.total_income > 0:
            return self.total_spent / self.total_income * HUNDRED
        return ZERO


class PeriodBalance(BaseModel):
    """Headline balance figures for one month."""
    model_config = ConfigDict(frozen=True)

    month_balance: Decimal
    total_expenses: Decimal
    total_balance: Decimal
    current_month_income: Decimal = ZERO
    carry_over: Decimal = ZERO


# =============================================================================
# SNAPSHOT
# =============================================================================

class BudgetSnapshot(BaseModel):
    """
    The full record set of one (already owner-scoped) data set.

    This is what the local snapshot store persists.
    """
    income_sources: list[IncomeSource] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one record before it is saved.

    Errors block the save. Warnings are shown but do not block.
    """

    entity_type: str = Field(
        ...,
        description="Kind of record validated (category, income, ...)"
    )
    entity_id: Optional[str] = None
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
