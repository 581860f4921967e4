"""
Record Validation

DESIGN DECISION: The budget core trusts its inputs and never validates.
Validation happens here, before records are saved, the same way the
entry forms check them:

- Categories need a name, an icon and at least one allocation rule
- Allocation values cannot be negative
- Transactions need a positive amount
- References to unknown sources/categories are reported

Errors block a save. Warnings are reported for human review.

IMPORTANT: Validation NEVER silently fixes issues.
"""

import re
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from crystal_budget.models.budget import (
    AllocationType,
    BudgetSnapshot,
    Category,
    Expense,
    Income,
    IncomeSource,
    ValidationIssue,
    ValidationResult,
)


MAX_NAME_LENGTH = 100
MAX_PERCENT = Decimal("100")

_NON_NUMERIC = re.compile(r"[^\d.,]")


def parse_amount_input(text: str) -> Decimal:
    """
    Parse a typed amount.

    Keeps digits and separators only, reads a comma as the decimal point
    and folds any extra points into the fraction ("1.000.5" -> "1.0005").

    Raises:
        ValueError: If nothing numeric is left
    """
    cleaned = _NON_NUMERIC.sub("", text or "").replace(",", ".", 1)
    parts = cleaned.split(".")
    if len(parts) > 2:
        cleaned = parts[0] + "." + "".join(parts[1:])

    if not cleaned or cleaned == ".":
        raise ValueError(f"Not an amount: {text!r}")
    if cleaned.startswith("."):
        cleaned = "0" + cleaned
    try:
        return Decimal(cleaned.replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Not an amount: {text!r}")


class BudgetValidator:
    """
    Validates budget records before they are saved.

    Each validate_* method returns a ValidationResult; nothing raises.
    """

    def _check_name(self, name: str, issues: list[ValidationIssue]) -> None:
        if not name or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
                severity="error",
            ))
        elif len(name) > MAX_NAME_LENGTH:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Name must be at most {MAX_NAME_LENGTH} characters",
                severity="error",
                suggested_fix="Use a shorter name",
            ))

    def validate_category(
        self,
        category: Category,
        income_sources: Iterable[IncomeSource],
    ) -> ValidationResult:
        """
        Validate a category and its allocation rules.

        Args:
            category: The category to validate
            income_sources: Known sources, for reference checks
        """
        issues: list[ValidationIssue] = []
        known_sources = {source.id for source in income_sources}

        self._check_name(category.name, issues)

        if not category.icon or not category.icon.strip():
            issues.append(ValidationIssue(
                field="icon",
                issue_type="missing",
                message="Icon is required",
                severity="error",
            ))

        if not category.allocations:
            if category.is_legacy:
                issues.append(ValidationIssue(
                    field="allocations",
                    issue_type="legacy",
                    message="Category still uses the old single-source budget fields",
                    severity="warning",
                    suggested_fix="Re-save the category to convert it to allocation rules",
                ))
            else:
                issues.append(ValidationIssue(
                    field="allocations",
                    issue_type="missing",
                    message="Add at least one income source",
                    severity="error",
                ))

        for index, alloc in enumerate(category.allocations):
            field = f"allocations[{index}]"

            if not alloc.income_source_id:
                issues.append(ValidationIssue(
                    field=f"{field}.income_source_id",
                    issue_type="missing",
                    message="Select an income source",
                    severity="error",
                ))
            elif alloc.income_source_id not in known_sources:
                issues.append(ValidationIssue(
                    field=f"{field}.income_source_id",
                    issue_type="unknown_reference",
                    message=f"Income source {alloc.income_source_id} does not exist",
                    severity="warning",
                    suggested_fix="This rule will allocate nothing until it points at an existing source",
                ))

            if alloc.allocation_value < 0:
                issues.append(ValidationIssue(
                    field=f"{field}.allocation_value",
                    issue_type="invalid_value",
                    message="Allocation value cannot be negative",
                    severity="error",
                ))
            elif (
                alloc.allocation_type == AllocationType.PERCENT
                and alloc.allocation_value > MAX_PERCENT
            ):
                issues.append(ValidationIssue(
                    field=f"{field}.allocation_value",
                    issue_type="suspicious_value",
                    message=f"Allocation of {alloc.allocation_value}% is more than the whole source",
                    severity="warning",
                    suggested_fix="Percent allocations are normally between 0 and 100",
                ))

        return ValidationResult(
            entity_type="category",
            entity_id=category.id,
            issues=issues,
        )

    def validate_income_source(self, source: IncomeSource) -> ValidationResult:
        """Validate an income source."""
        issues: list[ValidationIssue] = []

        self._check_name(source.name, issues)

        if not source.frequency or not source.frequency.strip():
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="missing",
                message="Frequency is not set",
                severity="warning",
                suggested_fix="Choose how often this income arrives",
            ))

        if source.amount is not None and source.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Expected amount cannot be negative",
                severity="error",
            ))

        return ValidationResult(
            entity_type="income_source",
            entity_id=source.id,
            issues=issues,
        )

    def _check_amount(self, amount: Decimal, issues: list[ValidationIssue]) -> None:
        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be positive",
                severity="error",
                suggested_fix="Enter an amount greater than zero",
            ))

    def validate_income(
        self,
        income: Income,
        income_sources: Iterable[IncomeSource],
    ) -> ValidationResult:
        """Validate an income transaction."""
        issues: list[ValidationIssue] = []
        self._check_amount(income.amount, issues)

        if not income.source_id:
            issues.append(ValidationIssue(
                field="source_id",
                issue_type="missing",
                message="Select an income source",
                severity="error",
            ))
        elif income.source_id not in {source.id for source in income_sources}:
            issues.append(ValidationIssue(
                field="source_id",
                issue_type="unknown_reference",
                message=f"Income source {income.source_id} does not exist",
                severity="warning",
            ))

        return ValidationResult(
            entity_type="income",
            entity_id=income.id,
            issues=issues,
        )

    def validate_expense(
        self,
        expense: Expense,
        categories: Iterable[Category],
    ) -> ValidationResult:
        """Validate an expense transaction."""
        issues: list[ValidationIssue] = []
        self._check_amount(expense.amount, issues)

        if not expense.category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Select a category",
                severity="error",
            ))
        elif expense.category_id not in {category.id for category in categories}:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Category {expense.category_id} does not exist",
                severity="warning",
            ))

        return ValidationResult(
            entity_type="expense",
            entity_id=expense.id,
            issues=issues,
        )

    def find_dangling_references(
        self,
        snapshot: BudgetSnapshot,
    ) -> list[ValidationIssue]:
        """
        Every allocation, income and expense pointing at a record that
        does not exist.

        The computation treats these as zero contributions; this makes
        them visible.
        """
        issues: list[ValidationIssue] = []
        source_ids = {source.id for source in snapshot.income_sources}
        category_ids = {category.id for category in snapshot.categories}

        for category in snapshot.categories:
            for alloc in category.resolved_allocations:
                if alloc.income_source_id and alloc.income_source_id not in source_ids:
                    issues.append(ValidationIssue(
                        field=f"category:{category.id}.income_source_id",
                        issue_type="unknown_reference",
                        message=(
                            f"Category '{category.name}' allocates from unknown "
                            f"source {alloc.income_source_id}"
                        ),
                        severity="warning",
                    ))

        for income in snapshot.incomes:
            if income.source_id not in source_ids:
                issues.append(ValidationIssue(
                    field=f"income:{income.id}.source_id",
                    issue_type="unknown_reference",
                    message=f"Income {income.id} belongs to unknown source {income.source_id}",
                    severity="warning",
                ))

        for expense in snapshot.expenses:
            if expense.category_id not in category_ids:
                issues.append(ValidationIssue(
                    field=f"expense:{expense.id}.category_id",
                    issue_type="unknown_reference",
                    message=f"Expense {expense.id} belongs to unknown category {expense.category_id}",
                    severity="warning",
                ))

        return issues

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still save, but please review carefully.")
        else:
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines)
