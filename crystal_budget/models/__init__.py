"""
Data Models Package

This package contains all Pydantic models used by CrystalBudget.
Every record the budget core reads, and every figure it produces,
conforms to these schemas.
"""

from crystal_budget.models.budget import (
    Allocation,
    AllocationType,
    BudgetSnapshot,
    BudgetStatus,
    Category,
    CategoryBudget,
    Expense,
    Income,
    IncomeSource,
    Period,
    PeriodBalance,
    SourceSummary,
    ValidationIssue,
    ValidationResult,
    finite_or_zero,
)
from crystal_budget.models.report import (
    CategoryBreakdown,
    DailyExpense,
    DashboardReport,
    MonthlyReport,
)
from crystal_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Budget models
    "Allocation",
    "AllocationType",
    "BudgetSnapshot",
    "BudgetStatus",
    "Category",
    "CategoryBudget",
    "Expense",
    "Income",
    "IncomeSource",
    "Period",
    "PeriodBalance",
    "SourceSummary",
    "ValidationIssue",
    "ValidationResult",
    "finite_or_zero",
    # Report models
    "CategoryBreakdown",
    "DailyExpense",
    "DashboardReport",
    "MonthlyReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
