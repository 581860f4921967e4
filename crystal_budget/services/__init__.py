"""Services package."""

from crystal_budget.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    JsonFileBudgetStorage,
    JsonLinesAuditStorage,
    NotFoundError,
    SnapshotFormatError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "JsonFileBudgetStorage",
    "JsonLinesAuditStorage",
    "NotFoundError",
    "SnapshotFormatError",
    "StorageConnectionError",
    "StorageError",
]
