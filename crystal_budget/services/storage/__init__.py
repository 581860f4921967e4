"""
Storage Services Package

Provides abstract interfaces and concrete implementations for fetching
budget records. The local JSON snapshot and the in-memory store both
follow the interface, so the hosted backend can be plugged in later.
"""

from crystal_budget.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    NotFoundError,
    SnapshotFormatError,
    StorageConnectionError,
    StorageError,
)
from crystal_budget.services.storage.json_file import (
    JsonFileBudgetStorage,
    JsonLinesAuditStorage,
)
from crystal_budget.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    # Exceptions
    "NotFoundError",
    "SnapshotFormatError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "JsonFileBudgetStorage",
    "JsonLinesAuditStorage",
]
