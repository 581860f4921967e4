"""
Local JSON Storage Implementation

DESIGN DECISION: The local store is a single JSON document holding a
BudgetSnapshot, parsed through pydantic on every read. It is a cache of
already owner-scoped data, nothing more.

TRADEOFFS:
- Every query re-reads the file (fine for personal-finance volumes)
- No merge or reconciliation of edits made elsewhere
- Writes replace the whole file atomically

The audit log lives next to it as append-only JSON lines.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError

from crystal_budget.models.audit import AuditEvent
from crystal_budget.models.budget import (
    BudgetSnapshot,
    Category,
    Expense,
    Income,
    IncomeSource,
)
from crystal_budget.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    SnapshotFormatError,
    StorageError,
    in_window,
)


class JsonFileBudgetStorage(BudgetStorageInterface):
    """Budget storage backed by one JSON snapshot file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_snapshot(self) -> BudgetSnapshot:
        """
        Read and parse the snapshot file.

        A missing file is an empty data set.

        Raises:
            SnapshotFormatError: If the file is not a valid snapshot
            StorageError: If the file cannot be read
        """
        if not self._path.exists():
            return BudgetSnapshot()

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {self._path}: {e}")

        if not raw.strip():
            return BudgetSnapshot()

        try:
            return BudgetSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise SnapshotFormatError(f"Invalid snapshot in {self._path}: {e}")

    def save_snapshot(self, snapshot: BudgetSnapshot) -> None:
        """
        Write the snapshot, replacing the previous file atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        payload = snapshot.model_dump_json(indent=2)
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write snapshot {self._path}: {e}")

    async def list_income_sources(self) -> list[IncomeSource]:
        return list(self.load_snapshot().income_sources)

    async def list_categories(self) -> list[Category]:
        return list(self.load_snapshot().categories)

    async def list_incomes(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Income]:
        incomes = [
            inc for inc in self.load_snapshot().incomes
            if in_window(inc.date, date_from, date_before)
        ]
        return sorted(incomes, key=lambda inc: inc.date)

    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
    ) -> list[Expense]:
        expenses = [
            exp for exp in self.load_snapshot().expenses
            if in_window(exp.date, date_from, date_before)
        ]
        return sorted(expenses, key=lambda exp: exp.date)


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit log, one JSON event per line."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open(encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except ValidationError as e:
                    raise SnapshotFormatError(f"Corrupt audit line in {self._path}: {e}")
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
