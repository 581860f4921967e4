"""
Audit Logger

DESIGN DECISION: Every dashboard computation and every data-access
problem is logged. This provides:
1. Traceability from a displayed figure back to the snapshot it came from
2. Debugging capability when fetches fail
3. Visibility into degraded data that the core silently zeroes out

The audit logger:
- Is async, like the storage it writes to
- Gracefully handles failures (a broken audit store never breaks a computation)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from crystal_budget.config import AppSettings, get_settings
from crystal_budget.models.audit import AuditEvent, AuditEventBuilder
from crystal_budget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(app_settings: Optional[AppSettings] = None) -> str:
    """
    Apply the configured log level to the package loggers.

    structlog filters through the stdlib level of each logger, so the level
    is set on the `crystal_budget` parent logger.

    Returns:
        The level name applied
    """
    app_settings = app_settings or get_settings().app
    level = app_settings.effective_log_level

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("crystal_budget").setLevel(level)
    return level


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("crystal_budget.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        month: str,
        counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        """Log a successful period fetch."""
        event = AuditEventBuilder.snapshot_loaded(
            month=month,
            counts=counts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_snapshot_fetch_failed(
        self,
        month: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a fetch that failed after all retries."""
        event = AuditEventBuilder.snapshot_fetch_failed(
            month=month,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_categories_normalized(
        self,
        category_ids: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log legacy categories folded into allocation rules."""
        event = AuditEventBuilder.categories_normalized(
            category_ids=category_ids,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_dangling_reference(
        self,
        field: str,
        message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a reference to a deleted or unknown record."""
        event = AuditEventBuilder.dangling_reference(
            field=field,
            message=message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed record validation."""
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_dashboard_computed(
        self,
        month: str,
        figures: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log the headline figures of a computed dashboard."""
        event = AuditEventBuilder.dashboard_computed(
            month=month,
            figures=figures,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_generated(
        self,
        month: str,
        figures: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log a generated monthly report."""
        event = AuditEventBuilder.report_generated(
            month=month,
            figures=figures,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        backend: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage backend error."""
        event = AuditEventBuilder.storage_error(
            backend=backend,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of one computation and pass it through
    all subsequent operations.
    """
    return uuid4()
