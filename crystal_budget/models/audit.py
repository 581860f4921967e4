"""
Audit Models for CrystalBudget

Every dashboard computation and every data-access problem is logged for
audit purposes. This provides:
1. Traceability of which snapshot produced which figures
2. Debugging information when a fetch fails
3. Visibility into degraded data (references to deleted entities)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Data access
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_FETCH_FAILED = "snapshot_fetch_failed"
    CATEGORIES_NORMALIZED = "categories_normalized"
    DANGLING_REFERENCE = "dangling_reference"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Computation
    DASHBOARD_COMPUTED = "dashboard_computed"
    REPORT_GENERATED = "report_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'period', 'category', 'snapshot')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one dashboard computation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """Serialize as one JSON line (for append-only files)."""
        return json.dumps(self.to_log_dict(), default=str, ensure_ascii=False)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.snapshot_loaded(month, counts, correlation_id)
        event = AuditEventBuilder.dashboard_computed(month, figures, correlation_id)
    """

    @staticmethod
    def snapshot_loaded(
        month: str,
        counts: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            entity_type="period",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Snapshot loaded for {month}",
            details=dict(counts),
        )

    @staticmethod
    def snapshot_fetch_failed(
        month: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FETCH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="period",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Could not load data for {month}",
            error_message=error_message,
        )

    @staticmethod
    def categories_normalized(
        category_ids: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_NORMALIZED,
            entity_type="category",
            correlation_id=correlation_id,
            description=f"Normalized {len(category_ids)} legacy categories",
            details={
                "category_ids": category_ids,
            },
        )

    @staticmethod
    def dangling_reference(
        field: str,
        message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DANGLING_REFERENCE,
            severity=AuditSeverity.WARNING,
            entity_type="reference",
            correlation_id=correlation_id,
            description=message[:500],
            details={
                "field": field,
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        entity_id: Optional[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Validation of {entity_type} failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def dashboard_computed(
        month: str,
        figures: dict[str, str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DASHBOARD_COMPUTED,
            entity_type="period",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Dashboard computed for {month}",
            details=dict(figures),
        )

    @staticmethod
    def report_generated(
        month: str,
        figures: dict[str, str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            entity_type="period",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Monthly report generated for {month}",
            details=dict(figures),
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def storage_error(
        backend: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error: {backend}",
            error_message=error_message,
            details={
                "backend": backend,
            },
            correlation_id=correlation_id,
        )
