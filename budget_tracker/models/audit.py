"""
Audit Models for Budget Tracker

Every mutation of a user's records, and every storage failure seen while
serving a request, produces an audit event. Events are written to the
structured log; they are never used to reconstruct state.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budget_tracker.models.records import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Persistence
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Rejections
    RECORD_NOT_FOUND = "record_not_found"
    CREATE_CONFLICT = "create_conflict"

    # Failures
    STORAGE_ERROR = "storage_error"
    BACKEND_UNAVAILABLE = "backend_unavailable"


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

    `entity_type` names the collection ("budget" or "expense");
    `owner_id` is the caller the operation was issued for.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    owner_id: Optional[str] = None
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events raised while serving one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

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
            "owner_id": self.owner_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("budget", budget_id, owner_id)
        event = AuditEventBuilder.not_found("expense", expense_id, owner_id, "delete")
    """

    @staticmethod
    def record_created(
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=entity_type,
            entity_id=record_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created",
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=entity_type,
            entity_id=record_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} replaced",
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=record_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
        )

    @staticmethod
    def not_found(
        entity_type: str,
        record_id: str,
        owner_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=record_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} not found for {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def create_conflict(
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREATE_CONFLICT,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=record_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} id already exists",
        )

    @staticmethod
    def storage_error(
        entity_type: str,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Storage error during {entity_type} {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def backend_unavailable(
        entity_type: str,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Storage backend unavailable during {entity_type} {operation}",
            details={
                "operation": operation,
                # Writes that fail this way may still have been applied
                "outcome": "unknown" if operation in ("create", "update", "delete") else "failed",
            },
            error_message=error_message,
        )
