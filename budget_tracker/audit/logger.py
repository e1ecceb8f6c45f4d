"""
Audit Logger

DESIGN DECISION: Every change to a user's records is logged, along with
every storage failure seen while serving a request. This provides:
1. Traceability of who changed what
2. Debugging capability for backend outages
3. A record of writes whose outcome is unknown

The audit logger:
- Writes structured JSON through structlog
- Never raises (a logging failure must not fail the request)
- Supports correlation IDs to trace the events of one request
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(debug: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Called once by the application factory.
    """
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
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


_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured log only. Audit events are never
    persisted next to the records they describe.
    """

    def __init__(self, logger=None):
        self._logger = logger or structlog.get_logger("budget_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        try:
            method = getattr(self._logger, _LEVELS[event.severity])
            method("audit_event", **event.to_log_dict())
            return True
        except Exception as e:
            # Audit must not break the main flow
            logging.getLogger(__name__).error("Failed to write audit event: %s", e)
            return False

    def _build_and_log(self, build, *args) -> bool:
        """Build an event and log it; a malformed event is reported, not raised."""
        try:
            event = build(*args)
        except Exception as e:
            logging.getLogger(__name__).error("Failed to build audit event: %s", e)
            return False
        return self.log(event)

    def log_record_created(
        self,
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record creation."""
        self._build_and_log(
            AuditEventBuilder.record_created,
            entity_type, record_id, owner_id, correlation_id
        )

    def log_record_updated(
        self,
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log full replace of a record."""
        self._build_and_log(
            AuditEventBuilder.record_updated,
            entity_type, record_id, owner_id, correlation_id
        )

    def log_record_deleted(
        self,
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record deletion."""
        self._build_and_log(
            AuditEventBuilder.record_deleted,
            entity_type, record_id, owner_id, correlation_id
        )

    def log_not_found(
        self,
        entity_type: str,
        record_id: str,
        owner_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an update/delete refused because the caller has no such record."""
        self._build_and_log(
            AuditEventBuilder.not_found,
            entity_type, record_id, owner_id, operation, correlation_id
        )

    def log_create_conflict(
        self,
        entity_type: str,
        record_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._build_and_log(
            AuditEventBuilder.create_conflict,
            entity_type, record_id, owner_id, correlation_id
        )

    def log_storage_error(
        self,
        entity_type: str,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._build_and_log(
            AuditEventBuilder.storage_error,
            entity_type, operation, error_message, owner_id, correlation_id
        )

    def log_backend_unavailable(
        self,
        entity_type: str,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._build_and_log(
            AuditEventBuilder.backend_unavailable,
            entity_type, operation, error_message, owner_id, correlation_id
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The API creates one per request and passes it to every flow call.
    """
    return uuid4()
