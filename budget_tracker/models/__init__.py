"""
Data Models Package

Records stored per owner (budgets, expenses), the payloads clients send
for them, and the audit events emitted when they change.
"""

from budget_tracker.models.records import (
    Budget,
    BudgetPayload,
    Expense,
    ExpensePayload,
    OwnedRecord,
    new_record_id,
    utc_now,
)
from budget_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "Budget",
    "BudgetPayload",
    "Expense",
    "ExpensePayload",
    "OwnedRecord",
    "new_record_id",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
