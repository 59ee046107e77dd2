"""
Audit Models for MyMoney

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every ledger mutation
2. Debugging information when persistence or the backend misbehaves
3. A record of failures that were swallowed instead of raised

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from mymoney.models.transaction import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REMOVED = "transaction_removed"
    TRANSACTION_RESET = "transaction_reset"
    LEDGER_REPLACED = "ledger_replaced"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    STALE_LOAD_DISCARDED = "stale_load_discarded"
    SAVE_FAILED = "save_failed"

    # Session
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    USER_REGISTERED = "user_registered"
    SESSION_RESTORE_FAILED = "session_restore_failed"

    # Reports
    REPORT_EXPORTED = "report_exported"
    EXPORT_UNSUPPORTED = "export_unsupported"

    # Background
    BACKGROUND_TASK_COMPLETED = "background_task_completed"

    # System events
    SYSTEM_ERROR = "system_error"
    REMOTE_CALL_FAILED = "remote_call_failed"


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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'ledger', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a mutation and its remote mirror)"
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

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction_id, "Salary", "income", "3500")
        event = AuditEventBuilder.save_failed("@transacoes", "disk full")
    """

    @staticmethod
    def transaction_added(
        transaction_id: str,
        description: str,
        kind: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {description} ({kind} {amount})",
            details={
                "kind": kind,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no fields'}",
            details={
                "changed_fields": changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction removed",
            is_user_action=True,
        )

    @staticmethod
    def transaction_reset(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RESET,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction reset to default values",
            is_user_action=True,
        )

    @staticmethod
    def ledger_replaced(count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_REPLACED,
            entity_type="ledger",
            description=f"Ledger replaced with {count} transactions from {source}",
            details={
                "count": count,
                "source": source,
            },
        )

    @staticmethod
    def ledger_loaded(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description=f"Ledger loaded with {count} transactions",
            details={
                "count": count,
            },
        )

    @staticmethod
    def ledger_load_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="Persisted ledger could not be loaded; starting empty",
            error_message=error_message,
            details={
                "key": key,
            },
        )

    @staticmethod
    def stale_load_discarded(loaded_revision: int, current_revision: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_LOAD_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="Load finished after a newer mutation; loaded data discarded",
            details={
                "loaded_revision": loaded_revision,
                "current_revision": current_revision,
            },
        )

    @staticmethod
    def save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger could not be persisted; in-memory state kept",
            error_message=error_message,
            details={
                "key": key,
            },
        )

    @staticmethod
    def user_logged_in(user_id: Optional[str], email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            entity_type="session",
            entity_id=user_id,
            description=f"User logged in: {email}",
            is_user_action=True,
        )

    @staticmethod
    def user_logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_OUT,
            entity_type="session",
            entity_id=user_id,
            description="User logged out",
            is_user_action=True,
        )

    @staticmethod
    def user_registered(user_id: Optional[str], email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="session",
            entity_id=user_id,
            description=f"User registered: {email}",
            is_user_action=True,
        )

    @staticmethod
    def session_restore_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESTORE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description="Persisted session could not be restored",
            error_message=error_message,
        )

    @staticmethod
    def report_exported(
        export_format: str,
        row_count: int,
        path: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="report",
            description=f"Report exported as {export_format} ({row_count} rows)",
            details={
                "format": export_format,
                "row_count": row_count,
                "path": path,
            },
            is_user_action=True,
        )

    @staticmethod
    def export_unsupported(export_format: str, platform: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_UNSUPPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="report",
            description=f"{export_format} export is not available on {platform}",
            details={
                "format": export_format,
                "platform": platform,
            },
        )

    @staticmethod
    def background_task_completed(task_name: str, result: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKGROUND_TASK_COMPLETED,
            severity=AuditSeverity.WARNING if result == "failed" else AuditSeverity.INFO,
            entity_type="task",
            entity_id=task_name,
            description=f"Background task {task_name} finished: {result}",
            details={
                "result": result,
            },
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
    def remote_call_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_CALL_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Backend call failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
