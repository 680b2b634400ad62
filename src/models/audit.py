"""
Audit Models for MoneyFlow

Every step of a statement import is logged for audit purposes.
This provides:
1. Traceability of how each ledger entry got there
2. Debugging information when a bank export parses oddly
3. A record of every decision the user took on a conflict

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
All events of one import share a correlation id (the import id).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each stage of the import pipeline has its own event type.
    """
    # Statement intake
    STATEMENT_UPLOADED = "statement_uploaded"
    STATEMENT_READ_FAILED = "statement_read_failed"
    STATEMENT_PARSED = "statement_parsed"

    # Reconciliation
    RECONCILIATION_COMPLETED = "reconciliation_completed"

    # Human decisions
    CONFLICT_RESOLVED = "conflict_resolved"
    CONFLICTS_BULK_RESOLVED = "conflicts_bulk_resolved"
    IMPORT_ABANDONED = "import_abandoned"

    # Persistence
    IMPORT_COMMITTED = "import_committed"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'import', 'transaction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - link related events together
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID linking all events of one import"
    )

    # Event details
    description: str = Field(
        ...,
        description="Human-readable description of the event"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event details"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
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
            "entity_id": str(self.entity_id) if self.entity_id else None,
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
        event = AuditEventBuilder.statement_uploaded(import_id, "march.csv", 2048)
        event = AuditEventBuilder.import_committed(import_id, appended=12, replaced=1)
    """

    @staticmethod
    def statement_uploaded(
        import_id: UUID,
        source_name: str,
        size_bytes: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_UPLOADED,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"Statement uploaded: {source_name}",
            details={
                "source_name": source_name,
                "size_bytes": size_bytes,
            },
            is_user_action=True,
        )

    @staticmethod
    def statement_read_failed(
        import_id: UUID,
        source_name: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_READ_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"Could not read statement: {source_name}",
            details={"source_name": source_name},
            error_message=error_message,
        )

    @staticmethod
    def statement_parsed(
        import_id: UUID,
        parsed: int,
        skipped: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PARSED,
            severity=AuditSeverity.INFO if parsed else AuditSeverity.WARNING,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"Parsed {parsed} transactions ({skipped} rows skipped)",
            details={
                "parsed": parsed,
                "skipped": skipped,
            },
        )

    @staticmethod
    def reconciliation_completed(
        import_id: UUID,
        clean: int,
        conflicts: int,
        duplicates: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=(
                f"Reconciled against ledger: {clean} new, "
                f"{conflicts} conflicts, {duplicates} duplicates"
            ),
            details={
                "clean": clean,
                "conflicts": conflicts,
                "duplicates": duplicates,
            },
        )

    @staticmethod
    def conflict_resolved(
        import_id: UUID,
        candidate_id: int,
        existing_id: int,
        resolution: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFLICT_RESOLVED,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"Conflict with entry {existing_id} resolved: {resolution}",
            details={
                "candidate_id": candidate_id,
                "existing_id": existing_id,
                "resolution": resolution,
            },
            is_user_action=True,
        )

    @staticmethod
    def conflicts_bulk_resolved(
        import_id: UUID,
        resolution: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFLICTS_BULK_RESOLVED,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"{count} remaining conflicts resolved: {resolution}",
            details={
                "resolution": resolution,
                "count": count,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_abandoned(
        import_id: UUID,
        unresolved: int,
        discarded_clean: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_ABANDONED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description="User cancelled the import; nothing was saved",
            details={
                "unresolved": unresolved,
                "discarded_clean": discarded_clean,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_committed(
        import_id: UUID,
        appended: int,
        replaced: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMMITTED,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description=f"Import committed: {appended} added, {replaced} replaced",
            details={
                "appended": appended,
                "replaced": replaced,
            },
        )

    @staticmethod
    def save_failed(
        import_id: UUID,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="import",
            entity_id=import_id,
            correlation_id=import_id,
            description="Ledger commit failed",
            error_message=error_message,
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
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
