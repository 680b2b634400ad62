"""
Audit Logger

DESIGN DECISION: Every step of a statement import is logged.
This provides:
1. Traceability of how each ledger entry got there
2. Debugging capability when a bank export parses oddly
3. A history of the user's conflict decisions

The audit logger:
- Gracefully handles failures (a failed audit write never aborts an import)
- Uses the import id as correlation id so one import's events group together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.models.transaction import Resolution
from src.services.storage.interface import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_statement_uploaded(self, import_id: UUID, source_name: str, size_bytes: int) -> None:
        self.log(AuditEventBuilder.statement_uploaded(import_id, source_name, size_bytes))

    def log_statement_read_failed(self, import_id: UUID, source_name: str, error_message: str) -> None:
        self.log(AuditEventBuilder.statement_read_failed(import_id, source_name, error_message))

    def log_statement_parsed(self, import_id: UUID, parsed: int, skipped: int) -> None:
        self.log(AuditEventBuilder.statement_parsed(import_id, parsed, skipped))

    def log_reconciled(
        self,
        import_id: UUID,
        clean: int,
        conflicts: int,
        duplicates: int,
    ) -> None:
        """Log the outcome of matching candidates against the ledger."""
        self.log(
            AuditEventBuilder.reconciliation_completed(
                import_id=import_id,
                clean=clean,
                conflicts=conflicts,
                duplicates=duplicates,
            )
        )

    def log_conflict_resolved(
        self,
        import_id: UUID,
        candidate_id: int,
        existing_id: int,
        resolution: Resolution,
    ) -> None:
        """Log a single user decision."""
        self.log(
            AuditEventBuilder.conflict_resolved(
                import_id=import_id,
                candidate_id=candidate_id,
                existing_id=existing_id,
                resolution=resolution.value,
            )
        )

    def log_bulk_resolved(self, import_id: UUID, resolution: Resolution, count: int) -> None:
        """Log a decision applied to every remaining conflict."""
        self.log(AuditEventBuilder.conflicts_bulk_resolved(import_id, resolution.value, count))

    def log_import_committed(self, import_id: UUID, appended: int, replaced: int) -> None:
        self.log(AuditEventBuilder.import_committed(import_id, appended, replaced))

    def log_import_abandoned(self, import_id: UUID, unresolved: int, discarded_clean: int) -> None:
        self.log(AuditEventBuilder.import_abandoned(import_id, unresolved, discarded_clean))

    def log_save_failed(self, import_id: UUID, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(import_id, error_message))

    def log_error(
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
        self.log(event)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new import.
    Pass it through all subsequent operations.
    """
    return uuid4()
