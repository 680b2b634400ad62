"""
Data Models Package

This package contains all Pydantic models used in MoneyFlow.
All data flowing through the import pipeline must conform to these schemas.
"""

from src.models.transaction import (
    Bill,
    Category,
    ConflictRecord,
    ImportOutcome,
    ImportReport,
    LedgerBatch,
    RawRow,
    ReconciliationResult,
    Resolution,
    SessionState,
    Transaction,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "Bill",
    "Category",
    "ConflictRecord",
    "ImportOutcome",
    "ImportReport",
    "LedgerBatch",
    "RawRow",
    "ReconciliationResult",
    "Resolution",
    "SessionState",
    "Transaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
