"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the ledger,
the configured bill list and the audit log. Google Sheets is the day-to-day
backend; the in-memory backend serves tests and unconfigured installs.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    BillListInterface,
    ConnectionError,
    DuplicateError,
    LedgerInterface,
    LedgerSnapshot,
    NotFoundError,
    StorageError,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillList,
    GoogleSheetsClient,
    GoogleSheetsLedger,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillList,
    InMemoryLedger,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BillListInterface",
    "LedgerInterface",
    "LedgerSnapshot",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillList",
    "GoogleSheetsClient",
    "GoogleSheetsLedger",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBillList",
    "InMemoryLedger",
]
