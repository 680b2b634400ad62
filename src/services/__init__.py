"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    BillListInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillList,
    GoogleSheetsClient,
    GoogleSheetsLedger,
    InMemoryAuditStorage,
    InMemoryBillList,
    InMemoryLedger,
    LedgerInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BillListInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillList",
    "GoogleSheetsClient",
    "GoogleSheetsLedger",
    "InMemoryAuditStorage",
    "InMemoryBillList",
    "InMemoryLedger",
    "LedgerInterface",
    "NotFoundError",
    "StorageError",
]
