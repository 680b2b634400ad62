"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. The ledger stays readable (and hand-editable) in a spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions: a ledger batch is written with one batch update for
  replacements followed by one append for new rows. Replacement targets
  are all checked before either call is made.
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so the import pipeline
does not know it is talking to a spreadsheet.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.transaction import Bill, Category, LedgerBatch, Transaction
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage.interface import (
    AuditStorageInterface,
    BillListInterface,
    ConnectionError,
    LedgerInterface,
    NotFoundError,
    StorageError,
)

logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "date",
    "description",
    "amount",
    "category",
]

# Column mappings for Bills sheet
BILL_COLUMNS = [
    "id",
    "name",
    "amount",
    "day",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_ROW_ERRORS = (ValueError, IndexError, InvalidOperation, ValidationError)


def _column_letter(count: int) -> str:
    """Spreadsheet letter of the last column (A..Z is plenty here)."""
    return chr(ord("A") + count - 1)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 2000
        )

    def get_bills_sheet(self) -> gspread.Worksheet:
        """Get or create the Bills worksheet."""
        return self._get_or_create(
            self._settings.bills_sheet_name, BILL_COLUMNS, 100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000  # More rows for audit log
        )


class GoogleSheetsLedger(LedgerInterface):
    """
    Google Sheets implementation of the transaction ledger.

    One transaction per row, in the order they were added.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _tx_to_row(self, tx: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            str(tx.id),
            tx.iso_date,
            tx.description,
            str(tx.amount),
            tx.category.value,
        ]

    def _row_to_tx(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        return Transaction(
            id=int(row[0]),
            date=date.fromisoformat(row[1]),
            description=row[2],
            amount=Decimal(row[3]),
            category=Category(row[4]) if len(row) > 4 and row[4] else Category.OTHER,
        )

    def _load(self) -> tuple[gspread.Worksheet, list[tuple[int, Transaction]]]:
        """Sheet plus (sheet_row_number, transaction) for every readable row."""
        sheet = self._client.get_transactions_sheet()
        loaded = []
        # Row 1 is the header
        for row_number, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                loaded.append((row_number, self._row_to_tx(row)))
            except _ROW_ERRORS as e:
                logger.warning("ledger_row_unreadable", row_number=row_number, error=str(e))
        return sheet, loaded

    def _row_range(self, row_number: int) -> str:
        return f"A{row_number}:{_column_letter(len(TRANSACTION_COLUMNS))}{row_number}"

    def list_transactions(self) -> list[Transaction]:
        try:
            _, loaded = self._load()
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to list transactions: {e}")
        return [tx for _, tx in loaded]

    def _with_new_ids(
        self,
        loaded: list[tuple[int, Transaction]],
        transactions: list[Transaction],
    ) -> list[Transaction]:
        next_id = max((tx.id for _, tx in loaded), default=0) + 1
        return [
            tx.model_copy(update={"id": next_id + offset})
            for offset, tx in enumerate(transactions)
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_all(self, transactions: list[Transaction]) -> list[Transaction]:
        """Append transactions with fresh ids."""
        if not transactions:
            return []
        try:
            sheet, loaded = self._load()
            stored = self._with_new_ids(loaded, transactions)
            sheet.append_rows(
                [self._tx_to_row(tx) for tx in stored],
                value_input_option="RAW",
            )
            return stored
        except Exception as e:
            raise StorageError(f"Failed to append transactions: {e}")

    def replace_by_id(self, transaction_id: int, transaction: Transaction) -> Transaction:
        """Overwrite one row in place."""
        try:
            sheet, loaded = self._load()
            for row_number, tx in loaded:
                if tx.id == transaction_id:
                    stored = transaction.model_copy(update={"id": transaction_id})
                    sheet.update(
                        range_name=self._row_range(row_number),
                        values=[self._tx_to_row(stored)],
                        value_input_option="RAW",
                    )
                    return stored

            raise NotFoundError(f"Transaction not found: {transaction_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to replace transaction: {e}")

    def commit(self, batch: LedgerBatch) -> list[Transaction]:
        """Write all replacements in one batch update, then append new rows."""
        if batch.is_empty:
            return []
        try:
            sheet, loaded = self._load()
            row_numbers = {tx.id: row_number for row_number, tx in loaded}

            missing = [tid for tid in batch.replacements if tid not in row_numbers]
            if missing:
                raise NotFoundError(f"Transactions not found: {missing}")

            updates = [
                {
                    "range": self._row_range(row_numbers[tid]),
                    "values": [self._tx_to_row(tx)],
                }
                for tid, tx in batch.replacements.items()
            ]
            if updates:
                sheet.batch_update(updates, value_input_option="RAW")

            appended = self._with_new_ids(loaded, batch.appends)
            if appended:
                sheet.append_rows(
                    [self._tx_to_row(tx) for tx in appended],
                    value_input_option="RAW",
                )
            return appended
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to commit ledger batch: {e}")


class GoogleSheetsBillList(BillListInterface):
    """Bills configured by the user in the Bills sheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_bill(self, row: list) -> Bill:
        """Convert a spreadsheet row to a Bill."""
        return Bill(
            id=int(row[0]) if row[0] else None,
            name=row[1],
            amount=Decimal(row[2]) if len(row) > 2 and row[2] else Decimal("0"),
            day=int(row[3]) if len(row) > 3 and row[3] else 1,
        )

    def list_bills(self) -> list[Bill]:
        try:
            sheet = self._client.get_bills_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list bills: {e}")

        bills = []
        for row in all_rows:
            if len(row) < 2 or not row[1]:
                continue
            try:
                bills.append(self._row_to_bill(row))
            except _ROW_ERRORS as e:
                logger.warning("bill_row_unreadable", row=row, error=str(e))
        return bills


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: AuditEvent) -> list:
        """Convert an AuditEvent to a spreadsheet row."""
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.entity_type or "",
            str(event.entity_id) if event.entity_id else "",
            str(event.correlation_id) if event.correlation_id else "",
            event.description,
            json.dumps(event.details) if event.details else "",
            event.error_message or "",
            str(event.is_user_action),
        ]

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (*_ROW_ERRORS, json.JSONDecodeError):
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
