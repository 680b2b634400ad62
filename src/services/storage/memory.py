"""
In-Memory Storage Implementation

Process-local ledger, bill list and audit log. Used by the test-suite and
as the fallback when Google Sheets isn't configured.
"""

from typing import Iterable, Optional
from uuid import UUID

from src.models.transaction import Bill, LedgerBatch, Transaction
from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    BillListInterface,
    DuplicateError,
    LedgerInterface,
    NotFoundError,
)


class InMemoryLedger(LedgerInterface):
    """
    Ledger held in a Python list.

    New ids continue from the highest id ever seen, so ids are never
    reused within the process.
    """

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._transactions: list[Transaction] = []
        self._last_id = 0
        for tx in transactions or ():
            if any(existing.id == tx.id for existing in self._transactions):
                raise DuplicateError(f"Duplicate transaction id: {tx.id}")
            self._transactions.append(tx.model_copy())
            self._last_id = max(self._last_id, tx.id)

    def __len__(self) -> int:
        return len(self._transactions)

    def list_transactions(self) -> list[Transaction]:
        return [tx.model_copy() for tx in self._transactions]

    def get(self, transaction_id: int) -> Optional[Transaction]:
        for tx in self._transactions:
            if tx.id == transaction_id:
                return tx.model_copy()
        return None

    def _assign_ids(self, transactions: list[Transaction]) -> list[Transaction]:
        stored = []
        for tx in transactions:
            self._last_id += 1
            stored.append(tx.model_copy(update={"id": self._last_id}))
        return stored

    def append_all(self, transactions: list[Transaction]) -> list[Transaction]:
        stored = self._assign_ids(transactions)
        self._transactions.extend(stored)
        return [tx.model_copy() for tx in stored]

    def _index_of(self, transaction_id: int) -> int:
        for index, tx in enumerate(self._transactions):
            if tx.id == transaction_id:
                return index
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    def replace_by_id(self, transaction_id: int, transaction: Transaction) -> Transaction:
        index = self._index_of(transaction_id)
        stored = transaction.model_copy(update={"id": transaction_id})
        self._transactions[index] = stored
        return stored.model_copy()

    def commit(self, batch: LedgerBatch) -> list[Transaction]:
        """
        Apply the batch atomically.

        Every replacement target is checked before anything changes, so a
        bad batch leaves the ledger as it was.
        """
        updated = list(self._transactions)
        for transaction_id, tx in batch.replacements.items():
            updated[self._index_of(transaction_id)] = tx.model_copy(update={"id": transaction_id})

        appended = self._assign_ids(batch.appends)
        updated.extend(appended)

        self._transactions = updated
        return [tx.model_copy() for tx in appended]


class InMemoryBillList(BillListInterface):
    """Fixed list of bills."""

    def __init__(self, bills: Optional[Iterable[Bill]] = None):
        self._bills = list(bills or ())

    def list_bills(self) -> list[Bill]:
        return [bill.model_copy() for bill in self._bills]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
