"""
Abstract Storage Interface

DESIGN DECISION: The import pipeline talks to the ledger only through
this interface. This allows us to:
1. Keep the ledger in Google Sheets for day-to-day use
2. Use in-memory storage for testing
3. Swap in a real database later without touching the pipeline

The interface is intentionally small: the pipeline finds, appends and
overwrites ledger entries. It never deletes them.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional
from uuid import UUID

from src.models.transaction import Bill, LedgerBatch, Transaction
from src.models.audit import AuditEvent


class LedgerSnapshot:
    """
    Read-only copy of the ledger taken at one moment.

    find() searches the copy, so repeated lookups never go back to storage.
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._transactions = list(transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def find(
        self,
        predicate: Callable[[Transaction], bool],
    ) -> Optional[Transaction]:
        """First entry (in ledger order) satisfying the predicate."""
        for tx in self._transactions:
            if predicate(tx):
                return tx
        return None


class LedgerInterface(ABC):
    """
    Abstract interface for the transaction ledger.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """
        All ledger entries, in ledger order.

        Returns:
            List of transactions (copies; mutating them has no effect)
        """
        pass

    def find(
        self,
        predicate: Callable[[Transaction], bool],
    ) -> Optional[Transaction]:
        """
        First ledger entry (in ledger order) satisfying the predicate.

        Args:
            predicate: Test applied to each entry

        Returns:
            The entry if found, None otherwise
        """
        for tx in self.list_transactions():
            if predicate(tx):
                return tx
        return None

    def snapshot(self) -> LedgerSnapshot:
        """
        Read the whole ledger once.

        Use this for many lookups in a row; each find() on a remote
        backend is a full read.
        """
        return LedgerSnapshot(self.list_transactions())

    @abstractmethod
    def append_all(self, transactions: list[Transaction]) -> list[Transaction]:
        """
        Append new entries.

        Provisional ids on the input are ignored; every appended entry
        gets a fresh ledger id.

        Args:
            transactions: Entries to add, in order

        Returns:
            The entries as stored (with their new ids)

        Raises:
            StorageError: If the append fails
        """
        pass

    @abstractmethod
    def replace_by_id(self, transaction_id: int, transaction: Transaction) -> Transaction:
        """
        Overwrite an entry's fields, keeping its id.

        Args:
            transaction_id: Id of the entry to overwrite
            transaction: New field values (its own id is ignored)

        Returns:
            The entry as stored

        Raises:
            NotFoundError: If no entry has that id
            StorageError: If the update fails
        """
        pass

    def commit(self, batch: LedgerBatch) -> list[Transaction]:
        """
        Apply one logical batch: replacements first, then appends.

        Backends that can apply a batch atomically should override this.

        Returns:
            The appended entries as stored
        """
        for transaction_id, tx in batch.replacements.items():
            self.replace_by_id(transaction_id, tx)
        if batch.appends:
            return self.append_all(batch.appends)
        return []


class BillListInterface(ABC):
    """
    Read-only access to the user's configured bills.

    The import pipeline consults bills for classification and never
    changes them.
    """

    @abstractmethod
    def list_bills(self) -> list[Bill]:
        """
        All configured bills.

        Returns:
            List of bills in configuration order
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one statement import).

        Args:
            correlation_id: The correlation identifier

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
