"""Shared fixtures: everything runs against in-memory storage."""

from datetime import date
from decimal import Decimal

import pytest

from src.audit import AuditLogger
from src.models.transaction import Category, Transaction
from src.services.storage import InMemoryAuditStorage, InMemoryBillList, InMemoryLedger


def make_tx(
    id: int,
    day: date,
    amount: str,
    description: str = "",
    category: Category = Category.OTHER,
) -> Transaction:
    return Transaction(
        id=id,
        date=day,
        description=description,
        amount=Decimal(amount),
        category=category,
    )


@pytest.fixture
def rent_entry() -> Transaction:
    return make_tx(1, date(2026, 1, 1), "-400.00", "FLEX FINANCE", Category.RENT)


@pytest.fixture
def ledger(rent_entry) -> InMemoryLedger:
    return InMemoryLedger([
        rent_entry,
        make_tx(2, date(2026, 1, 3), "-5.75", "STARBUCKS STORE #123", Category.DINING),
    ])


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def bills() -> InMemoryBillList:
    return InMemoryBillList()
