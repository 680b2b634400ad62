"""
Tests for MoneyFlow

Test strategy:
1. Unit tests for individual components (models, tokenizer, rules)
2. Integration tests for the import flow (in-memory storage)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from src.models.transaction import (
    Bill,
    Category,
    ConflictRecord,
    ImportOutcome,
    ImportReport,
    LedgerBatch,
    Transaction,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            id=7,
            date=date(2026, 1, 15),
            description="STARBUCKS STORE #123",
            amount=Decimal("-5.75"),
        )
        assert tx.iso_date == "2026-01-15"
        assert tx.category == Category.OTHER

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from descriptions."""
        tx = Transaction(id=1, date=date(2026, 1, 1), description="  KROGER  ", amount=Decimal("1"))
        assert tx.description == "KROGER"

    def test_transaction_requires_amount(self):
        """Test that an amount is mandatory."""
        with pytest.raises(ValidationError):
            Transaction(id=1, date=date(2026, 1, 1), description="x")

    def test_same_entry_ignores_id_and_category(self):
        """Test that same_entry compares date, description and amount only."""
        a = Transaction(id=1, date=date(2026, 1, 1), description="X", amount=Decimal("-1.00"))
        b = Transaction(
            id=2,
            date=date(2026, 1, 1),
            description="X",
            amount=Decimal("-1"),
            category=Category.DINING,
        )
        assert a.same_entry(b)
        assert not a.same_entry(b.model_copy(update={"description": "Y"}))

    def test_bill_day_bounds(self):
        """Test bill due day must be a day of month."""
        with pytest.raises(ValidationError):
            Bill(name="Rent", day=32)

    def test_bill_requires_name(self):
        """Test bill name cannot be empty."""
        with pytest.raises(ValidationError):
            Bill(name="   ")

    def test_conflict_key_is_candidate_id(self):
        """Test conflicts are addressed by the candidate's id."""
        existing = Transaction(id=1, date=date(2026, 1, 1), amount=Decimal("-400"))
        candidate = Transaction(id=99, date=date(2026, 1, 4), amount=Decimal("-400"))
        assert ConflictRecord(candidate=candidate, existing=existing).key == 99


class TestLedgerBatch:
    """Tests for LedgerBatch model."""

    def test_empty_batch(self):
        """Test is_empty property."""
        assert LedgerBatch().is_empty is True

    def test_replacement_must_keep_id(self):
        """Test that a replacement carrying a different id is rejected."""
        tx = Transaction(id=5, date=date(2026, 1, 1), amount=Decimal("1"))
        with pytest.raises(ValidationError, match="carries id 5"):
            LedgerBatch(replacements={4: tx})

    def test_replacement_with_matching_id(self):
        tx = Transaction(id=4, date=date(2026, 1, 1), amount=Decimal("1"))
        batch = LedgerBatch(replacements={4: tx})
        assert batch.is_empty is False


class TestImportReport:
    """Tests for ImportReport model."""

    def test_needs_decisions(self):
        """Test needs_decisions only for pending conflicts."""
        assert ImportReport(outcome=ImportOutcome.CONFLICTS_PENDING).needs_decisions is True
        assert ImportReport(outcome=ImportOutcome.IMPORTED).needs_decisions is False

    def test_counts_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            ImportReport(outcome=ImportOutcome.IMPORTED, appended_count=-1)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.STATEMENT_UPLOADED,
            description="Test statement uploaded",
        )
        assert event.event_type == AuditEventType.STATEMENT_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.IMPORT_COMMITTED,
            description="Import committed",
            details={"appended": 3},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "import_committed"
        assert log_dict["details"]["appended"] == 3

    def test_audit_event_builder_statement_uploaded(self):
        """Test AuditEventBuilder.statement_uploaded."""
        import_id = uuid4()

        event = AuditEventBuilder.statement_uploaded(
            import_id=import_id,
            source_name="march.csv",
            size_bytes=1024,
        )

        assert event.event_type == AuditEventType.STATEMENT_UPLOADED
        assert event.entity_id == import_id
        assert event.correlation_id == import_id
        assert event.is_user_action is True

    def test_audit_event_builder_parsed_nothing_is_warning(self):
        """Test that an empty parse is flagged as a warning."""
        event = AuditEventBuilder.statement_parsed(uuid4(), parsed=0, skipped=4)
        assert event.severity == AuditSeverity.WARNING

    def test_audit_event_builder_conflict_resolved(self):
        """Test AuditEventBuilder.conflict_resolved."""
        event = AuditEventBuilder.conflict_resolved(
            import_id=uuid4(),
            candidate_id=99,
            existing_id=1,
            resolution="replace",
        )

        assert event.event_type == AuditEventType.CONFLICT_RESOLVED
        assert event.details["existing_id"] == 1
        assert event.is_user_action is True


class TestCategories:
    """Tests for the category enum."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "Rent", "Bills", "Debt", "For Fun",
            "Dining", "Groceries", "Income", "Other",
        ]
        for cat in expected:
            assert Category(cat) is not None

    def test_category_values(self):
        """Test category string values."""
        assert Category.FOR_FUN.value == "For Fun"
        assert Category.GROCERIES.value == "Groceries"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
