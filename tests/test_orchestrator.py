"""
End-to-end tests for StatementImportFlow.

Every test drives the whole pipeline against in-memory storage.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.transaction import Bill, Category, ImportOutcome, ImportReport, Resolution
from src.orchestrator import (
    SessionInProgressError,
    StatementImportFlow,
    create_app_components,
)
from src.parsing import StatementReadError
from src.reconciliation import SessionStateError
from src.services.storage import InMemoryBillList, InMemoryLedger

STATEMENT = (
    "Account activity for 01/01/2026 - 01/31/2026\n"
    "Date,Reference,Description,Type,Memo,Amount\n"
    "01/15/2026,8811,STARBUCKS STORE #123,DEBIT,,-5.75\n"
    '01/16/2026,8812,"KROGER #456, ATLANTA GA",DEBIT,,"-1,020.40"\n'
    "01/17/2026,8813,ACME PAYROLL,CREDIT,,2500.00\n"
    "Total,,,,,\n"
)


@pytest.fixture
def flow(ledger, bills, audit_logger):
    return StatementImportFlow(ledger=ledger, bills=bills, audit_logger=audit_logger)


@pytest.fixture
def empty_flow(audit_logger):
    return StatementImportFlow(
        ledger=InMemoryLedger(),
        bills=InMemoryBillList(),
        audit_logger=audit_logger,
    )


class TestImportScenarios:
    """The reference scenarios, end to end."""

    def test_headerless_starbucks_row(self, empty_flow):
        """Test a headerless row becomes a Dining candidate and is imported."""
        report = empty_flow.import_text("01/15/2026,,STARBUCKS STORE #123,,,-5.75")

        assert report.outcome == ImportOutcome.IMPORTED
        assert report.appended_count == 1

        [tx] = empty_flow.ledger.list_transactions()
        assert tx.iso_date == "2026-01-15"
        assert tx.description == "STARBUCKS STORE #123"
        assert tx.amount == Decimal("-5.75")
        assert tx.category == Category.DINING

    def test_same_amount_three_days_apart_conflicts(self, flow, ledger):
        """Test a -400.00 row three days after a ledger entry opens a session."""
        before = ledger.list_transactions()

        report = flow.import_text("01/04/2026,,RENT PAYMENT,,,-400.00")

        assert report.outcome == ImportOutcome.CONFLICTS_PENDING
        assert report.conflict_count == 1
        assert report.clean_count == 0
        assert ledger.list_transactions() == before
        assert flow.active_session is not None

    def test_non_numeric_amount_skipped(self, flow, ledger):
        before = ledger.list_transactions()

        report = flow.import_text("01/15/2026,,SOMETHING,,,abc")

        assert report.outcome == ImportOutcome.NOTHING_IMPORTABLE
        assert report.skipped_count == 1
        assert ledger.list_transactions() == before
        assert flow.active_session is None

    def test_reimport_is_idempotent(self, empty_flow):
        """Test importing the same statement twice adds nothing the second time."""
        first = empty_flow.import_text(STATEMENT)
        second = empty_flow.import_text(STATEMENT)

        assert first.outcome == ImportOutcome.IMPORTED
        assert first.appended_count == 3
        assert second.outcome == ImportOutcome.NOTHING_NEW
        assert second.clean_count == 0
        assert second.conflict_count == 0
        assert second.duplicate_count == 3
        assert len(empty_flow.ledger.list_transactions()) == 3


class TestImportPipeline:
    """Tests for parsing, classification and reporting through the flow."""

    def test_statement_with_header(self, empty_flow):
        report = empty_flow.import_text(STATEMENT)

        assert report.parsed_count == 3
        assert report.skipped_count == 1
        by_description = {tx.description: tx for tx in empty_flow.ledger.list_transactions()}
        assert by_description["KROGER #456, ATLANTA GA"].amount == Decimal("-1020.40")
        assert by_description["KROGER #456, ATLANTA GA"].category == Category.GROCERIES
        assert by_description["ACME PAYROLL"].category == Category.INCOME

    def test_empty_file(self, empty_flow):
        assert empty_flow.import_text("").outcome == ImportOutcome.NOTHING_IMPORTABLE

    def test_configured_bills_used(self, audit_logger):
        flow = StatementImportFlow(
            ledger=InMemoryLedger(),
            bills=InMemoryBillList([Bill(name="Car Loan", amount=Decimal("250"), day=15)]),
            audit_logger=audit_logger,
        )
        flow.import_text("01/15/2026,,CAR LOAN AUTOPAY,,,-250.00")

        [tx] = flow.ledger.list_transactions()
        assert tx.category == Category.DEBT

    def test_ledger_ids_replace_provisional_ids(self, flow):
        flow.import_text("02/01/2026,,KROGER,,,-10.00")
        assert max(tx.id for tx in flow.ledger.list_transactions()) == 3

    def test_import_bytes(self, empty_flow):
        report = empty_flow.import_bytes(STATEMENT.encode("utf-8"), "january.csv")

        assert report.source_name == "january.csv"
        assert report.outcome == ImportOutcome.IMPORTED

    def test_import_bytes_undecodable(self, empty_flow, audit_storage):
        """Test a decoding failure raises before the ledger is touched."""
        with pytest.raises(StatementReadError):
            empty_flow.import_bytes(b"\xff\xfe\xfa", "bad.csv")

        assert empty_flow.ledger.list_transactions() == []
        types = [e.event_type for e in audit_storage.get_recent_events()]
        assert AuditEventType.STATEMENT_READ_FAILED in types

    def test_import_file(self, empty_flow, tmp_path):
        path = tmp_path / "january.csv"
        path.write_text(STATEMENT, encoding="utf-8")

        report = asyncio.run(empty_flow.import_file(path))

        assert report.outcome == ImportOutcome.IMPORTED
        assert report.source_name == "january.csv"

    def test_import_missing_file(self, empty_flow, tmp_path):
        with pytest.raises(StatementReadError):
            asyncio.run(empty_flow.import_file(tmp_path / "missing.csv"))

    def test_unreadable_date_skipped_alongside_good_row(self, empty_flow):
        """Test a date with non-ASCII digits skips its row instead of failing the import."""
        report = empty_flow.import_text(
            "01/15/2026,,OK ROW,,,-1.00\n01/²/2026,,BAD,,,-2.00\n"
        )

        assert report.outcome == ImportOutcome.IMPORTED
        assert report.appended_count == 1
        assert report.skipped_count == 1
        [tx] = empty_flow.ledger.list_transactions()
        assert tx.description == "OK ROW"


class TestSessionThroughFlow:
    """Tests for conflict handling via the flow."""

    CONFLICTING = (
        "01/04/2026,,RENT PAYMENT,,,-400.00\n"
        "01/20/2026,,KROGER,,,-12.00\n"
    )

    def test_second_import_blocked_while_open(self, flow):
        flow.import_text(self.CONFLICTING)
        with pytest.raises(SessionInProgressError):
            flow.import_text("02/01/2026,,KROGER,,,-10.00")

    def test_resolve_commits_and_frees_flow(self, flow, ledger):
        flow.import_text(self.CONFLICTING)
        [conflict] = flow.active_session.pending

        report = flow.resolve(conflict.key, Resolution.REPLACE)

        assert report.outcome == ImportOutcome.COMMITTED
        assert report.appended_count == 1
        assert report.replaced_count == 1
        assert ledger.get(1).description == "RENT PAYMENT"
        assert ledger.get(1).category == Category.DEBT
        assert flow.active_session is None
        assert flow.import_text("02/01/2026,,KROGER,,,-10.00").outcome == ImportOutcome.IMPORTED

    def test_resolve_all(self, flow, ledger, rent_entry):
        flow.import_text(self.CONFLICTING)

        report = flow.resolve_all(Resolution.KEEP_OLD)

        assert report.outcome == ImportOutcome.COMMITTED
        assert ledger.get(1) == rent_entry
        assert len(ledger) == 3

    def test_cancel(self, flow, ledger):
        before = ledger.list_transactions()
        flow.import_text(self.CONFLICTING)

        report = flow.cancel()

        assert report.outcome == ImportOutcome.ABANDONED
        assert ledger.list_transactions() == before
        assert flow.active_session is None

    def test_concurrent_file_imports_open_one_session(self, flow, tmp_path):
        """Test two overlapping file imports cannot both open a session."""
        first = tmp_path / "first.csv"
        first.write_text("01/04/2026,,RENT PAYMENT,,,-400.00\n", encoding="utf-8")
        second = tmp_path / "second.csv"
        second.write_text("01/03/2026,,OTHER RENT,,,-400.00\n", encoding="utf-8")

        async def import_both():
            return await asyncio.gather(
                flow.import_file(first),
                flow.import_file(second),
                return_exceptions=True,
            )

        results = asyncio.run(import_both())

        reports = [r for r in results if isinstance(r, ImportReport)]
        errors = [r for r in results if isinstance(r, SessionInProgressError)]
        assert len(reports) == 1
        assert len(errors) == 1
        assert reports[0].outcome == ImportOutcome.CONFLICTS_PENDING
        assert flow.active_session.import_id == reports[0].import_id

    def test_no_session_to_resolve(self, flow):
        with pytest.raises(SessionStateError):
            flow.resolve(1, Resolution.KEEP_OLD)
        with pytest.raises(SessionStateError):
            flow.cancel()


class TestImportAudit:

    def test_events_share_import_id(self, empty_flow, audit_storage):
        report = empty_flow.import_text(STATEMENT, "january.csv")

        events = audit_storage.get_events_by_correlation_id(report.import_id)
        types = [e.event_type for e in events]
        assert types == [
            AuditEventType.STATEMENT_PARSED,
            AuditEventType.RECONCILIATION_COMPLETED,
            AuditEventType.IMPORT_COMMITTED,
        ]


class TestCreateAppComponents:

    def test_without_storage(self):
        flow, sheets_client = create_app_components(use_storage=False)

        assert sheets_client is None
        assert isinstance(flow.ledger, InMemoryLedger)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
