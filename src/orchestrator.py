"""
Main Orchestrator for MoneyFlow

This module ties together all the components and defines the
end-to-end statement import flow:

    file → tokenize → normalize → classify → reconcile → (decide) → commit

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger while conflicts wait for the user
- At most one import is open at a time
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.classification import classify_transaction
from src.config import Settings, get_settings
from src.models.transaction import (
    ImportOutcome,
    ImportReport,
    LedgerBatch,
    Resolution,
    SessionState,
)
from src.parsing import (
    ColumnLayout,
    StatementReadError,
    StatementTokenizer,
    decode_statement,
    normalize_row,
    provisional_ids,
    read_statement_file,
)
from src.reconciliation import ConflictResolutionSession, SessionStateError, reconcile
from src.services.storage import (
    BillListInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillList,
    GoogleSheetsClient,
    GoogleSheetsLedger,
    InMemoryBillList,
    InMemoryLedger,
    LedgerInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


class SessionInProgressError(SessionStateError):
    """A new import was started while another one waits for decisions."""
    pass


class StatementImportFlow:
    """
    Orchestrates the statement import flow.

    Flow:
    1. Read → Whole file into memory (the only async step)
    2. Parse → Tokenize and normalize rows, skipping unusable ones
    3. Classify → One category per candidate
    4. Reconcile → Clean / conflict / duplicate
    5. Commit → Immediately if there are no conflicts
    6. Decide → Otherwise open a ConflictResolutionSession (PAUSE)

    The ledger is never touched while a session is open.
    """

    def __init__(
        self,
        ledger: LedgerInterface,
        bills: BillListInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._ledger = ledger
        self._bills = bills
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = (settings or get_settings()).imports
        self._session: Optional[ConflictResolutionSession] = None

    @property
    def ledger(self) -> LedgerInterface:
        return self._ledger

    @property
    def bills(self) -> BillListInterface:
        return self._bills

    @property
    def active_session(self) -> Optional[ConflictResolutionSession]:
        """The session waiting for decisions, if any."""
        if self._session and self._session.state == SessionState.AWAITING_DECISIONS:
            return self._session
        return None

    def _ensure_idle(self) -> None:
        session = self.active_session
        if session is not None:
            raise SessionInProgressError(
                f"Import {session.import_id} is still waiting for "
                f"{len(session.pending)} decisions"
            )

    def _require_session(self) -> ConflictResolutionSession:
        session = self.active_session
        if session is None:
            raise SessionStateError("No import is waiting for decisions")
        return session

    def _layout(self) -> ColumnLayout:
        return ColumnLayout(
            date=self._settings.default_date_column,
            description=self._settings.default_description_column,
            amount=self._settings.default_amount_column,
        )

    async def import_file(self, path: str | Path) -> ImportReport:
        """
        Import a statement file from disk.

        Raises:
            StatementReadError: File missing, unreadable or not decodable
            SessionInProgressError: Another import is waiting for decisions
        """
        self._ensure_idle()
        path = Path(path)
        import_id = create_correlation_id()

        try:
            text = await read_statement_file(
                path,
                encoding=self._settings.file_encoding,
                max_size_bytes=self._settings.max_upload_size_bytes,
            )
        except StatementReadError as e:
            self._audit_logger.log_statement_read_failed(import_id, path.name, e.reason)
            raise

        self._audit_logger.log_statement_uploaded(
            import_id, path.name, len(text.encode(self._settings.file_encoding))
        )
        return self._run(text, path.name, import_id)

    def import_bytes(self, data: bytes, source_name: str) -> ImportReport:
        """Import an uploaded statement (e.g. from the Streamlit uploader)."""
        self._ensure_idle()
        import_id = create_correlation_id()
        self._audit_logger.log_statement_uploaded(import_id, source_name, len(data))

        try:
            text = decode_statement(
                data,
                source_name,
                encoding=self._settings.file_encoding,
                max_size_bytes=self._settings.max_upload_size_bytes,
            )
        except StatementReadError as e:
            self._audit_logger.log_statement_read_failed(import_id, source_name, e.reason)
            raise

        return self._run(text, source_name, import_id)

    def import_text(self, text: str, source_name: str = "statement.csv") -> ImportReport:
        """Import statement text that is already in memory."""
        self._ensure_idle()
        return self._run(text, source_name, create_correlation_id())

    def _run(self, text: str, source_name: str, import_id: UUID) -> ImportReport:
        # Re-checked here: import_file awaits the read after its first check
        self._ensure_idle()
        log = logger.bind(import_id=str(import_id), source_name=source_name)

        # Parse
        tokenizer = StatementTokenizer(text, defaults=self._layout())
        ids = provisional_ids()
        candidates = []
        unusable = 0
        for row in tokenizer:
            candidate = normalize_row(row, next(ids))
            if candidate is None:
                unusable += 1
            else:
                candidates.append(candidate)
        skipped = tokenizer.skipped + unusable

        self._audit_logger.log_statement_parsed(import_id, len(candidates), skipped)
        report = ImportReport(
            import_id=import_id,
            outcome=ImportOutcome.NOTHING_IMPORTABLE,
            source_name=source_name,
            parsed_count=len(candidates),
            skipped_count=skipped,
        )
        if not candidates:
            log.info("nothing_importable", skipped=skipped)
            return report

        # Classify (bills are read once per import)
        bills = self._bills.list_bills()
        candidates = [classify_transaction(tx, bills) for tx in candidates]

        # Reconcile
        result = reconcile(candidates, self._ledger, self._settings.duplicate_window_days)
        self._audit_logger.log_reconciled(
            import_id,
            clean=len(result.clean_queue),
            conflicts=len(result.conflicts),
            duplicates=len(result.duplicates),
        )
        report = report.model_copy(
            update={
                "clean_count": len(result.clean_queue),
                "duplicate_count": len(result.duplicates),
            }
        )

        if result.conflicts:
            self._session = ConflictResolutionSession(
                ledger=self._ledger,
                result=result,
                report=report,
                audit_logger=self._audit_logger,
            )
            log.info("awaiting_decisions", conflicts=len(result.conflicts))
            return self._session.open()

        if not result.clean_queue:
            log.info("nothing_new", duplicates=len(result.duplicates))
            return report.model_copy(update={"outcome": ImportOutcome.NOTHING_NEW})

        try:
            appended = self._ledger.commit(LedgerBatch(appends=result.clean_queue))
        except StorageError as e:
            self._audit_logger.log_save_failed(import_id, str(e))
            raise

        self._audit_logger.log_import_committed(import_id, appended=len(appended), replaced=0)
        log.info("imported", appended=len(appended))
        return report.model_copy(
            update={
                "outcome": ImportOutcome.IMPORTED,
                "appended_count": len(appended),
            }
        )

    def resolve(self, candidate_id: int, resolution: Resolution) -> ImportReport:
        """Decide one conflict of the open import."""
        return self._require_session().resolve(candidate_id, resolution)

    def resolve_all(self, resolution: Resolution) -> ImportReport:
        """Decide every remaining conflict of the open import at once."""
        return self._require_session().resolve_all(resolution)

    def cancel(self) -> ImportReport:
        """Abandon the open import without touching the ledger."""
        return self._require_session().cancel()


def create_app_components(
    use_storage: bool = True,
) -> tuple[StatementImportFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        (import_flow, sheets_client)
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            ledger = GoogleSheetsLedger(sheets_client)
            bills = GoogleSheetsBillList(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        ledger = InMemoryLedger()
        bills = InMemoryBillList()
        audit_logger = AuditLogger()  # Local-only logging

    import_flow = StatementImportFlow(
        ledger=ledger,
        bills=bills,
        audit_logger=audit_logger,
    )

    return import_flow, sheets_client
