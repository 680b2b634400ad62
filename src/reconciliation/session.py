"""
Conflict Resolution Session

Holds the outcome of one reconciliation while the user decides what to do
with each conflicting candidate.

STATE MACHINE:
    IDLE --open()--> AWAITING_DECISIONS --last decision / bulk--> COMMITTED
                                        --cancel()-------------> ABANDONED

Decisions are only recorded while the session is open. Nothing reaches the
ledger until the final decision (or a bulk decision), at which point the
clean queue and every decision are written as a single LedgerBatch.
Cancelling discards everything, clean queue included.
"""

from typing import Optional
from uuid import UUID

import structlog

from src.audit.logger import AuditLogger
from src.models.transaction import (
    ConflictRecord,
    ImportOutcome,
    ImportReport,
    LedgerBatch,
    ReconciliationResult,
    Resolution,
    SessionState,
)
from src.services.storage.interface import LedgerInterface, StorageError

logger = structlog.get_logger(__name__)

BULK_RESOLUTIONS = (Resolution.KEEP_OLD, Resolution.REPLACE)


class SessionStateError(Exception):
    """An action that the session's current state does not allow."""
    pass


class ConflictResolutionSession:
    """
    One user-driven pass over the conflicts of a single import.

    Conflicts are addressed by the candidate's provisional id.
    """

    def __init__(
        self,
        ledger: LedgerInterface,
        result: ReconciliationResult,
        report: ImportReport,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            ledger: Ledger the batch is committed to
            result: Reconciliation output for this import
            report: Report of the import so far; session reports extend it
            audit_logger: Optional audit logger
        """
        self._ledger = ledger
        self._clean_queue = list(result.clean_queue)
        self._conflicts = list(result.conflicts)
        self._pending: dict[int, ConflictRecord] = {c.key: c for c in self._conflicts}
        self._decisions: dict[int, Resolution] = {}
        self._report = report
        self._audit = audit_logger or AuditLogger()
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def import_id(self) -> UUID:
        return self._report.import_id

    @property
    def pending(self) -> list[ConflictRecord]:
        """Unresolved conflicts, in reconciliation order."""
        return [c for c in self._conflicts if c.key in self._pending]

    @property
    def clean_queue(self) -> list:
        return list(self._clean_queue)

    @property
    def decisions(self) -> dict[int, Resolution]:
        return dict(self._decisions)

    def _require(self, state: SessionState) -> None:
        if self._state != state:
            raise SessionStateError(
                f"Session is {self._state.value}, expected {state.value}"
            )

    def _build_report(self, outcome: ImportOutcome, **updates) -> ImportReport:
        return self._report.model_copy(
            update={
                "outcome": outcome,
                "conflict_count": len(self._pending),
                **updates,
            }
        )

    def open(self) -> ImportReport:
        """Start waiting for decisions."""
        self._require(SessionState.IDLE)
        if not self._conflicts:
            raise SessionStateError("A session needs at least one conflict")

        self._state = SessionState.AWAITING_DECISIONS
        logger.info(
            "session_opened",
            import_id=str(self.import_id),
            conflicts=len(self._conflicts),
            clean=len(self._clean_queue),
        )
        return self._build_report(ImportOutcome.CONFLICTS_PENDING)

    def _batch_for(self, decisions: dict[int, Resolution]) -> LedgerBatch:
        appends = []
        replacements = {}
        for conflict in self._conflicts:
            resolution = decisions[conflict.key]
            if resolution == Resolution.KEEP_BOTH:
                appends.append(conflict.candidate)
            elif resolution == Resolution.REPLACE:
                existing_id = conflict.existing.id
                replacements[existing_id] = conflict.candidate.model_copy(
                    update={"id": existing_id}
                )
        # Kept candidates go in ahead of the clean queue
        return LedgerBatch(appends=appends + self._clean_queue, replacements=replacements)

    def _commit(self, decisions: dict[int, Resolution]) -> ImportReport:
        batch = self._batch_for(decisions)
        try:
            appended = self._ledger.commit(batch)
        except StorageError as e:
            self._audit.log_save_failed(self.import_id, str(e))
            raise

        self._decisions = decisions
        self._pending.clear()
        self._state = SessionState.COMMITTED
        self._audit.log_import_committed(
            self.import_id,
            appended=len(appended),
            replaced=len(batch.replacements),
        )
        return self._build_report(
            ImportOutcome.COMMITTED,
            appended_count=len(appended),
            replaced_count=len(batch.replacements),
        )

    def resolve(self, candidate_id: int, resolution: Resolution) -> ImportReport:
        """
        Record a decision for one conflict.

        The last decision commits the whole import.

        Raises:
            SessionStateError: Session not open, or no such pending conflict
            StorageError: The commit triggered by the last decision failed;
                the decision is not recorded
        """
        self._require(SessionState.AWAITING_DECISIONS)
        resolution = Resolution(resolution)
        conflict = self._pending.get(candidate_id)
        if conflict is None:
            raise SessionStateError(f"No pending conflict for candidate {candidate_id}")

        decisions = {**self._decisions, candidate_id: resolution}
        if len(self._pending) == 1:
            report = self._commit(decisions)
        else:
            self._decisions = decisions
            del self._pending[candidate_id]
            report = self._build_report(ImportOutcome.CONFLICTS_PENDING)

        self._audit.log_conflict_resolved(
            self.import_id,
            candidate_id=candidate_id,
            existing_id=conflict.existing.id,
            resolution=resolution,
        )
        return report

    def resolve_all(self, resolution: Resolution) -> ImportReport:
        """
        Apply one decision to every remaining conflict and commit.

        Only keep_old and replace are allowed in bulk.
        """
        self._require(SessionState.AWAITING_DECISIONS)
        resolution = Resolution(resolution)
        if resolution not in BULK_RESOLUTIONS:
            raise SessionStateError(f"{resolution.value} cannot be applied in bulk")

        remaining = len(self._pending)
        decisions = dict(self._decisions)
        for candidate_id in self._pending:
            decisions[candidate_id] = resolution

        report = self._commit(decisions)
        self._audit.log_bulk_resolved(self.import_id, resolution, remaining)
        return report

    def cancel(self) -> ImportReport:
        """Abandon the import. The ledger is left untouched."""
        self._require(SessionState.AWAITING_DECISIONS)
        unresolved = len(self._pending)
        self._state = SessionState.ABANDONED
        self._audit.log_import_abandoned(
            self.import_id,
            unresolved=unresolved,
            discarded_clean=len(self._clean_queue),
        )
        return self._build_report(ImportOutcome.ABANDONED)
