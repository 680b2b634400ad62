"""
Duplicate Reconciler

Matches import candidates against the ledger.

A candidate "matches" a ledger entry when the amounts are exactly equal
and the dates are at most `window_days` apart (inclusive). Description is
not part of the match: two unrelated payments of the same amount a few
days apart are flagged for the user on purpose.
"""

from typing import Iterable

import structlog

from src.models.transaction import ConflictRecord, ReconciliationResult, Transaction
from src.services.storage.interface import LedgerInterface

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_DAYS = 4


def within_window(candidate: Transaction, existing: Transaction, window_days: int) -> bool:
    """Same amount and dates no more than `window_days` apart."""
    return (
        candidate.amount == existing.amount
        and abs((candidate.date - existing.date).days) <= window_days
    )


def reconcile(
    candidates: Iterable[Transaction],
    ledger: LedgerInterface,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> ReconciliationResult:
    """
    Partition candidates into clean, conflicting and duplicate.

    An exact copy of any ledger entry in the window is a duplicate and is
    dropped. Otherwise the first window match (in ledger order) becomes the
    conflict partner. Each partition keeps the input order.
    """
    result = ReconciliationResult()
    # One read of the ledger for the whole batch
    view = ledger.snapshot()

    for candidate in candidates:
        exact = view.find(
            lambda tx: within_window(candidate, tx, window_days) and candidate.same_entry(tx)
        )
        if exact is not None:
            logger.debug(
                "candidate_duplicate",
                candidate_id=candidate.id,
                existing_id=exact.id,
            )
            result.duplicates.append(candidate)
            continue

        match = view.find(lambda tx: within_window(candidate, tx, window_days))
        if match is None:
            result.clean_queue.append(candidate)
        else:
            logger.debug(
                "candidate_conflict",
                candidate_id=candidate.id,
                existing_id=match.id,
            )
            result.conflicts.append(ConflictRecord(candidate=candidate, existing=match))

    logger.info(
        "reconciliation_finished",
        clean=len(result.clean_queue),
        conflicts=len(result.conflicts),
        duplicates=len(result.duplicates),
    )
    return result
