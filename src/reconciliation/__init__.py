"""Matching candidates against the ledger and resolving the conflicts."""

from src.reconciliation.reconciler import DEFAULT_WINDOW_DAYS, reconcile, within_window
from src.reconciliation.session import ConflictResolutionSession, SessionStateError

__all__ = [
    "ConflictResolutionSession",
    "DEFAULT_WINDOW_DAYS",
    "SessionStateError",
    "reconcile",
    "within_window",
]
