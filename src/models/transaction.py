"""
Core Data Models for MoneyFlow

These models define the schemas for everything that flows through the
statement import pipeline:
1. Raw rows coming out of the CSV tokenizer
2. Candidate and ledger transactions
3. Conflict records and the decisions a user can take on them
4. Reports handed back to the UI

DESIGN DECISION: Amounts are Decimal, never float.
Duplicate detection relies on exact amount equality, so we cannot afford
binary rounding noise.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Spending categories.

    The values are the labels shown to the user, so they are
    capitalized and "For Fun" carries a space.
    """
    RENT = "Rent"
    BILLS = "Bills"
    DEBT = "Debt"
    FOR_FUN = "For Fun"
    DINING = "Dining"
    GROCERIES = "Groceries"
    INCOME = "Income"
    OTHER = "Other"


class Resolution(str, Enum):
    """What the user decided to do with one conflicting candidate."""
    KEEP_OLD = "keep_old"    # Discard the candidate
    REPLACE = "replace"      # Overwrite the existing entry, keep its id
    KEEP_BOTH = "keep_both"  # Append the candidate as a new entry


class SessionState(str, Enum):
    """
    Conflict resolution session lifecycle.

    IDLE -> AWAITING_DECISIONS -> COMMITTED
                               -> ABANDONED
    """
    IDLE = "idle"
    AWAITING_DECISIONS = "awaiting_decisions"
    COMMITTED = "committed"
    ABANDONED = "abandoned"


class ImportOutcome(str, Enum):
    """
    Discrete outcomes of an import, so callers can branch without
    parsing messages.
    """
    NOTHING_IMPORTABLE = "nothing_importable"  # No usable rows in the file
    NOTHING_NEW = "nothing_new"                # Every row was already in the ledger
    IMPORTED = "imported"                      # Clean rows committed, no conflicts
    CONFLICTS_PENDING = "conflicts_pending"    # Waiting on user decisions
    COMMITTED = "committed"                    # Session finished and committed
    ABANDONED = "abandoned"                    # User cancelled the session


# =============================================================================
# TOKENIZER OUTPUT
# =============================================================================

class RawRow(NamedTuple):
    """Fields picked out of one CSV line, still as text."""

    line_number: int
    date: str
    description: str
    amount: str


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry or import candidate.

    Ledger entries keep their id for life. Candidates carry a provisional
    id that is only meaningful inside one import run; the ledger hands out
    a real one when the candidate is appended.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        ...,
        description="Unique identifier"
    )
    date: datetime.date = Field(
        ...,
        description="Transaction date"
    )
    description: str = Field(
        default="",
        description="Free-text description from the bank"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: negative is money out, positive is money in"
    )
    category: Category = Field(
        default=Category.OTHER,
        description="Spending category"
    )

    @property
    def iso_date(self) -> str:
        """Date as YYYY-MM-DD."""
        return self.date.isoformat()

    def same_entry(self, other: "Transaction") -> bool:
        """True when date, description and amount are all identical."""
        return (
            self.date == other.date
            and self.description == other.description
            and self.amount == other.amount
        )


class Bill(BaseModel):
    """
    A configured recurring bill.

    The import pipeline only reads bills: their names are matched against
    transaction descriptions during classification.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name as it appears (or partly appears) on statements"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Usual amount of the bill"
    )
    day: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month the bill is due"
    )


# =============================================================================
# RECONCILIATION MODELS
# =============================================================================

class ConflictRecord(BaseModel):
    """
    A candidate that may duplicate an existing ledger entry.

    Lives only as long as the resolution session; never persisted.
    """

    candidate: Transaction
    existing: Transaction

    @property
    def key(self) -> int:
        """Conflicts are addressed by the candidate's provisional id."""
        return self.candidate.id


class ReconciliationResult(BaseModel):
    """Partition of the candidates of one import run."""

    clean_queue: list[Transaction] = Field(
        default_factory=list,
        description="Candidates with no ledger match, safe to append"
    )
    conflicts: list[ConflictRecord] = Field(
        default_factory=list,
        description="Candidates that need a user decision"
    )
    duplicates: list[Transaction] = Field(
        default_factory=list,
        description="Candidates dropped as exact copies of ledger entries"
    )


class LedgerBatch(BaseModel):
    """
    One logical ledger mutation.

    Replacements are keyed by the id of the entry being overwritten.
    """

    appends: list[Transaction] = Field(default_factory=list)
    replacements: dict[int, Transaction] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.appends and not self.replacements

    @field_validator("replacements")
    @classmethod
    def ids_are_preserved(cls, v: dict[int, Transaction]) -> dict[int, Transaction]:
        """A replacement must carry the id of the entry it overwrites."""
        for existing_id, tx in v.items():
            if tx.id != existing_id:
                raise ValueError(
                    f"Replacement for entry {existing_id} carries id {tx.id}"
                )
        return v


# =============================================================================
# REPORTING
# =============================================================================

class ImportReport(BaseModel):
    """
    What happened during one import step.

    Returned both by the initial import and by every session action,
    so the UI has a single shape to render.
    """

    import_id: UUID = Field(default_factory=uuid4)
    outcome: ImportOutcome
    source_name: Optional[str] = None

    # Parsing
    parsed_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)

    # Reconciliation
    clean_count: int = Field(default=0, ge=0)
    conflict_count: int = Field(
        default=0,
        ge=0,
        description="Conflicts still waiting on a decision"
    )
    duplicate_count: int = Field(default=0, ge=0)

    # Ledger mutation
    appended_count: int = Field(default=0, ge=0)
    replaced_count: int = Field(default=0, ge=0)

    @property
    def needs_decisions(self) -> bool:
        return self.outcome == ImportOutcome.CONFLICTS_PENDING
