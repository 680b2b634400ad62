"""
Record Normalizer

Converts RawRow tuples into candidate transactions:
- MM/DD/YYYY dates become real dates (rendered YYYY-MM-DD)
- Amounts become signed Decimals
- Descriptions are already trimmed and unquoted by the tokenizer

Rows whose date or amount can't be read are dropped (None), never raised.
Candidates come out with category Other; the classifier fills it in.
"""

import re
import time
from datetime import date
from decimal import Decimal, InvalidOperation
from itertools import count
from typing import Iterator, Optional

import structlog

from src.models.transaction import RawRow, Transaction

logger = structlog.get_logger(__name__)

# Leading numeric part of an amount field: "-5.75", "+12", ".5", "1e3", "12.00 USD"
_AMOUNT_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_statement_date(text: str) -> Optional[date]:
    """
    Parse an MM/DD/YYYY-shaped date.

    Month and day may be unpadded ("1/5/2026"). Anything that doesn't split
    into exactly three numeric parts, or isn't a real calendar date,
    gives None.
    """
    parts = [part.strip() for part in text.strip().split("/")]
    if len(parts) != 3 or not all(part.isascii() and part.isdigit() for part in parts):
        return None

    try:
        month, day, year = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def parse_amount(text: str) -> Optional[Decimal]:
    """
    Parse a signed amount from the start of a field.

    Thousands separators are ignored. Trailing text after the number
    is ignored too, so "12.50 USD" reads as 12.50. A field that doesn't
    start with a number ("abc", "$5") gives None.
    """
    match = _AMOUNT_PREFIX.match(text.strip().replace(",", ""))
    if match is None:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def provisional_ids() -> Iterator[int]:
    """
    Ids for the candidates of one import run.

    Seeded from the clock so two runs in one session don't hand out the
    same numbers; the ledger assigns the permanent id on append.
    """
    return count(int(time.time() * 1000))


def normalize_row(row: RawRow, candidate_id: int) -> Optional[Transaction]:
    """Build a candidate from one raw row, or None if it isn't usable."""
    parsed_date = parse_statement_date(row.date)
    if parsed_date is None:
        logger.debug("row_skipped", line_number=row.line_number, reason="bad_date", value=row.date)
        return None

    amount = parse_amount(row.amount)
    if amount is None:
        logger.debug("row_skipped", line_number=row.line_number, reason="bad_amount", value=row.amount)
        return None

    return Transaction(
        id=candidate_id,
        date=parsed_date,
        description=row.description,
        amount=amount,
    )

