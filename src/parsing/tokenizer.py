"""
CSV Statement Tokenizer

Turns the raw text of a bank export into RawRow tuples.

Bank exports are only semi-structured:
- Some start with account summary lines before the real header
- Some have no header at all
- Most end with footer/total lines that are not transactions

So we look for a header that mentions both "date" and "description",
use it to locate the columns we need, and fall back to the column
positions of the export we know best for anything it doesn't name.
Lines that don't look like transactions are skipped, not reported as errors.
"""

import csv
from typing import Iterator, NamedTuple, Optional

import structlog

from src.models.transaction import RawRow

logger = structlog.get_logger(__name__)

# A line is a header when it mentions both of these (case-insensitive)
HEADER_MARKERS = ("date", "description")

# Rows with fewer columns than this are footers or junk
MIN_COLUMNS = 3


class ColumnLayout(NamedTuple):
    """Column index for each field the pipeline needs."""

    date: int
    description: int
    amount: int


DEFAULT_LAYOUT = ColumnLayout(date=0, description=2, amount=5)


def clean_field(value: str) -> str:
    """Trim a field and strip the double quotes around it, if any."""
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def split_columns(line: str) -> list[str]:
    """
    Split one CSV line into cleaned fields.

    Commas inside double-quoted fields are kept as part of the value.
    A line the csv module cannot make sense of yields no fields.
    """
    try:
        fields = next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error as e:
        logger.debug("unsplittable_line", error=str(e))
        return []
    return [clean_field(field) for field in fields]


def is_header_line(line: str) -> bool:
    lowered = line.lower()
    return all(marker in lowered for marker in HEADER_MARKERS)


def find_header(lines: list[str]) -> Optional[int]:
    """Index of the first header-looking line, scanning from the top."""
    for index, line in enumerate(lines):
        if is_header_line(line):
            return index
    return None


def _first_containing(headers: list[str], keyword: str) -> Optional[int]:
    for index, header in enumerate(headers):
        if keyword in header:
            return index
    return None


def resolve_layout(header_fields: list[str], defaults: ColumnLayout) -> ColumnLayout:
    """
    Locate date/description/amount columns from header text.

    Each role takes the first column whose header contains its keyword;
    a role with no such column keeps its default index.
    """
    headers = [field.lower() for field in header_fields]

    date_idx = _first_containing(headers, "date")
    description_idx = _first_containing(headers, "description")
    amount_idx = _first_containing(headers, "amount")

    return ColumnLayout(
        date=defaults.date if date_idx is None else date_idx,
        description=defaults.description if description_idx is None else description_idx,
        amount=defaults.amount if amount_idx is None else amount_idx,
    )


def _field(columns: list[str], index: int) -> str:
    return columns[index] if index < len(columns) else ""


class StatementTokenizer:
    """
    Single-pass iterator of RawRow over a statement's text.

    Not restartable: once consumed, build a new tokenizer.
    `skipped` counts the non-blank lines that were dropped.

    Usage:
        tokenizer = StatementTokenizer(text)
        for row in tokenizer:
            ...
        print(tokenizer.skipped)
    """

    def __init__(
        self,
        text: str,
        defaults: ColumnLayout = DEFAULT_LAYOUT,
    ):
        self._lines = text.splitlines()
        self.skipped = 0

        header_index = find_header(self._lines)
        self.has_header = header_index is not None

        if header_index is None:
            self.layout = defaults
            self._start = 0
        else:
            self.layout = resolve_layout(
                split_columns(self._lines[header_index]),
                defaults,
            )
            self._start = header_index + 1

        logger.debug(
            "statement_layout",
            has_header=self.has_header,
            date_column=self.layout.date,
            description_column=self.layout.description,
            amount_column=self.layout.amount,
        )

        self._rows = self._tokenize()

    def __iter__(self) -> Iterator[RawRow]:
        return self

    def __next__(self) -> RawRow:
        return next(self._rows)

    def _tokenize(self) -> Iterator[RawRow]:
        for line_number, line in enumerate(self._lines[self._start:], start=self._start + 1):
            line = line.strip()
            if not line:
                continue

            columns = split_columns(line)
            if len(columns) < MIN_COLUMNS:
                self._skip(line_number, "too_few_columns")
                continue

            date_text = _field(columns, self.layout.date)
            amount_text = _field(columns, self.layout.amount)
            if not date_text or not amount_text:
                self._skip(line_number, "missing_date_or_amount")
                continue

            yield RawRow(
                line_number=line_number,
                date=date_text,
                description=_field(columns, self.layout.description),
                amount=amount_text,
            )

    def _skip(self, line_number: int, reason: str) -> None:
        self.skipped += 1
        logger.debug("row_skipped", line_number=line_number, reason=reason)
