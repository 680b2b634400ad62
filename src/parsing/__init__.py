"""Statement parsing package: file reading, CSV tokenizing and row normalization."""

from src.parsing.normalizer import (
    normalize_row,
    parse_amount,
    parse_statement_date,
    provisional_ids,
)
from src.parsing.reader import (
    StatementReadError,
    decode_statement,
    read_statement_file,
)
from src.parsing.tokenizer import (
    DEFAULT_LAYOUT,
    ColumnLayout,
    StatementTokenizer,
    split_columns,
)

__all__ = [
    "ColumnLayout",
    "DEFAULT_LAYOUT",
    "StatementReadError",
    "StatementTokenizer",
    "decode_statement",
    "normalize_row",
    "parse_amount",
    "parse_statement_date",
    "provisional_ids",
    "read_statement_file",
    "split_columns",
]
