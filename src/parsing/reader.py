"""
Statement file reading.

Reading the file is the only asynchronous step of an import: nothing is
parsed, classified or reconciled until the whole text is in memory.
A file that can't be read or decoded fails the import before the ledger
is touched.
"""

import asyncio
from pathlib import Path
from typing import Optional


class StatementReadError(Exception):
    """The statement file could not be read or decoded."""

    def __init__(self, source_name: str, reason: str):
        super().__init__(f"Could not read {source_name}: {reason}")
        self.source_name = source_name
        self.reason = reason


def decode_statement(
    data: bytes,
    source_name: str,
    encoding: str = "utf-8",
    max_size_bytes: Optional[int] = None,
) -> str:
    """Decode uploaded bytes into statement text."""
    if max_size_bytes is not None and len(data) > max_size_bytes:
        raise StatementReadError(
            source_name,
            f"file is {len(data)} bytes, limit is {max_size_bytes}",
        )
    try:
        # utf-8-sig drops the BOM some banks prepend
        codec = "utf-8-sig" if encoding.lower().replace("_", "-") == "utf-8" else encoding
        return data.decode(codec)
    except UnicodeDecodeError as e:
        raise StatementReadError(source_name, f"not valid {encoding} text ({e.reason})") from e


async def read_statement_file(
    path: str | Path,
    encoding: str = "utf-8",
    max_size_bytes: Optional[int] = None,
) -> str:
    """
    Read a statement file fully into memory without blocking the caller.

    Raises:
        StatementReadError: If the file is missing, unreadable, too large
            or not valid text in the given encoding
    """
    path = Path(path)
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise StatementReadError(path.name, e.strerror or str(e)) from e

    return decode_statement(data, path.name, encoding, max_size_bytes)
