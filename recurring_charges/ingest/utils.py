"""Ingest utilities shared by the CLI and library callers."""

from __future__ import annotations

from os import PathLike
from pathlib import Path

# Exports larger than this are not a single statement.
MAX_STATEMENT_BYTES = 20 * 1024 * 1024


def load_statement_text(path: str | PathLike[str]) -> str:
    """Read a statement export as text.

    A UTF-8 byte-order mark is dropped. Undecodable bytes are replaced rather
    than failing the whole file; the affected cells surface as row-level parse
    errors downstream.

    Raises ``FileNotFoundError``/``PermissionError`` from the filesystem and
    ``ValueError`` when the file is larger than :data:`MAX_STATEMENT_BYTES`.
    """

    p = Path(path)
    size = p.stat().st_size
    if size > MAX_STATEMENT_BYTES:
        raise ValueError(
            f"statement file too large: {size} bytes (limit {MAX_STATEMENT_BYTES})"
        )
    return p.read_text(encoding="utf-8-sig", errors="replace")


__all__ = ["MAX_STATEMENT_BYTES", "load_statement_text"]
