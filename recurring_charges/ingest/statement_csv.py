"""Tolerant parser for delimited statement exports with unknown column layout.

The header row is matched against keyword lists to locate the date,
description and amount columns (plus an optional credit/debit indicator).
Unrecognized headers fall back to positional defaults so every data line is
still attempted.

Contract
--------
``parse_statement(text) -> ParseResult(rows, errors)``

- Fewer than two non-empty lines yields no rows and a single error.
- A line whose date or amount cannot be parsed is skipped and reported as
  ``Row <n>: Invalid date "<raw>"`` / ``Row <n>: Invalid amount "<raw>"``
  where ``n`` is 1-based and the header is row 1.
- Nothing in here raises for malformed data.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from ..logging_setup import get_logger
from ..models import ParseResult, RawRow

_logger = get_logger("recurring_charges.ingest.statement_csv")

INSUFFICIENT_INPUT_ERROR = "CSV must have header and at least one data row"
UNKNOWN_DESCRIPTION = "Unknown"
# Largest exponent a parsed amount may carry: 16 integer digits, the width of
# the persisted Numeric(18, 2) column.
MAX_AMOUNT_EXPONENT = 15

_DATE_KEYWORDS: tuple[str, ...] = ("date",)
_DESCRIPTION_KEYWORDS: tuple[str, ...] = (
    "description",
    "merchant",
    "posted description",
    "details",
    "memo",
    "payee",
    "name",
)
_AMOUNT_KEYWORDS: tuple[str, ...] = ("amount", "debit", "credit", "transaction amount")
_INDICATOR_KEYWORDS: tuple[str, ...] = ("debit/credit", "type", "dr/cr", "dc")

_LINE_BREAK_RE = re.compile(r"\r?\n")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$", re.ASCII)
_DMY_SLASH_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$", re.ASCII)
_DMY_DASH_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$", re.ASCII)
_DMY_SHORT_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", re.ASCII)
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$", re.ASCII)
_AMOUNT_NOISE_RE = re.compile(r"[^\d.\-]", re.ASCII)
_AMOUNT_RE = re.compile(r"-?\d+\.?\d*", re.ASCII)
_SYMBOL_RUN_RE = re.compile(r"[*#]+")
_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_DASHES_RE = re.compile(r"^\s*[-=]+|[-=]+\s*$")


class ColumnMap(NamedTuple):
    """Resolved column positions for a statement header."""

    date: int
    description: int
    amount: int
    indicator: int | None


# ---------------------------------------------------------------------------
# Line and cell splitting
# ---------------------------------------------------------------------------


def split_cells(line: str) -> list[str]:
    """Split one line on commas or tabs, honoring double-quoted fields.

    Quote characters toggle the in-field state and are not kept. Each cell is
    trimmed.
    """

    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch in ",\t" and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    cells.append("".join(current).strip())
    return cells


def _content_lines(text: str) -> list[str]:
    return [s for s in (ln.strip() for ln in _LINE_BREAK_RE.split(text)) if s]


# ---------------------------------------------------------------------------
# Schema inference
# ---------------------------------------------------------------------------


def detect_columns(header: Sequence[str]) -> ColumnMap:
    """Locate date/description/amount/indicator columns from header cells.

    Matching is case-insensitive substring search; the first matching cell
    wins for each target independently. Unresolved targets default to column
    0 (date), 1 (description) and the last column (amount).
    """

    lowered = [h.lower().strip() for h in header]
    date_idx: int | None = None
    desc_idx: int | None = None
    amount_idx: int | None = None
    indicator_idx: int | None = None

    for i, cell in enumerate(lowered):
        if date_idx is None and any(k in cell for k in _DATE_KEYWORDS):
            date_idx = i
        if desc_idx is None and any(k in cell for k in _DESCRIPTION_KEYWORDS):
            desc_idx = i
        if amount_idx is None and any(k in cell for k in _AMOUNT_KEYWORDS):
            amount_idx = i
        if indicator_idx is None and any(k in cell for k in _INDICATOR_KEYWORDS):
            indicator_idx = i

    return ColumnMap(
        date=0 if date_idx is None else date_idx,
        description=1 if desc_idx is None else desc_idx,
        amount=len(lowered) - 1 if amount_idx is None else amount_idx,
        indicator=indicator_idx,
    )


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _safe_date(year: str, month: str, day: str) -> date | None:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_date(value: str | None) -> date | None:
    """Parse a statement date; ``None`` when the shape is not recognized.

    Accepted, in precedence order: ``YYYY-MM-DD``, ``DD/MM/YYYY``,
    ``DD-MM-YYYY``, ``D/M/YYYY``, ``YYYYMMDD``. Shapes that match but name an
    impossible calendar day (``31/02/2024``) also yield ``None``.
    """

    s = (value or "").strip()
    if not s:
        return None
    if m := _ISO_RE.match(s):
        return _safe_date(m[1], m[2], m[3])
    for pattern in (_DMY_SLASH_RE, _DMY_DASH_RE, _DMY_SHORT_RE):
        if m := pattern.match(s):
            return _safe_date(m[3], m[2], m[1])
    if m := _COMPACT_RE.match(s):
        return _safe_date(m[1], m[2], m[3])
    return None


def parse_amount(value: str | None) -> Decimal | None:
    """Extract the first signed decimal from an amount cell.

    Thousands separators and currency or other symbols are dropped before
    matching. Returns ``None`` when no number is present or when the value
    has more integer digits than :data:`MAX_AMOUNT_EXPONENT` allows (long
    reference numbers in a misdetected amount column).
    """

    s = (value or "").replace(",", "").strip()
    m = _AMOUNT_RE.search(_AMOUNT_NOISE_RE.sub("", s))
    if m is None:
        return None
    try:
        d = Decimal(m.group(0))
    except InvalidOperation:
        return None
    if not math.isfinite(d) or d.adjusted() > MAX_AMOUNT_EXPONENT:
        return None
    return d


def normalize_description(value: str) -> str:
    """Clean a raw description: symbol runs, whitespace, edge dashes."""

    s = _SYMBOL_RUN_RE.sub(" ", value)
    s = _WHITESPACE_RE.sub(" ", s)
    s = _EDGE_DASHES_RE.sub("", s)
    return s.strip()


def _is_credit(indicator: str, amount_raw: str) -> bool:
    cd = indicator.lower()
    return "credit" in cd or "cr" in cd or amount_raw.startswith("-")


def _cell(cells: Sequence[str], idx: int | None) -> str:
    if idx is None or idx >= len(cells):
        return ""
    return cells[idx]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_statement(text: str) -> ParseResult:
    """Parse a statement export into signed rows and per-row error strings."""

    lines = _content_lines(text)
    if len(lines) < 2:
        return ParseResult(rows=[], errors=[INSUFFICIENT_INPUT_ERROR])

    cols = detect_columns(split_cells(lines[0]))
    _logger.debug("detected columns %s", cols)

    rows: list[RawRow] = []
    errors: list[str] = []

    for line_no, line in enumerate(lines[1:], start=2):
        cells = split_cells(line)
        date_raw = _cell(cells, cols.date)
        amount_raw = _cell(cells, cols.amount)

        parsed_date = parse_date(date_raw)
        if parsed_date is None:
            errors.append(f'Row {line_no}: Invalid date "{date_raw}"')
            continue
        parsed_amount = parse_amount(amount_raw)
        if parsed_amount is None:
            errors.append(f'Row {line_no}: Invalid amount "{amount_raw}"')
            continue

        magnitude = abs(parsed_amount)
        signed = -magnitude if _is_credit(_cell(cells, cols.indicator), amount_raw) else magnitude

        rows.append(
            RawRow(
                date=parsed_date,
                description=normalize_description(_cell(cells, cols.description))
                or UNKNOWN_DESCRIPTION,
                amount=signed,
                raw=tuple(cells),
            )
        )

    _logger.info(
        "parsed statement: %d rows, %d errors (of %d data lines)",
        len(rows),
        len(errors),
        len(lines) - 1,
    )
    return ParseResult(rows=rows, errors=errors)


__all__ = [
    "INSUFFICIENT_INPUT_ERROR",
    "UNKNOWN_DESCRIPTION",
    "MAX_AMOUNT_EXPONENT",
    "ColumnMap",
    "split_cells",
    "detect_columns",
    "parse_date",
    "parse_amount",
    "normalize_description",
    "parse_statement",
]
