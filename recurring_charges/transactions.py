"""Row -> Transaction normalization ahead of detection.

Only debits (money leaving the account) take part in detection; credits and
refunds are dropped here, before any grouping happens.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import RawRow, Transaction


def to_transactions(rows: Iterable[RawRow], *, id_prefix: str = "tx") -> list[Transaction]:
    """Wrap debit rows as transactions with per-run ids.

    Ids are ``"<id_prefix>-<n>"`` where ``n`` counts kept rows from 0 in input
    order. They are unique within one call only.
    """

    debits = [r for r in rows if r.amount > 0]
    return [
        Transaction(
            id=f"{id_prefix}-{i}",
            date=r.date,
            merchant=r.description,
            amount=r.amount,
            raw_description=r.description,
        )
        for i, r in enumerate(debits)
    ]


__all__ = ["to_transactions"]
