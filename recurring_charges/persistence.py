# ruff: noqa: I001
"""Persistence of detected subscriptions.

Writes detection results into the ``subscriptions`` table defined in
``recurring_charges.db.models``. Rows are keyed by ``(user_id,
normalized_merchant)`` so re-running detection over overlapping statements
updates the existing subscription instead of adding a duplicate.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from .db.models import Subscription
from .logging_setup import get_logger
from .models import DetectedSubscription
from .recurrence import round_cents

_logger = get_logger("recurring_charges.persistence")

# Columns refreshed when a (user, merchant) row already exists. The user's
# false-positive flag is deliberately absent.
_UPDATABLE_COLUMNS: tuple[str, ...] = (
    "merchant_name",
    "amount",
    "frequency",
    "interval_days",
    "last_charge_date",
    "next_expected_charge",
    "monthly_equivalent",
    "transaction_ids",
)


def _insert_factory(session: Session) -> Callable[..., Any]:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"upsert is not supported for dialect {dialect!r}")


def subscription_row(user_id: str, sub: DetectedSubscription) -> dict[str, Any]:
    """Column values for one detected subscription."""

    return {
        "user_id": user_id,
        "merchant_name": sub.merchant_name,
        "normalized_merchant": sub.normalized_merchant,
        "amount": sub.amount,
        "frequency": sub.frequency.value,
        "interval_days": sub.interval_days,
        "last_charge_date": sub.last_charge_date,
        "next_expected_charge": sub.next_expected_charge,
        "monthly_equivalent": round_cents(sub.monthly_equivalent),
        "transaction_ids": list(sub.transaction_ids),
    }


def upsert_subscriptions(
    session: Session,
    *,
    user_id: str,
    subscriptions: Iterable[DetectedSubscription],
) -> int:
    """Insert or update subscriptions for ``user_id``; return rows written.

    Conflicts on ``(user_id, normalized_merchant)`` refresh the detection
    fields and ``updated_at``. When the batch itself repeats a merchant key the
    last occurrence wins. The caller is responsible for committing.
    """

    if not user_id or not user_id.strip():
        raise ValueError("user_id is required")

    by_key: dict[str, dict[str, Any]] = {}
    for sub in subscriptions:
        by_key[sub.normalized_merchant] = subscription_row(user_id, sub)
    if not by_key:
        return 0

    insert = _insert_factory(session)
    stmt = insert(Subscription).values(list(by_key.values()))
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "normalized_merchant"],
        set_={
            **{col: getattr(stmt.excluded, col) for col in _UPDATABLE_COLUMNS},
            "updated_at": func.current_timestamp(),
        },
    )
    session.execute(stmt)
    _logger.info("upserted %d subscriptions for user %s", len(by_key), user_id)
    return len(by_key)


__all__ = ["subscription_row", "upsert_subscriptions"]
