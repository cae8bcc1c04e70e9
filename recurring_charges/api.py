"""Public entry points for subscription detection.

- :func:`detect_recurring_subscriptions` runs grouping and per-group
  recurrence detection over already-normalized transactions.
- :func:`analyze_statement` runs the whole pipeline over one statement export
  (parse -> debit-only transactions -> detect) and returns a
  :class:`~recurring_charges.models.DetectionReport`.

Both are pure functions of their inputs and configuration. Callers must never
mix transactions from more than one statement in a single call; the interval
and amount heuristics assume one account history.
"""

from __future__ import annotations

from collections.abc import Sequence

from .config import DEFAULT_CONFIG, DetectorConfig
from .grouping import build_groups
from .ingest.statement_csv import parse_statement
from .logging_setup import get_logger
from .merchants import display_name_for_group
from .models import (
    DetectedSubscription,
    DetectionReport,
    MerchantGroup,
    NearMiss,
    Transaction,
)
from .pmap import p_map
from .recurrence import GroupEvaluation, evaluate_group
from .transactions import to_transactions

_logger = get_logger("recurring_charges.api")


def _evaluate_all(
    transactions: Sequence[Transaction], config: DetectorConfig
) -> list[GroupEvaluation]:
    if len(transactions) < config.min_occurrences:
        return []

    groups = build_groups(transactions, config)
    _logger.debug("formed %d merchant groups from %d transactions", len(groups), len(transactions))

    def _map_group(group: MerchantGroup) -> GroupEvaluation:
        return evaluate_group(group, display_name_for_group(group), config)

    return p_map(groups, _map_group, concurrency=config.concurrency)


def detect_recurring_subscriptions(
    transactions: Sequence[Transaction],
    config: DetectorConfig = DEFAULT_CONFIG,
) -> list[DetectedSubscription]:
    """Return detected subscriptions in merchant-group order.

    Groups that do not form a subscription are dropped silently.
    """

    return [
        ev.subscription
        for ev in _evaluate_all(transactions, config)
        if ev.subscription is not None
    ]


def detect_with_near_misses(
    transactions: Sequence[Transaction],
    config: DetectorConfig = DEFAULT_CONFIG,
) -> tuple[list[DetectedSubscription], list[NearMiss]]:
    """Like :func:`detect_recurring_subscriptions`, plus rejected candidates.

    A near miss is a group with at least ``config.min_occurrences`` members
    that failed a later check (amount, cadence band or gap consistency).
    """

    subscriptions: list[DetectedSubscription] = []
    near_misses: list[NearMiss] = []
    for ev in _evaluate_all(transactions, config):
        if ev.subscription is not None:
            subscriptions.append(ev.subscription)
        elif ev.near_miss is not None:
            near_misses.append(ev.near_miss)
    return subscriptions, near_misses


def analyze_statement(
    text: str,
    config: DetectorConfig = DEFAULT_CONFIG,
    *,
    id_prefix: str = "tx",
) -> DetectionReport:
    """Parse one statement export and detect its recurring charges.

    ``transactions_processed`` counts debit transactions that reached
    detection (credits and unparseable rows excluded). ``near_misses`` is only
    populated when ``config.collect_near_misses`` is set.
    """

    parsed = parse_statement(text)
    transactions = to_transactions(parsed.rows, id_prefix=id_prefix)

    if config.collect_near_misses:
        subscriptions, near_misses = detect_with_near_misses(transactions, config)
    else:
        subscriptions, near_misses = detect_recurring_subscriptions(transactions, config), []

    _logger.info(
        "analyzed statement: %d transactions, %d subscriptions, %d parse errors",
        len(transactions),
        len(subscriptions),
        len(parsed.errors),
    )
    return DetectionReport(
        subscriptions=subscriptions,
        transactions_processed=len(transactions),
        parse_errors=list(parsed.errors),
        near_misses=near_misses,
    )


__all__ = [
    "detect_recurring_subscriptions",
    "detect_with_near_misses",
    "analyze_statement",
]
