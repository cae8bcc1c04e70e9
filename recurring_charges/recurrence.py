"""Recurrence detection for a single merchant group.

Steps, in order:

1. Reject groups smaller than ``min_occurrences``.
2. Sort by date and bucket amounts (rounded to cents) into an ordered list of
   ``(representative, count)`` buckets; pick the largest bucket with at least
   ``min_occurrences`` members, earliest bucket winning ties.
3. Keep only transactions matching that representative.
4. Average the day gaps between consecutive charges and classify the mean
   into a cadence band.
5. Require every individual gap to sit inside that same band.

Rejections are silent by default; :func:`evaluate_group` also reports why a
group failed so callers can surface near misses.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import NamedTuple

from .config import DEFAULT_BANDS, DEFAULT_CONFIG, DetectorConfig, IntervalBand
from .logging_setup import get_logger
from .merchants import normalize_merchant_name
from .models import (
    DetectedSubscription,
    Frequency,
    NearMiss,
    RejectionReason,
    Transaction,
)

_logger = get_logger("recurring_charges.recurrence")

_CENT = Decimal("0.01")


class GroupEvaluation(NamedTuple):
    """Result of evaluating one group: a subscription or, maybe, a near miss."""

    subscription: DetectedSubscription | None
    near_miss: NearMiss | None = None


@dataclass(slots=True)
class _AmountBucket:
    representative: Decimal
    count: int = 1


def _to_decimal(v: Decimal | float | int) -> Decimal:
    return v if isinstance(v, Decimal) else Decimal(str(v))


def round_cents(v: Decimal) -> Decimal:
    """Round half-up to cents, whatever the magnitude."""

    # quantize needs every integer digit plus two decimals within precision.
    with localcontext(prec=max(28, v.adjusted() + 3)):
        return v.quantize(_CENT, rounding=ROUND_HALF_UP)


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


# ---------------------------------------------------------------------------
# Primitive rules
# ---------------------------------------------------------------------------


def amounts_match(
    a: Decimal | float | int,
    b: Decimal | float | int,
    tolerance: float = DEFAULT_CONFIG.amount_tolerance,
) -> bool:
    """Return True when ``|a - b| <= tolerance * max(|a|, |b|)``.

    Two zeros always match.
    """

    da, db = _to_decimal(a), _to_decimal(b)
    if da == 0 and db == 0:
        return True
    largest = max(abs(da), abs(db))
    return abs(da - db) <= largest * Decimal(str(tolerance))


def classify_interval(
    days: float, bands: Mapping[Frequency, IntervalBand] = DEFAULT_BANDS
) -> Frequency | None:
    """Map a day count onto the first inclusive band containing it."""

    for freq in Frequency:
        band = bands.get(freq)
        if band is not None and band.contains(days):
            return freq
    return None


def monthly_equivalent(amount: Decimal, frequency: Frequency) -> Decimal:
    """Per-month cost of a recurring amount, unrounded.

    Weekly charges scale by 52/12 and yearly ones divide by 12. Rounding is
    left to display and storage.
    """

    if frequency is Frequency.WEEKLY:
        return amount * 52 / 12
    if frequency is Frequency.YEARLY:
        return amount / 12
    return amount


def select_dominant_amount(
    amounts: Iterable[Decimal],
    *,
    tolerance: float = DEFAULT_CONFIG.amount_tolerance,
    min_count: int = DEFAULT_CONFIG.min_occurrences,
) -> Decimal | None:
    """Return the representative of the most populated amount bucket.

    Buckets are formed in iteration order; each amount joins the first bucket
    whose representative it matches. Only buckets with ``min_count`` or more
    members qualify, and among equals the earliest-created bucket wins.
    """

    buckets: list[_AmountBucket] = []
    for raw in amounts:
        amt = round_cents(_to_decimal(raw))
        for bucket in buckets:
            if amounts_match(amt, bucket.representative, tolerance):
                bucket.count += 1
                break
        else:
            buckets.append(_AmountBucket(representative=amt))

    best: _AmountBucket | None = None
    for bucket in buckets:
        if bucket.count >= min_count and (best is None or bucket.count > best.count):
            best = bucket
    return best.representative if best is not None else None


def day_gaps(transactions: Sequence[Transaction]) -> list[int]:
    """Day differences between consecutive (already sorted) transactions."""

    return [(b.date - a.date).days for a, b in zip(transactions, transactions[1:], strict=False)]


# ---------------------------------------------------------------------------
# Group evaluation
# ---------------------------------------------------------------------------


def evaluate_group(
    group: Sequence[Transaction],
    display_name: str,
    config: DetectorConfig = DEFAULT_CONFIG,
) -> GroupEvaluation:
    """Decide whether ``group`` is a subscription and explain rejections.

    Groups smaller than ``config.min_occurrences`` are rejected without a
    near-miss record.
    """

    min_n = config.min_occurrences
    if len(group) < min_n:
        return GroupEvaluation(None)

    def _miss(reason: RejectionReason, occurrences: int, mean: float | None = None):
        _logger.debug(
            "rejected %r: %s (occurrences=%d, mean_interval=%s)",
            display_name,
            reason.value,
            occurrences,
            mean,
        )
        return GroupEvaluation(
            None,
            NearMiss(
                merchant_name=display_name,
                reason=reason,
                occurrences=occurrences,
                mean_interval=mean,
            ),
        )

    ordered = sorted(group, key=lambda t: t.date)

    dominant = select_dominant_amount(
        (t.amount for t in ordered), tolerance=config.amount_tolerance, min_count=min_n
    )
    if dominant is None:
        return _miss(RejectionReason.NO_DOMINANT_AMOUNT, len(ordered))

    recurring = [t for t in ordered if amounts_match(t.amount, dominant, config.amount_tolerance)]
    if len(recurring) < min_n:
        return _miss(RejectionReason.TOO_FEW_MATCHING_AMOUNTS, len(recurring))

    gaps = day_gaps(recurring)
    mean_gap = sum(gaps) / len(gaps)
    frequency = classify_interval(mean_gap, config.bands)
    if frequency is None:
        return _miss(RejectionReason.INTERVAL_OUT_OF_BAND, len(recurring), mean_gap)

    band = config.bands[frequency]
    if not all(band.contains(g) for g in gaps):
        return _miss(RejectionReason.INCONSISTENT_INTERVALS, len(recurring), mean_gap)

    interval_days = round_half_up(mean_gap)
    last_charge = recurring[-1].date
    subscription = DetectedSubscription(
        merchant_name=display_name,
        normalized_merchant=normalize_merchant_name(display_name),
        amount=dominant,
        frequency=frequency,
        interval_days=interval_days,
        occurrences=len(recurring),
        last_charge_date=last_charge,
        next_expected_charge=last_charge + timedelta(days=interval_days),
        transaction_ids=tuple(t.id for t in recurring),
        monthly_equivalent=monthly_equivalent(dominant, frequency),
    )
    return GroupEvaluation(subscription)


def detect_recurrence_in_group(
    group: Sequence[Transaction],
    display_name: str,
    config: DetectorConfig = DEFAULT_CONFIG,
) -> DetectedSubscription | None:
    """Return the subscription described by ``group``, or ``None``."""

    return evaluate_group(group, display_name, config).subscription


__all__ = [
    "GroupEvaluation",
    "amounts_match",
    "classify_interval",
    "monthly_equivalent",
    "select_dominant_amount",
    "day_gaps",
    "round_half_up",
    "round_cents",
    "evaluate_group",
    "detect_recurrence_in_group",
]
