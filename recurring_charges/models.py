"""Data models and type aliases for ``recurring_charges``.

Pipeline records (``RawRow`` -> ``Transaction`` -> ``DetectedSubscription``)
are frozen dataclasses; they are created, consumed and discarded within one
detection run. The pydantic DTOs at the bottom of the module define the JSON
shape handed to transport/persistence collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import NamedTuple, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Ingestion records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawRow:
    """One valid data line of a statement export.

    Attributes
    ----------
    date:
        Calendar date of the charge (serialized as ``YYYY-MM-DD``).
    description:
        Cleaned description text; ``"Unknown"`` when nothing usable remained.
    amount:
        Signed amount. Positive means money leaving the account, negative
        means money coming in (credits, refunds).
    raw:
        The split cells of the source line, kept for diagnostics.
    """

    date: date
    description: str
    amount: Decimal
    raw: tuple[str, ...] = ()


class ParseResult(NamedTuple):
    """Outcome of parsing a statement: valid rows plus per-row error strings."""

    rows: list[RawRow]
    errors: list[str]


@dataclass(frozen=True, slots=True)
class Transaction:
    """A debit transaction ready for detection.

    ``id`` is only unique within the run that produced it.
    """

    id: str
    date: date
    merchant: str
    amount: Decimal
    raw_description: str | None = None


# Transactions believed to share one real-world merchant (transient).
MerchantGroup: TypeAlias = list[Transaction]


# ---------------------------------------------------------------------------
# Detection results
# ---------------------------------------------------------------------------


class Frequency(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True, slots=True)
class DetectedSubscription:
    """A recurring charge inferred from one merchant group.

    ``occurrences == len(transaction_ids)`` and is at least the configured
    minimum; ``transaction_ids`` are ordered by ascending charge date.
    ``next_expected_charge`` is ``last_charge_date`` plus ``interval_days``.
    """

    merchant_name: str
    normalized_merchant: str
    amount: Decimal
    frequency: Frequency
    interval_days: int
    occurrences: int
    last_charge_date: date
    next_expected_charge: date
    transaction_ids: tuple[str, ...]
    monthly_equivalent: Decimal


class RejectionReason(StrEnum):
    """Why a sufficiently large merchant group did not become a subscription."""

    NO_DOMINANT_AMOUNT = "no_dominant_amount"
    TOO_FEW_MATCHING_AMOUNTS = "too_few_matching_amounts"
    INTERVAL_OUT_OF_BAND = "interval_out_of_band"
    INCONSISTENT_INTERVALS = "inconsistent_intervals"


@dataclass(frozen=True, slots=True)
class NearMiss:
    """A rejected candidate group, reported only when explicitly requested."""

    merchant_name: str
    reason: RejectionReason
    occurrences: int
    mean_interval: float | None = None


@dataclass(frozen=True, slots=True)
class DetectionReport:
    """Everything one statement analysis hands back to its caller."""

    subscriptions: list[DetectedSubscription]
    transactions_processed: int
    parse_errors: list[str]
    near_misses: list[NearMiss] = field(default_factory=list)


# ---------------------------------------------------------------------------
# DTOs for the external JSON shape
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SubscriptionPayload(_CamelModel):
    """JSON form of :class:`DetectedSubscription` (camelCase keys)."""

    merchant_name: str
    normalized_merchant: str
    amount: Decimal
    frequency: Frequency
    interval_days: int
    occurrences: int
    last_charge_date: date
    next_expected_charge: date
    transaction_ids: list[str]
    monthly_equivalent: Decimal

    @field_serializer("amount", "monthly_equivalent", when_used="json")
    def _decimal_as_number(self, v: Decimal) -> float:
        return float(v)

    @classmethod
    def from_detected(cls, sub: DetectedSubscription) -> SubscriptionPayload:
        return cls(
            merchant_name=sub.merchant_name,
            normalized_merchant=sub.normalized_merchant,
            amount=sub.amount,
            frequency=sub.frequency,
            interval_days=sub.interval_days,
            occurrences=sub.occurrences,
            last_charge_date=sub.last_charge_date,
            next_expected_charge=sub.next_expected_charge,
            transaction_ids=list(sub.transaction_ids),
            monthly_equivalent=sub.monthly_equivalent,
        )


class NearMissPayload(_CamelModel):
    merchant_name: str
    reason: RejectionReason
    occurrences: int
    mean_interval: float | None = None


class DetectionReportPayload(_CamelModel):
    """Top-level response body for one analyzed statement."""

    transactions_processed: int
    parse_errors: list[str]
    detected: int
    subscriptions: list[SubscriptionPayload]
    near_misses: list[NearMissPayload] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: DetectionReport) -> DetectionReportPayload:
        return cls(
            transactions_processed=report.transactions_processed,
            parse_errors=list(report.parse_errors),
            detected=len(report.subscriptions),
            subscriptions=[SubscriptionPayload.from_detected(s) for s in report.subscriptions],
            near_misses=[
                NearMissPayload(
                    merchant_name=m.merchant_name,
                    reason=m.reason,
                    occurrences=m.occurrences,
                    mean_interval=m.mean_interval,
                )
                for m in report.near_misses
            ],
        )


__all__ = [
    "RawRow",
    "ParseResult",
    "Transaction",
    "MerchantGroup",
    "Frequency",
    "DetectedSubscription",
    "RejectionReason",
    "NearMiss",
    "DetectionReport",
    "SubscriptionPayload",
    "NearMissPayload",
    "DetectionReportPayload",
]
