"""Detection tunables as one immutable, validated value object.

Every knob the detector consults lives on :class:`DetectorConfig` so callers
can sweep parameters in tests without touching module state. ``DEFAULT_CONFIG``
reproduces the reference behavior.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Frequency


class IntervalBand(BaseModel):
    """Inclusive range of day gaps accepted for one cadence."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_days: int = Field(ge=1)
    max_days: int = Field(ge=1)

    @model_validator(mode="after")
    def _ordered(self) -> IntervalBand:
        if self.min_days > self.max_days:
            raise ValueError("min_days must not exceed max_days")
        return self

    def contains(self, days: float) -> bool:
        return self.min_days <= days <= self.max_days


DEFAULT_BANDS: Mapping[Frequency, IntervalBand] = {
    Frequency.WEEKLY: IntervalBand(min_days=6, max_days=8),
    Frequency.MONTHLY: IntervalBand(min_days=28, max_days=33),
    Frequency.YEARLY: IntervalBand(min_days=355, max_days=375),
}


class DetectorConfig(BaseModel):
    """Configuration for grouping and recurrence detection.

    Attributes
    ----------
    similarity_threshold:
        Minimum merchant similarity (0-1] for two transactions to share a
        group.
    amount_tolerance:
        Relative tolerance for two amounts to be considered the same charge,
        measured against the larger magnitude.
    min_occurrences:
        Minimum number of same-amount charges for a subscription.
    bands:
        Cadence -> accepted inclusive day range. Checked in weekly, monthly,
        yearly order; ranges must not overlap.
    grouping:
        ``"pivot"`` (default) compares candidates against the group's first
        member only. ``"transitive"`` merges any chain of similar merchants;
        it changes grouping on ambiguous inputs and is opt-in.
    concurrency:
        Worker count for per-group detection. ``1`` runs inline.
    collect_near_misses:
        Report rejected candidate groups alongside the results.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    similarity_threshold: float = 0.75
    amount_tolerance: float = 0.02
    min_occurrences: int = 3
    bands: Mapping[Frequency, IntervalBand] = Field(default_factory=lambda: dict(DEFAULT_BANDS))
    grouping: Literal["pivot", "transitive"] = "pivot"
    concurrency: int = Field(default=1, ge=1)
    collect_near_misses: bool = False

    @field_validator("similarity_threshold")
    @classmethod
    def _threshold_in_unit_interval(cls, v: float) -> float:
        if 0.0 < v <= 1.0:
            return v
        raise ValueError("similarity_threshold must be within (0, 1]")

    @field_validator("amount_tolerance")
    @classmethod
    def _tolerance_in_unit_interval(cls, v: float) -> float:
        if 0.0 <= v < 1.0:
            return v
        raise ValueError("amount_tolerance must be within [0, 1)")

    @field_validator("min_occurrences")
    @classmethod
    def _at_least_two(cls, v: int) -> int:
        # A single gap cannot establish a cadence.
        if v < 2:
            raise ValueError("min_occurrences must be at least 2")
        return v

    @field_validator("bands")
    @classmethod
    def _bands_disjoint(
        cls, v: Mapping[Frequency, IntervalBand]
    ) -> Mapping[Frequency, IntervalBand]:
        if not v:
            raise ValueError("at least one interval band is required")
        ordered = sorted(v.values(), key=lambda b: b.min_days)
        for prev, nxt in zip(ordered, ordered[1:], strict=False):
            if nxt.min_days <= prev.max_days:
                raise ValueError("interval bands must not overlap")
        return v


DEFAULT_CONFIG = DetectorConfig()


__all__ = ["IntervalBand", "DetectorConfig", "DEFAULT_BANDS", "DEFAULT_CONFIG"]
