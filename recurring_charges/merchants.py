"""Merchant-name canonicalization and fuzzy similarity.

``normalize_merchant_name`` produces the canonical key used both for
similarity comparison and as the persisted grouping key. Similarity is a
normalized Levenshtein score in ``[0, 1]``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .models import Transaction

UNKNOWN_MERCHANT = "Unknown"

# ASCII word characters only; accented letters become separators.
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_merchant_name(name: str) -> str:
    """Replace punctuation with spaces, collapse whitespace, trim, lower-case."""

    s = _NON_WORD_RE.sub(" ", name)
    s = _WHITESPACE_RE.sub(" ", s)
    return s.strip().lower()


def edit_distance(a: str, b: str) -> int:
    """Classic Levenshtein distance with unit costs."""

    if len(a) < len(b):
        a, b = b, a
    # Two rolling rows over the shorter string.
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr.append(min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[-1]


def merchant_similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max_len`` over normalized names.

    Identical normalized names score 1.0; an empty normalized name on either
    side scores 0.0.
    """

    na = normalize_merchant_name(a)
    nb = normalize_merchant_name(b)
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    return 1.0 - edit_distance(na, nb) / max(len(na), len(nb))


def display_name_for_group(group: Sequence[Transaction]) -> str:
    """Pick the longest merchant string in ``group`` (first one wins ties)."""

    best = ""
    for t in group:
        if len(t.merchant) > len(best):
            best = t.merchant
    if best:
        return best
    if group and group[0].merchant:
        return group[0].merchant
    return UNKNOWN_MERCHANT


__all__ = [
    "UNKNOWN_MERCHANT",
    "normalize_merchant_name",
    "edit_distance",
    "merchant_similarity",
    "display_name_for_group",
]
