"""Fuzzy merchant grouping.

The default strategy is a greedy, pivot-rooted single pass: each unassigned
transaction opens a group and pulls in every still-unassigned transaction
whose merchant is similar enough to *that pivot*. Membership therefore depends
on processing order; groups are not guaranteed to be mutually similar.

``group_transitively`` merges any chain of similar merchants instead. It is
only used when the configuration asks for ``grouping="transitive"``.
"""

from __future__ import annotations

from collections.abc import Sequence

from .config import DEFAULT_CONFIG, DetectorConfig
from .merchants import merchant_similarity
from .models import MerchantGroup, Transaction


def group_by_merchant(
    transactions: Sequence[Transaction],
    *,
    threshold: float = DEFAULT_CONFIG.similarity_threshold,
) -> list[MerchantGroup]:
    """Partition ``transactions`` into pivot-rooted groups, in input order."""

    assigned = [False] * len(transactions)
    groups: list[MerchantGroup] = []

    for i, pivot in enumerate(transactions):
        if assigned[i]:
            continue
        assigned[i] = True
        group = [pivot]
        for j in range(i + 1, len(transactions)):
            if assigned[j]:
                continue
            other = transactions[j]
            if merchant_similarity(pivot.merchant, other.merchant) >= threshold:
                group.append(other)
                assigned[j] = True
        groups.append(group)

    return groups


class _DisjointSet:
    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, a: int) -> int:
        parent = self.parent
        while parent[a] != a:
            parent[a] = parent[parent[a]]
            a = parent[a]
        return a

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        # Keep the smaller index as root so group order follows input order.
        if rb < ra:
            ra, rb = rb, ra
        self.parent[rb] = ra


def group_transitively(
    transactions: Sequence[Transaction],
    *,
    threshold: float = DEFAULT_CONFIG.similarity_threshold,
) -> list[MerchantGroup]:
    """Group by connected components of the similarity graph.

    Groups are ordered by their earliest member; members keep input order.
    """

    n = len(transactions)
    ds = _DisjointSet(n)
    for i in range(n):
        for j in range(i + 1, n):
            if ds.find(i) == ds.find(j):
                continue
            if merchant_similarity(transactions[i].merchant, transactions[j].merchant) >= threshold:
                ds.union(i, j)

    by_root: dict[int, MerchantGroup] = {}
    for i, tx in enumerate(transactions):
        by_root.setdefault(ds.find(i), []).append(tx)
    return list(by_root.values())


def build_groups(
    transactions: Sequence[Transaction], config: DetectorConfig = DEFAULT_CONFIG
) -> list[MerchantGroup]:
    """Group with the strategy selected by ``config.grouping``."""

    if config.grouping == "transitive":
        return group_transitively(transactions, threshold=config.similarity_threshold)
    return group_by_merchant(transactions, threshold=config.similarity_threshold)


__all__ = ["group_by_merchant", "group_transitively", "build_groups"]
