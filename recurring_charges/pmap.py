"""Order-preserving bounded-concurrency map over ``ThreadPoolExecutor``.

Modeled on ``p-map``: call :func:`p_map` with an iterable, a mapper and a
``concurrency`` cap. Mappers may return :data:`p_map_skip` to drop an element
while the remaining outputs keep their input order. The first mapper error
propagates to the caller and cancels work that has not started yet.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class _Skip:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "p_map_skip"


# Sentinel value: mappers can `return p_map_skip` to omit the element.
p_map_skip: object = _Skip()


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    *,
    concurrency: int,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` workers.

    ``concurrency == 1`` runs inline on the calling thread.
    """

    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    if concurrency == 1:
        raw = [mapper(item) for item in iterable]
    else:
        items = list(iterable)
        with ThreadPoolExecutor(max_workers=min(concurrency, max(1, len(items)))) as pool:
            futures = [pool.submit(mapper, item) for item in items]
            try:
                raw = [f.result() for f in futures]
            except Exception:
                pool.shutdown(wait=False, cancel_futures=True)
                raise

    return [v for v in raw if v is not p_map_skip]  # type: ignore[misc]


__all__ = ["p_map", "p_map_skip"]
