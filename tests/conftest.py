"""Pytest configuration for test isolation.

The database client keeps one process-wide engine bound to the first
``DATABASE_URL`` it sees, and the CLI reads a few environment variables
(``DATABASE_URL``, ``RC_DETECT_MAX_WORKERS``). Each test gets a clean slate so
engines and env overrides never leak between tests.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import date
from decimal import Decimal

import pytest

from recurring_charges.db.client import dispose_engine
from recurring_charges.models import Transaction

_ISOLATED_ENV_VARS = ("DATABASE_URL", "RC_DETECT_MAX_WORKERS", "RECURRING_CHARGES_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolate_env_and_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for var in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    dispose_engine()
    yield
    dispose_engine()
    # load_dotenv writes straight to os.environ, bypassing monkeypatch.
    for var in _ISOLATED_ENV_VARS:
        os.environ.pop(var, None)


@pytest.fixture
def make_tx():
    """Build a ``Transaction`` from compact literals.

    ``make_tx("tx-1", "2024-01-01", "NETFLIX.COM", "15.99")``
    """

    def _make(tx_id: str, iso_date: str, merchant: str, amount: str) -> Transaction:
        return Transaction(
            id=tx_id,
            date=date.fromisoformat(iso_date),
            merchant=merchant,
            amount=Decimal(amount),
        )

    return _make
