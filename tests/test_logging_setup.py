import io
import logging

import pytest

import recurring_charges.logging_setup as logging_setup
from recurring_charges.logging_setup import configure_logging, get_logger, resolve_level


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch):
    root = logging.getLogger("recurring_charges")
    monkeypatch.setattr(logging_setup, "_handler", None)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "propagate", True)
    monkeypatch.setattr(root, "level", logging.NOTSET)
    return root


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" ERROR ", logging.ERROR),
        ("15", 15),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_level_falls_back_to_env(monkeypatch: pytest.MonkeyPatch):
    assert resolve_level() == logging.INFO

    monkeypatch.setenv("RECURRING_CHARGES_LOG_LEVEL", "debug")
    assert resolve_level() == logging.DEBUG


def test_unconfigured_package_is_silent(fresh_logging):
    get_logger("recurring_charges.api")

    assert [type(h) for h in fresh_logging.handlers] == [logging.NullHandler]


def test_configure_routes_package_logs_to_stream_once(fresh_logging):
    get_logger("recurring_charges.api")
    stream = io.StringIO()

    configure_logging("DEBUG", fmt="%(name)s:%(message)s", stream=stream)
    configure_logging("ERROR", stream=io.StringIO())
    get_logger("recurring_charges.api").debug("hello")

    assert stream.getvalue() == "recurring_charges.api:hello\n"
    assert len(fresh_logging.handlers) == 1
    assert fresh_logging.propagate is False
