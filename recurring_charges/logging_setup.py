"""Logging for the ``recurring_charges`` package.

Library modules ask for loggers under the ``recurring_charges`` namespace and
never install handlers. Only an entrypoint (the CLI) calls
:func:`configure_logging`, which routes the whole namespace to one stream.
Until then the namespace carries a ``NullHandler`` and stays silent.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_ROOT_NAME = "recurring_charges"
_LEVEL_ENV_VAR = "RECURRING_CHARGES_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Set once configure_logging has installed its stream handler.
_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``RECURRING_CHARGES_LOG_LEVEL``) into a numeric level.

    Accepts ints, digit strings and level names in any case. Unknown names
    resolve to ``INFO``.
    """

    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Send package logs to ``stream``; later calls are no-ops."""

    global _handler
    if _handler is not None:
        return

    root = logging.getLogger(_ROOT_NAME)
    root.handlers = [h for h in root.handlers if not isinstance(h, logging.NullHandler)]

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    root.addHandler(handler)
    root.setLevel(resolved)
    # Host applications keep their root logger free of our records.
    root.propagate = False
    _handler = handler


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; the package namespace stays silent until configured."""

    root = logging.getLogger(_ROOT_NAME)
    if _handler is None and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
