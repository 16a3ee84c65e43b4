"""Logging setup for applications embedding remotecache.

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves.  :func:`setup_logging` is the opt-in for
host applications and scripts: it installs a single
:class:`rich.logging.RichHandler` on the ``remotecache`` logger that writes
to stderr, so diagnostics never mix with data written to stdout.

Colour follows `clig.dev <https://clig.dev/>`_ conventions: it is disabled
when ``NO_COLOR`` is set (any value) or ``TERM=dumb``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "remotecache"

_handler: Optional[RichHandler] = None


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


def setup_logging(debug: bool = False, no_color: bool = False) -> logging.Logger:
    """Install a Rich stderr handler on the package logger.

    Calling this again replaces the previously installed handler, so the
    level and colour settings can be changed at runtime.

    Args:
        debug: Log at ``DEBUG`` (request URL, cache key, result source and
            duration for every fetch) instead of ``WARNING``.
        no_color: Disable colour regardless of the environment.

    Returns:
        The configured ``remotecache`` logger.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    console = Console(
        file=sys.stderr,
        stderr=True,
        no_color=no_color or _should_disable_color(),
    )
    _handler = RichHandler(console=console, show_path=False, rich_tracebacks=False)
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    return logger


def reset_logging() -> None:
    """Remove the handler installed by :func:`setup_logging`.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
