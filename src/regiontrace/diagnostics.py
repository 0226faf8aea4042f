"""Rich-based console output for verbosity-gated diagnostics."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "regiontrace"

_handler: RichHandler | None = None


def enable_console_diagnostics(verbosity: int) -> RichHandler:
    """Attach a stderr RichHandler to the ``regiontrace`` logger (once).

    Messages are already filtered by ``verbosity`` at the call sites, so the
    logger is opened fully; higher verbosity only adds call-site detail.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is None:
        _handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=verbosity > 3,
            markup=False,
        )
        logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG)
    return _handler


def disable_console_diagnostics() -> None:
    """Detach the handler installed by :func:`enable_console_diagnostics`."""
    global _handler
    if _handler is None:
        return
    logger = logging.getLogger(LOGGER_NAME)
    logger.removeHandler(_handler)
    logger.setLevel(logging.NOTSET)
    _handler = None
