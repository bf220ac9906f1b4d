"""Log handler setup for the SDK and CLI.

Library code only emits records through named ``kluster.*`` loggers; this
module attaches a handler when an application (or the CLI) asks for output.
"""

from __future__ import annotations

import logging

LOGGER_NAME = "kluster"


def setup_logging(debug: bool = False, min_level: str = "WARNING") -> logging.Handler:
    """Attach a Rich handler to the ``kluster`` logger.

    Args:
        debug: Log everything, including every poll sample.
        min_level: Level to use when ``debug`` is off.

    Returns:
        The attached handler.
    """
    from rich.console import Console
    from rich.logging import RichHandler

    level = logging.DEBUG if debug else getattr(logging, min_level.upper(), logging.WARNING)
    handler = RichHandler(
        level=level,
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=debug,
    )
    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return handler
