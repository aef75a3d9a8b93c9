"""Logging setup for Markdown GitDB."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "markdown_gitdb"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Route the package logger through a rich handler.

    Safe to call more than once; the previous handler is replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
