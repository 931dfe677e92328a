"""Rich-based debug logging.

The TUI owns the terminal, so debug output is written to a log file through a
file-backed Rich console instead of stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "r2sql"
DEFAULT_LOG_FILE = "r2sql-debug.log"


def configure_logging(debug: bool = False, log_path: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the package logger

    Args:
        debug: Write debug records to ``log_path`` when True; stay silent otherwise
        log_path: Destination file (default: r2sql-debug.log in the working directory)

    Returns:
        The configured ``r2sql`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if not debug:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.WARNING)
        return logger

    path = Path(log_path or DEFAULT_LOG_FILE)
    stream = path.open("a", encoding="utf-8")
    console = Console(file=stream, width=120, no_color=True, highlight=False, soft_wrap=True)
    handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.debug("Debug logging enabled, writing to %s", path)
    return logger
