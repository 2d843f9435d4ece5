"""
Logging setup.

Console output goes through rich; events are also appended to a plain-text
log with one ``[YYYY-mm-dd HH:MM:SS] message`` line per record.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

EVENT_LOG_FORMAT = "[%(asctime)s] %(message)s"
EVENT_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_HANDLER_TAG = "_gcp_cost_monitor"


def configure_logging(
    log_file: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Install console and event-log handlers on the package logger.

    Calling this again replaces the handlers installed by a previous call.
    """
    logger = logging.getLogger("gcp_cost_monitor")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    setattr(console_handler, _HANDLER_TAG, True)
    logger.addHandler(console_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(EVENT_LOG_FORMAT, EVENT_LOG_DATEFMT))
        file_handler.setLevel(logging.INFO)
        setattr(file_handler, _HANDLER_TAG, True)
        logger.addHandler(file_handler)

    return logger
