"""
Logging configuration for CLI runs and RMM job logs.

Console output goes through rich so it stays readable in an interactive
terminal; the optional log file uses a plain format because RMM consoles
capture and display it verbatim.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_handlers: list[logging.Handler] = []


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> logging.Logger:
    """
    Configure the msp_toolkit logger.

    Calling this again replaces the handlers installed by the previous call,
    so the CLI can reconfigure after loading the config file.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a plain-text job log to append to

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("msp_toolkit")
    for handler in _handlers:
        logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    _handlers.append(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        _handlers.append(file_handler)

    for handler in _handlers:
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
