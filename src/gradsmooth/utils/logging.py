"""
Logging Utilities

Library modules only ask for ``logging.getLogger(__name__)``. Entry points
configure the ``gradsmooth`` logger with :func:`setup_logger`, and every module
logger inherits its handlers. Calling it again reconfigures the same logger,
so a script can report early errors on the console and switch to the level and
log file from its configuration later.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "gradsmooth"

CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _console_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            return handler
    return None


def _attach_log_file(logger: logging.Logger, log_file: str) -> None:
    """Send records to ``log_file``; any other file handler is closed and detached."""
    target = Path(log_file).resolve()
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if Path(handler.baseFilename) == target:
                return
            logger.removeHandler(handler)
            handler.close()

    target.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(target)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(file_handler)


def setup_logger(name: str = PACKAGE_LOGGER,
                 level: int = logging.INFO,
                 log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure a logger with a stdout console handler and an optional log file.

    Safe to call repeatedly: the console handler is added once, ``level`` is
    applied to the logger and all of its handlers on every call, and a
    requested log file is attached when it is not already.

    Args:
        name: Logger name (defaults to the package logger)
        level: Logging level (default: logging.INFO)
        log_file: Optional log file path, parent directories are created

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if _console_handler(logger) is None:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        _attach_log_file(logger, log_file)

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def level_from_name(level: Union[str, int]) -> int:
    """Translate a level name such as ``"DEBUG"`` into a logging constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)
