"""Logging setup for the topbar CLI and daemon.

--verbose selects INFO, --debug selects DEBUG (with line numbers); otherwise
only warnings reach stderr. The daemon can additionally log to a file.
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER = "topbar"

QUIET_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"

# ANSI color per level, used only when stderr is a terminal
LEVEL_COLORS: Dict[int, str] = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
RESET = "\033[0m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        plain = record.levelname
        record.levelname = f"{color}{plain}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def _level_and_format(verbose: bool, debug: bool):
    if debug:
        return logging.DEBUG, DEBUG_FORMAT
    if verbose:
        return logging.INFO, VERBOSE_FORMAT
    return logging.WARNING, QUIET_FORMAT


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the topbar logger hierarchy.

    Args:
        verbose: Log INFO and above
        debug: Log DEBUG and above (takes precedence over verbose)
        log_file: Also append records to this file

    Returns:
        The configured `topbar` logger
    """
    level, fmt = _level_and_format(verbose, debug)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.setLevel(level)

    stream = logging.StreamHandler(sys.stderr)
    formatter_cls = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    stream.setFormatter(formatter_cls(fmt))
    logger.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(VERBOSE_FORMAT))
        logger.addHandler(file_handler)

    return logger


@contextmanager
def log_timing(operation: str, logger: logging.Logger):
    """Log the wall time of the wrapped block at debug level.

    Example:
        >>> with log_timing("surface monitor1 refresh", logger):
        ...     await surface.refresh()
        DEBUG: surface monitor1 refresh completed in 15.32ms
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(f"{operation} completed in {(time.perf_counter() - started) * 1000:.2f}ms")
