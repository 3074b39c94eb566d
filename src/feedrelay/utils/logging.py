"""
Logging configuration for feedrelay.

Console output goes through rich; every run also appends to its own log
file, named after the run's start time, which later gets archived and
aged out by the retention cleanup.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_PREFIX = "feedrelay_"
LOG_FILE_SUFFIX = ".log"
LOG_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def run_log_path(log_dir: Path, started_at: datetime) -> Path:
    """Return the log file path for a run started at ``started_at``."""
    return Path(log_dir) / f"{LOG_FILE_PREFIX}{started_at.strftime(LOG_TIMESTAMP_FORMAT)}{LOG_FILE_SUFFIX}"


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for feedrelay.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite (default: 'a')
        console: Optional Rich Console instance to use (default: None, creates new)
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        Logger instance
    """
    logger = logging.getLogger("feedrelay")

    # Handlers from a previous run in the same process would write to the old log file
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich:
            logger.addHandler(
                RichHandler(
                    level=level_int,
                    console=console or Console(stderr=True),
                    show_time=True,
                    show_path=False,
                    markup=False,
                    rich_tracebacks=True,
                    log_time_format="[%X]",
                )
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(
                logging.Formatter("%(levelname)s: %(asctime)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
            )
            logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # The file captures everything at DEBUG; the logger level still filters
        file_handler = logging.FileHandler(log_file, mode=file_mode, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    return logger


def close_logging() -> None:
    """Flush and detach feedrelay handlers so the log file can be archived."""
    logger = logging.getLogger("feedrelay")
    for handler in list(logger.handlers):
        handler.flush()
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()


def flush_logging() -> None:
    """Flush feedrelay handlers without detaching them."""
    for handler in logging.getLogger("feedrelay").handlers:
        handler.flush()


def get_logger(name: str = "feedrelay") -> logging.Logger:
    """
    Get a logger instance.

    Child loggers (e.g. "feedrelay.job") propagate to the handlers installed
    by setup_logging().

    Args:
        name: Logger name (default: "feedrelay")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
