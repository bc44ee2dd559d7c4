"""
Logging configuration for monthly-playlists.

This module sets up the logging system with up to three outputs:
    - Console: colored level names, written through tqdm so progress
      bars are not broken
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages

The log files are only created when a log directory is configured.

Usage:
    from monthly_playlists.core.logger import setup_logging, get_logger

    setup_logging("INFO", log_dir)  # Call once at startup
    logger = get_logger(__name__)   # Get logger for each module

    logger.info("Created playlist January '24")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name for console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_colors: bool = True, show_tracebacks: bool = False) -> None:
        super().__init__()
        self.use_colors = use_colors
        self.show_tracebacks = show_tracebacks

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
            levelname = f"{color}{levelname}{Style.RESET_ALL}"

        message = f"{levelname}: {record.getMessage()}"
        if record.exc_info and self.show_tracebacks:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console without breaking tqdm progress bars.

    tqdm.write() prints the message above any active progress bar instead of
    interleaving with its carriage-return updates.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """Filter that only lets ERROR and CRITICAL records through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    colored: bool = True
) -> None:
    """
    Configure the logging system for the application.

    Call this ONCE at application startup, after the configuration is loaded.

    Args:
        level: Console log level name ("DEBUG", "INFO", ...).
        log_dir: Directory for the log files, created if missing.
                 If None, only the console handler is installed.
        colored: Whether the console level names are colored.
    """
    colorama.init()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = TqdmLoggingHandler()
    console_level = getattr(logging, level.upper(), logging.INFO)
    console_handler.setLevel(console_level)
    # Tracebacks on the console only in debug mode; the log files always get them
    console_handler.setFormatter(ColoredConsoleFormatter(
        use_colors=colored,
        show_tracebacks=console_level <= logging.DEBUG
    ))
    root_logger.addHandler(console_handler)

    # Third-party libraries are only interesting when debugging
    for noisy in ("urllib3", "spotipy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        log_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        log_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and only propagate to the root logger.
    """
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flush and close all handlers on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        finally:
            root_logger.removeHandler(handler)
