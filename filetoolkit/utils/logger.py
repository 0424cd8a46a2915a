"""
Logging utilities for filetoolkit.

This module provides a standardized logging setup for filetoolkit
and the tools built on it, with coloured console output and optional file
logging.
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Union

from colorama import Fore, Style

# Default log format
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Default log level
DEFAULT_LOG_LEVEL = logging.INFO


class ColoredFormatter(logging.Formatter):
    """
    A formatter that adds colors to log messages based on their level.

    With ``plain_info`` set, INFO records are printed as the bare message so
    normal command output stays clean; other levels keep a short prefix.
    """

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: '',
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
        plain_info: bool = False
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors
        self.plain_info = plain_info

    def format(self, record):
        if self.plain_info:
            if record.levelno == logging.INFO:
                message = record.getMessage()
            elif record.levelno == logging.DEBUG:
                message = f"DEBUG: {record.getMessage()}"
            else:
                message = f"{record.levelname.lower()}: {record.getMessage()}"
        else:
            message = super().format(record)

        color = self.COLORS.get(record.levelno, '')
        if self.use_colors and color:
            message = f"{color}{message}{Style.RESET_ALL}"

        return message


def setup_logger(
    name: str = 'filetoolkit',
    level: int = DEFAULT_LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    use_colors: bool = True
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Args:
        name: Logger name
        level: Logging level
        log_file: Path to log file (optional)
        log_format: Log format string
        use_colors: Whether to use colors in console output

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(log_format, use_colors=use_colors and sys.stderr.isatty())
    )
    logger.addHandler(console_handler)

    if log_file:
        add_log_file(logger, log_file, level, log_format)

    return logger


def add_log_file(
    logger: Union[logging.Logger, str],
    log_file: Union[str, Path],
    level: Optional[int] = None,
    log_format: str = DEFAULT_LOG_FORMAT
) -> logging.FileHandler:
    """
    Add a file handler to a logger.

    Args:
        logger: Logger or logger name
        log_file: Path to log file
        level: Logging level (defaults to logger's level)
        log_format: Log format string

    Returns:
        The handler that was added
    """
    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    if level is None:
        level = logger.level

    file_path = Path(log_file)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(file_path)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)

    return file_handler
