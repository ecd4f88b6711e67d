"""
@file: logger.py
@description:
This module provides a unified logging system for the Sports Predictions API, supporting:
- Color-coded console output for different log levels
- Consistent logging format across the API, the CLI and the Celery worker
- Configurable log levels based on environment settings

@dependencies:
- logging: Standard Python logging module
- colorama: For cross-platform colored terminal text
- sports_predictions.core.config: For the LOG_LEVEL setting

@notes:
- Colors are disabled when stdout is not a terminal
- Formatting works on a copy of the record, so other handlers see plain text
"""

import logging
import sys
from typing import Any, Optional

from colorama import Fore, Back, Style, init

from sports_predictions.core.config import settings

init()

DEFAULT_LOG_LEVEL = settings.LOG_LEVEL
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to log messages based on level.

    This formatter enhances log readability by using different colors
    for different logging levels, making it easier to spot warnings
    and errors in the console output.
    """

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.WHITE + Back.RED,
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record with appropriate color based on its level.

        Args:
            record: The log record to format

        Returns:
            str: The colored formatted log message
        """
        if not self.use_color:
            return super().format(record)

        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        colored.msg = f"{color}{record.getMessage()}{Style.RESET_ALL}"
        colored.args = None
        return super().format(colored)


def get_console_handler() -> logging.StreamHandler:
    """
    Create and configure a console handler with colored output.

    Returns:
        logging.StreamHandler: Configured console handler
    """
    console_handler = logging.StreamHandler(sys.stdout)
    formatter = ColoredFormatter(
        LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        use_color=sys.stdout.isatty(),
    )
    console_handler.setFormatter(formatter)
    return console_handler


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with the specified name and level.

    Args:
        name: The logger name, typically a module path
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
               If None, uses the default from environment settings

    Returns:
        logging.Logger: Configured logger instance
    """
    if level is None:
        level = DEFAULT_LOG_LEVEL

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    logger = logging.getLogger(name)

    # Only add handlers if this logger doesn't have any
    if not logger.handlers:
        logger.setLevel(numeric_level)
        logger.addHandler(get_console_handler())
        logger.propagate = False

    return logger


def setup_logger(name: str = "sports_predictions", level: Optional[str] = None) -> logging.Logger:
    """
    Set up and configure a logger with colored output.

    This is the main function that should be called to create loggers
    throughout the application.
    """
    return get_logger(name, level)


def log_request_details(logger: logging.Logger, request: Any, response_time: float, status_code: int) -> None:
    """
    Log details about an HTTP request and its response.

    Args:
        logger: The logger to use
        request: The request object (expected to have method and url attributes)
        response_time: The time taken to process the request in seconds
        status_code: The HTTP status code of the response
    """
    method = getattr(request, 'method', 'UNKNOWN')
    url = getattr(request, 'url', 'UNKNOWN')
    message = f"{method} {url} completed with status {status_code} in {response_time:.3f}s"

    if status_code >= 500:
        logger.error(message)
    elif status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)


def get_task_logger(task_name: str) -> logging.Logger:
    """
    Get a logger specifically for Celery tasks.
    """
    return setup_logger(f"celery.task.{task_name}")


# Create default application logger
logger = setup_logger()

__all__ = ['setup_logger', 'logger', 'get_task_logger', 'log_request_details']
