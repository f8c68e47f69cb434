"""Centralized logging configuration for the reader service."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from common.config import settings
from common.utils import DateTimeUtils

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# File logs also carry the source location
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)


def build_handlers(level: int, log_file: Optional[str] = None) -> List[logging.Handler]:
    """
    Create a stdout handler and, if ``log_file`` is given, a UTF-8 file handler.

    The log file's parent directory is created when missing.
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(
    service_name: str, log_file: Optional[str] = None, log_level: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for a service with consistent formatting.

    Module loggers (``logging.getLogger(__name__)``) propagate to the root
    logger, so the same handlers go on the service logger and the root logger.
    Calling this again replaces the handlers instead of adding more.

    Args:
        service_name: Name of the service (e.g., 'reader')
        log_file: Optional log file path. If None, logs only to console
        log_level: Optional log level override. If None, uses settings.log_level

    Returns:
        Configured logger instance
    """
    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    handlers = build_handlers(level, log_file)

    for target in (logging.getLogger(service_name), logging.getLogger()):
        target.setLevel(level)
        target.handlers.clear()
        for handler in handlers:
            target.addHandler(handler)

    logger = logging.getLogger(service_name)
    logger.propagate = False
    return logger


def get_log_file_path(service_name: str) -> str:
    """
    Generate a log file path for a service.

    Args:
        service_name: Name of the service

    Returns:
        Path to log file
    """
    date_string = DateTimeUtils.get_date_string_for_log_file()
    return f"./logs/{service_name}_{date_string}.log"


def configure_third_party_loggers(level: str = "WARNING") -> None:
    """
    Configure logging levels for third-party libraries to reduce noise.

    Args:
        level: Log level for third-party libraries
    """
    third_party_loggers = [
        "openai",
        "httpx",
        "httpcore",
        "asyncio",
        "uvicorn.access",
    ]

    log_level = getattr(logging, level.upper(), logging.WARNING)

    for logger_name in third_party_loggers:
        logging.getLogger(logger_name).setLevel(log_level)


def setup_service_logging(
    service_name: str, enable_file_logging: bool = True
) -> logging.Logger:
    """
    Convenience function to set up logging for a service.

    Args:
        service_name: Name of the service
        enable_file_logging: Whether to enable file logging

    Returns:
        Configured service logger
    """
    configure_third_party_loggers()

    log_file = get_log_file_path(service_name) if enable_file_logging else None
    return setup_logging(service_name, log_file)
