"""
Logging Configuration Module
============================

Provides centralized logging configuration for Azure Reaper.

This module sets up logging with:
- Console output with rich formatting
- Optional file logging
- Configurable log levels
- Quieter defaults for the Azure SDK's HTTP pipeline loggers

Functions
---------
setup_logging
    Configure application-wide logging.

Example
-------
>>> from azure_reaper.core.logging import setup_logging
>>>
>>> # Setup logging at application start
>>> setup_logging(level="INFO", log_file="azure-reaper.log")
>>>
>>> # Modules log through the standard library
>>> logger = logging.getLogger(__name__)
>>> logger.info("Starting discovery")

See Also
--------
logging : Python standard library logging module.
rich.logging : Rich library's logging handler.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

# Default format for log messages
DEFAULT_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that are far too chatty at INFO
NOISY_LOGGERS = (
    "azure",
    "azure.identity",
    "azure.core.pipeline.policies.http_logging_policy",
    "msal",
    "urllib3",
)


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure application-wide logging.

    Sets up logging with Rich console handler and optional file handler.
    Should be called once at application startup.

    Parameters
    ----------
    level : str or int, default="INFO"
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    log_file : str, optional
        Path to log file. If provided, logs will be written to this file.
    rich_tracebacks : bool, default=True
        Whether to use Rich for exception tracebacks.
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.

    Examples
    --------
    >>> setup_logging(level="DEBUG", log_file="azure-reaper.log")

    Notes
    -----
    This function configures the root logger and clears any handlers
    installed by a previous call.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    rich_console = console or Console(stderr=True)
    console_handler = RichHandler(
        console=rich_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=False,
        markup=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        )
        root_logger.addHandler(file_handler)

    # The SDK logs every request and response header at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging configured: level={logging.getLevelName(level)}, "
        f"file={log_file or 'None'}"
    )
