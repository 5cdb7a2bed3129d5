# mcp-tester/src/mcp_tester/utils/logger.py

"""
Logger - Logging setup for the MCP tester.

All log output goes to stderr (and optionally a rotating file) so that
reports written to stdout stay machine-readable.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config.settings import LoggingConfig

DEFAULT_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - [%(levelname)s] - %(name)s:%(lineno)d - %(funcName)s() - %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "mcp_tester"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def setup_logging(
        config: Optional["LoggingConfig"] = None,
        verbose: bool = False,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        config: Logging section of the settings (defaults used when None)
        verbose: Force DEBUG level and the verbose format

    Returns:
        The package root logger
    """
    level_name = config.level if config else "WARNING"
    log_format = config.format if config else DEFAULT_FORMAT
    date_format = config.date_format if config else DEFAULT_DATE_FORMAT

    if verbose:
        level_name = "DEBUG"
        log_format = VERBOSE_FORMAT

    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    # Re-running setup (e.g. in tests) must not stack handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format, datefmt=date_format)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if config is not None and config.file_enabled:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.propagate = False
    return root
