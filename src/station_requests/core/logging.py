"""
Centralized logging configuration for station-requests.

Modules log through loguru's ``logger``; this sets up where it goes.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_data_dir


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "station-requests.log"


def setup_logging(
    level: str = "INFO",
    log_file_path: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = False,
) -> None:
    """
    Configure loguru for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file_path: Custom log file path (default: ~/.local/share/station-requests/station-requests.log)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to also output logs to stderr
    """
    log_file = log_file_path if log_file_path else get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = level.upper()

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=max_bytes,
        retention=backup_count,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level, format="{level}: {message}")

    logger.info(
        f"Logging initialized: {log_file} (level={level}, max_size={max_bytes}, backups={backup_count})"
    )
