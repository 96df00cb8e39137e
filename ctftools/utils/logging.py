"""
Logging configuration and utilities.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional


CONSOLE_FORMAT = "TOOLS | %(levelname)s | %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


class ToolLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the tool it concerns."""

    def process(self, msg, kwargs):
        return f"{self.extra['tool']} | {msg}", kwargs


def tool_logger(logger: logging.Logger, tool: str) -> ToolLogAdapter:
    """Wrap a module logger so messages carry the tool name."""
    return ToolLogAdapter(logger, {"tool": tool})


def setup_root_logger(log_file: Optional[Path] = None,
                     level: str = "INFO",
                     max_file_size_mb: int = 10,
                     backup_count: int = 5):
    """
    Set up the root logger for the application.

    Console output goes to stderr so that data printed by ``list`` and
    ``search`` stays clean on stdout.

    Args:
        log_file: Optional log file path
        level: Logging level
        max_file_size_mb: Size at which the log file rotates
        backup_count: Number of rotated log files to keep
    """
    root_logger = logging.getLogger()

    # Clear any existing handlers
    root_logger.handlers.clear()

    root_logger.setLevel(getattr(logging, level.upper()))

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)
