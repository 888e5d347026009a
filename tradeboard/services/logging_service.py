"""
Logging for TradeBoard.

Board code logs through get_logger(__name__). setup_logging() runs once at
startup and sends records to the console and to a daily file under
~/.local/share/tradeboard/logs/. TRADEBOARD_LOG_LEVEL (a level name such
as DEBUG) overrides the level passed in.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional


DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "tradeboard" / "logs"

LOG_LEVEL_ENV = "TRADEBOARD_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logging_initialized = False


def resolve_log_level(default: int = logging.INFO) -> int:
    """Return the level named by TRADEBOARD_LOG_LEVEL, or default when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else default


def log_file_path(log_dir: Path, day: Optional[datetime] = None) -> Path:
    """Path of the log file for a given day (today by default)."""
    day = day or datetime.now()
    return log_dir / f"tradeboard_{day.strftime('%Y%m%d')}.log"


def setup_logging(
    log_level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger for the board.

    Args:
        log_level: Level used unless TRADEBOARD_LOG_LEVEL names another.
        log_to_file: Also write the daily log file.
        log_dir: Directory for log files. Defaults to DEFAULT_LOG_DIR.

    Only the first call has an effect.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    level = resolve_log_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    handlers: List[logging.Handler] = [console_handler]

    file_error: Optional[OSError] = None
    if log_to_file:
        log_dir = log_dir or DEFAULT_LOG_DIR
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file_path(log_dir), encoding="utf-8"))
        except OSError as e:
            file_error = e

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if file_error is not None:
        # The console is the only sink left; keep it to warnings and above
        console_handler.setLevel(logging.WARNING)
        root_logger.warning(f"Could not create log file: {file_error}. Logging to console only.")

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, typically get_logger(__name__)."""
    return logging.getLogger(name)
