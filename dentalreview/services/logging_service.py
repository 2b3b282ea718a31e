"""
Logging service for DentalReview.

Console output is always on; a daily file in ~/.local/share/dentalreview/logs/
is added when enabled. setup_logging() may be called again once the config is
loaded: it replaces only the handlers it installed itself.

Bearer tokens are masked before any record is written, and the HTTP client
libraries are kept at WARNING unless the app runs at DEBUG.
"""

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "dentalreview" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_PREFIX = "dentalreview_"
LOG_FILE_DATE = "%Y%m%d"

# Libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore")

_BEARER_RE = re.compile(r"(Bearer\s+)[^\s'\",]+", re.IGNORECASE)

# Handlers installed by setup_logging, removed again on the next call
_installed_handlers: List[logging.Handler] = []


def resolve_level(level: Union[str, int, None]) -> int:
    """Turn "DEBUG"/"info"/10 into a logging level; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelName(level.strip().upper())
        if isinstance(value, int):
            return value
    return logging.INFO


class RedactTokenFilter(logging.Filter):
    """Masks bearer tokens in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _BEARER_RE.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def log_file_path(log_dir: Path, day: Optional[datetime] = None) -> Path:
    day = day or datetime.now()
    return log_dir / f"{LOG_FILE_PREFIX}{day.strftime(LOG_FILE_DATE)}.log"


def prune_old_logs(
    log_dir: Path, retention_days: int, now: Optional[datetime] = None
) -> List[Path]:
    """
    Delete daily log files older than the retention window.

    Args:
        log_dir: Directory holding dentalreview_YYYYMMDD.log files.
        retention_days: Days to keep; 0 or less keeps everything.
        now: Reference time (defaults to the current time).

    Returns:
        The files that were removed.
    """
    if retention_days <= 0 or not log_dir.is_dir():
        return []

    cutoff = (now or datetime.now()) - timedelta(days=retention_days)
    removed = []
    for path in log_dir.glob(f"{LOG_FILE_PREFIX}*.log"):
        try:
            day = datetime.strptime(path.stem[len(LOG_FILE_PREFIX):], LOG_FILE_DATE)
        except ValueError:
            continue
        if day < cutoff:
            try:
                path.unlink()
            except OSError as e:
                logging.getLogger(__name__).warning(f"Could not remove old log {path}: {e}")
                continue
            removed.append(path)
    return removed


def setup_logging(
    log_level: Union[str, int] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
    retention_days: int = 0,
) -> None:
    """
    Configure the logging system for DentalReview.

    Args:
        log_level: Level name or number (e.g. "DEBUG", logging.INFO).
        log_to_file: Whether to also log to a daily file.
        log_dir: Directory for log files. Defaults to ~/.local/share/dentalreview/logs/
        retention_days: Remove daily files older than this many days (0 keeps all).
    """
    level = resolve_level(log_level)
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    root_logger = logging.getLogger()
    shutdown_logging()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    redact = RedactTokenFilter()

    # Console handler - always enabled
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(redact)
    _install(root_logger, console_handler)

    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path(log_dir), encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(redact)
            _install(root_logger, file_handler)
        except OSError as e:
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")
        else:
            prune_old_logs(log_dir, retention_days)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def _install(root_logger: logging.Logger, handler: logging.Handler) -> None:
    root_logger.addHandler(handler)
    _installed_handlers.append(handler)


def shutdown_logging() -> None:
    """Detach and close the handlers setup_logging installed."""
    root_logger = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.
    """
    return logging.getLogger(name)
