"""
roitool Logging Utilities - Per-run Debug & Audit Logging

Overview:
---------
Centralised logging configuration for import and export runs.  Every run gets
a short session ID, its own timestamped log file, and optionally a stderr
handler.  Store requests, linker state transitions and container/reference
dumps are logged at DEBUG; run boundaries and commit results at INFO.

Log Location:
-------------
- Default: ~/.roitool/logs/
- Each CLI run creates a timestamped log file with session ID
- A symlink 'roitool.log' always points to the latest session
- Can be overridden via ROITOOL_LOG_DIR environment variable

Log File Format:
----------------
- roitool_YYYYMMDD_HHMMSS_<session_id>.log  (per-session files)
- roitool.log (symlink to latest)

Usage:
------
    from roitool.utils.logging import get_logger, setup_logging

    # Call once at startup (CLI entry point)
    log_file = setup_logging(level="DEBUG", console_output=True)

    # Get logger in any module
    logger = get_logger(__name__)
    logger.info("Linking ROIs to Image:%d", image_id)
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

# ============================================================================
# Constants
# ============================================================================

DEFAULT_LOG_DIR = Path.home() / ".roitool" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
SYMLINK_NAME = "roitool.log"
ROOT_LOGGER = "roitool"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# File logging includes line numbers
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s:%(lineno)d | %(message)s"

_log_file_path: Optional[Path] = None
_session_id: Optional[str] = None


# ============================================================================
# Session ID handling
# ============================================================================

class SessionIdFilter(logging.Filter):
    """Add session_id to all log records."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id  # type: ignore[attr-defined]
        return True


class SessionFormatter(logging.Formatter):
    """Formatter that defaults session_id to 'N/A' when a record lacks it."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "N/A"  # type: ignore[attr-defined]
        return super().format(record)


# ============================================================================
# Setup Functions
# ============================================================================

def generate_session_id() -> str:
    """Generate a short unique session ID (6 characters)."""
    return uuid.uuid4().hex[:6]


def get_log_directory() -> Path:
    """Get the log directory, respecting ROITOOL_LOG_DIR."""
    env_log_dir = os.getenv("ROITOOL_LOG_DIR")
    if env_log_dir:
        return Path(env_log_dir)
    return DEFAULT_LOG_DIR


def generate_log_filename(session_id: str) -> str:
    """Generate a timestamped log filename with session ID."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"roitool_{timestamp}_{session_id}.log"


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_output: bool = False,
) -> Path:
    """
    Initialise roitool logging with a per-run file and optional console output.

    Parameters
    ----------
    level : str, optional
        DEBUG, INFO, WARNING or ERROR.  Defaults to ROITOOL_LOG_LEVEL or INFO.
    log_dir : Path, optional
        Directory for log files.  Defaults to ~/.roitool/logs/
    console_output : bool
        If True, also log to stderr.

    Returns
    -------
    Path
        Path to the log file being written to.
    """
    global _log_file_path, _session_id

    _session_id = generate_session_id()

    if level is None:
        level = os.getenv("ROITOOL_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_dir is None:
        log_dir = get_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / generate_log_filename(_session_id)
    _log_file_path = log_file

    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for f in root.filters[:]:
        root.removeFilter(f)

    root.setLevel(log_level)
    root.addFilter(SessionIdFilter(_session_id))

    # No rotation, each run gets its own file
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(SessionFormatter(FILE_LOG_FORMAT, LOG_DATE_FORMAT))
    root.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(SessionFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root.addHandler(console_handler)

    root.propagate = False

    symlink_path = log_dir / SYMLINK_NAME
    try:
        if symlink_path.is_symlink() or symlink_path.exists():
            symlink_path.unlink()
        symlink_path.symlink_to(log_file.name)
    except OSError:
        # Symlinks need privileges on some Windows setups
        pass

    root.info("=" * 80)
    root.info("roitool logging session started")
    root.info(f"  Session ID: {_session_id}")
    root.info(f"  Log file: {log_file}")
    root.info(f"  Log level: {level.upper()}")
    root.info("=" * 80)

    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``roitool`` namespace.

    Unlike a CLI run, library use does not configure handlers here: records
    go wherever the embedding application sends them until
    :func:`setup_logging` is called.
    """
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_current_log_file() -> Optional[Path]:
    """Return the path to the current log file, if logging is initialised."""
    return _log_file_path


def get_session_id() -> Optional[str]:
    """Return the current session ID, if logging is initialised."""
    return _session_id


# ============================================================================
# Structured helpers
# ============================================================================

def log_run_start(
    logger: logging.Logger,
    operation: str,
    image_id: int,
    path: Path | str,
) -> None:
    """Log the start of an import or export run."""
    logger.info("-" * 60)
    logger.info(f"ROI {operation.upper()} START")
    logger.info(f"  Image: {image_id}")
    logger.info(f"  File: {path}")
    logger.info("-" * 60)


def log_run_complete(
    logger: logging.Logger,
    operation: str,
    success: bool,
    roi_count: Optional[int] = None,
    duration_seconds: Optional[float] = None,
) -> None:
    """Log the outcome of an import or export run."""
    logger.info("-" * 60)
    status = "SUCCEEDED" if success else "FAILED"
    logger.info(f"ROI {operation.upper()} {status}")
    if roi_count is not None:
        logger.info(f"  ROIs: {roi_count}")
    if duration_seconds is not None:
        logger.info(f"  Duration: {duration_seconds:.2f}s")
    logger.info("-" * 60)
