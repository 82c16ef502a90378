"""
roitool Utilities Package - Cross-Cutting Helpers

Logging setup shared by the CLI and library entry points.
"""

from .logging import (
    setup_logging,
    get_logger,
    get_current_log_file,
    get_session_id,
    log_run_start,
    log_run_complete,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_current_log_file",
    "get_session_id",
    "log_run_start",
    "log_run_complete",
]
