# roitool/config.py
"""
roitool configuration. Single source of truth via Pydantic Settings.

Resolution order: CLI flags > env vars (ROITOOL_*) > .env file > defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PATHVIEWER_DISPLAY_ORDER_NS = "glencoesoftware.com/pathviewer/roidisplayorder"


class RoitoolConfig(BaseSettings):
    """Central configuration for roitool."""

    model_config = SettingsConfigDict(
        env_prefix="ROITOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Store connection ---
    server: str = "localhost"
    port: int = 4064
    use_tls: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    session_key: Optional[str] = None
    request_timeout: float = 30.0
    # "-1" queries across every group the user belongs to
    group_context: str = "-1"

    # --- Export ---
    display_order_ns: str = PATHVIEWER_DISPLAY_ORDER_NS

    # --- Logging ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # --- Paths ---
    home_dir: Path = Field(default_factory=lambda: Path.home() / ".roitool")

    @property
    def log_dir(self) -> Path:
        return self.home_dir / "logs"

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.server}:{self.port}/api"


@lru_cache(maxsize=1)
def get_config() -> RoitoolConfig:
    """Return the global config singleton."""
    return RoitoolConfig()
