"""
Configuration management for lsplink.

Loads settings from environment variables and provides configuration objects.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass
class Config:
    """lsplink configuration."""

    start_timeout: float = 2.0
    shutdown_grace: float = 0.25
    kill_grace: float = 1.0
    request_timeout: float = 30.0
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Build a config from environment variables."""
        return cls(
            start_timeout=_env_float("LSPLINK_START_TIMEOUT", 2.0),
            shutdown_grace=_env_float("LSPLINK_SHUTDOWN_GRACE", 0.25),
            kill_grace=_env_float("LSPLINK_KILL_GRACE", 1.0),
            request_timeout=_env_float("LSPLINK_REQUEST_TIMEOUT", 30.0),
            log_level=os.getenv("LSPLINK_LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv("LSPLINK_LOG_DIR") or None,
        )
