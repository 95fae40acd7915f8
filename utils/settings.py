from __future__ import annotations

"""
Runtime settings for the dashboard and CLI, read from environment variables.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_API_URL = "http://localhost:3001/api"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    timeout_s: float = 30.0
    log_level: str = "INFO"
    alerts_refresh_ms: int = 30_000
    dashboard_refresh_ms: int = 5 * 60 * 1000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("INSPECTION_API_URL", DEFAULT_API_URL).rstrip("/"),
            timeout_s=_float_env("INSPECTION_API_TIMEOUT", 30.0),
            log_level=os.getenv("DASHBOARD_LOG_LEVEL", "INFO").upper(),
            alerts_refresh_ms=_int_env("ALERTS_REFRESH_MS", 30_000),
            dashboard_refresh_ms=_int_env("DASHBOARD_REFRESH_MS", 5 * 60 * 1000),
        )

    def with_overrides(
        self,
        api_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        log_level: Optional[str] = None,
    ) -> "Settings":
        """Return a copy with CLI-provided values taking precedence."""
        changes = {}
        if api_url:
            changes["api_url"] = api_url.rstrip("/")
        if timeout_s is not None:
            changes["timeout_s"] = timeout_s
        if log_level:
            changes["log_level"] = log_level.upper()
        return replace(self, **changes)
