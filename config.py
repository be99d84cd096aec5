"""
Runtime settings for the bug tracker client.
Values come from environment variables; the CLI may override them after loading.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# environment variable names, short prefix so they are easy to set in shells/CI
# - BUGTRACK_API_URL: base URL of the REST API
# - BUGTRACK_SESSION_PATH: SQLite file used as durable client storage
# - BUGTRACK_POLL_INTERVAL_MS: int, <= 0 disables auto-refresh
# - BUGTRACK_SCAN_FALLBACK: 0/1, enables the first-array-property rule of the normalizer
# - BUGTRACK_TIMEOUT: float seconds, unset means no timeout
# - BUGTRACK_LOG_LEVEL: logging level name
DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_SESSION_PATH = os.path.join(os.path.expanduser("~"), ".bugtrack", "session.db")
DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_LOG_LEVEL = "WARNING"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    val = raw.strip().lower()
    if val in _TRUTHY:
        return True
    if val in _FALSY:
        return False
    logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
    return default


class Settings:
    """
    Resolved client settings.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        session_path: Optional[str] = DEFAULT_SESSION_PATH,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        scan_fallback: bool = True,
        timeout: Optional[float] = None,
        log_level: str = DEFAULT_LOG_LEVEL,
    ):
        self.api_url = api_url.rstrip("/")
        self.session_path = session_path
        self.poll_interval_ms = poll_interval_ms
        self.scan_fallback = scan_fallback
        self.timeout = timeout
        self.log_level = log_level

    def __repr__(self):
        return (
            f"Settings(api_url={self.api_url!r}, session_path={self.session_path!r}, "
            f"poll_interval_ms={self.poll_interval_ms}, scan_fallback={self.scan_fallback}, "
            f"timeout={self.timeout}, log_level={self.log_level!r})"
        )


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        api_url=os.getenv("BUGTRACK_API_URL") or DEFAULT_API_URL,
        session_path=os.getenv("BUGTRACK_SESSION_PATH") or DEFAULT_SESSION_PATH,
        poll_interval_ms=_env_int("BUGTRACK_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS),
        scan_fallback=_env_bool("BUGTRACK_SCAN_FALLBACK", True),
        timeout=_env_float("BUGTRACK_TIMEOUT", None),
        log_level=(os.getenv("BUGTRACK_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


__all__ = ["Settings", "load_settings", "DEFAULT_API_URL"]
