"""Environment-driven settings.

Values are read on every call so tests can monkeypatch the environment.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[1]

DEFAULT_DB_PATH = ROOT / "data" / "mvcp.db"

# Dev-only fallback for session signing (never used in production)
_DEV_SESSION_SECRET = "dev-secret-change-in-production"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def is_production() -> bool:
    return os.environ.get("ENV", "development") == "production"


def get_db_path() -> Path:
    raw = os.environ.get("DATABASE_PATH", "").strip()
    return Path(raw) if raw else DEFAULT_DB_PATH


def get_session_secret() -> str:
    """Get session signing secret. Fails closed in production if missing."""
    secret = os.environ.get("SESSION_SECRET")
    if secret:
        return secret
    if is_production():
        raise RuntimeError("SESSION_SECRET must be set in production")
    return _DEV_SESSION_SECRET


def get_trend_window_weeks() -> int:
    return _int_env("TREND_WINDOW_WEEKS", 8)


def get_event_retention_days() -> int:
    """Days after its date that a published event stays listed for managers."""
    return _int_env("EVENT_RETENTION_DAYS", 8)


def get_max_resource_bytes() -> int:
    return _int_env("MAX_RESOURCE_BYTES", 5 * 1024 * 1024)


def get_session_hours() -> int:
    return _int_env("SESSION_HOURS", 24)
