"""Environment-driven settings. Entry points call load_dotenv() before reading these."""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class ConfigError(RuntimeError):
    """Raised when a required setting is missing."""


def _flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def supabase_url() -> str:
    url = os.environ.get("SUPABASE_URL", "").strip()
    if not url:
        raise ConfigError("SUPABASE_URL is not set. Add it to .env in the project root.")
    return url


def supabase_key() -> str:
    # Service role key for backend operations, anon key as fallback
    key = (
        os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        or os.environ.get("SUPABASE_KEY", "").strip()
    )
    if not key:
        raise ConfigError(
            "SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) is not set. Add it to .env in the project root."
        )
    return key


def audit_dir() -> Path:
    return Path(os.environ.get("AUDIT_DIR") or PROJECT_ROOT / "logs")


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def require_complete_scores() -> bool:
    """When set, verification rejects score maps that skip a question."""
    return _flag("REQUIRE_COMPLETE_SCORES")
