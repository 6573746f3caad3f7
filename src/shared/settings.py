import os
from typing import Optional

# Environment is read on every call so a credential added to the app settings
# is picked up without a restart.

API_KEY_ENV = "GEMINI_API_KEY"
LEGACY_API_KEY_ENV = "API_KEY"

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_FETCH_TIMEOUT = 15.0
DEFAULT_MAX_SESSIONS = 500
DEFAULT_SESSION_TTL = 3600.0
DEFAULT_MAX_FETCH_BYTES = 10 * 1024 * 1024


def get_api_key() -> Optional[str]:
    key = os.getenv(API_KEY_ENV) or os.getenv(LEGACY_API_KEY_ENV)
    if key and key.strip():
        return key.strip()
    return None


def text_model() -> str:
    return os.getenv("MERCHANTAI_TEXT_MODEL") or DEFAULT_TEXT_MODEL


def image_model() -> str:
    return os.getenv("MERCHANTAI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL


def fetch_timeout() -> float:
    return _env_number("MERCHANTAI_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT, float)


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def max_sessions() -> int:
    return _env_number("MERCHANTAI_MAX_SESSIONS", DEFAULT_MAX_SESSIONS, int)


def session_idle_ttl() -> float:
    return _env_number("MERCHANTAI_SESSION_TTL", DEFAULT_SESSION_TTL, float)


def max_fetch_bytes() -> int:
    return _env_number("MERCHANTAI_MAX_FETCH_BYTES", DEFAULT_MAX_FETCH_BYTES, int)
