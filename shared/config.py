"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv

from shared.errors import ConfigurationError


logger = logging.getLogger(__name__)


_PLACEHOLDER_MARKER = "placeholder"
_DEFAULT_TIMEOUT_SECONDS = 10.0
_DEFAULT_LOAD_LIMIT = 100

SETUP_INSTRUCTIONS = (
    "Supabase configuration is incomplete. Please ensure SUPABASE_URL and "
    "SUPABASE_ANON_KEY are correctly set in the environment or in a .env file, "
    "then retry."
)


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in {"dev", "local"}:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS",
        app_env(),
    )

    return []


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    value = (get_env("SUPABASE_URL", "") or "").strip()
    return value or None


def supabase_anon_key() -> str | None:
    """Return Supabase anon key when configured."""
    value = (get_env("SUPABASE_ANON_KEY", "") or "").strip()
    return value or None


def supabase_timeout_seconds() -> float:
    """Return the per-request timeout, falling back to the default on bad input."""
    raw_value = (get_env("SUPABASE_TIMEOUT_SECONDS", "") or "").strip()
    if not raw_value:
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        parsed = float(raw_value)
    except ValueError:
        logger.warning("supabase_timeout_invalid value=%s", raw_value)
        return _DEFAULT_TIMEOUT_SECONDS
    return parsed if parsed > 0 else _DEFAULT_TIMEOUT_SECONDS


def records_load_limit() -> int:
    """Return how many recent transactions a load fetches."""
    raw_value = (get_env("RECORDS_LOAD_LIMIT", "") or "").strip()
    if not raw_value:
        return _DEFAULT_LOAD_LIMIT
    try:
        parsed = int(raw_value)
    except ValueError:
        logger.warning("records_load_limit_invalid value=%s", raw_value)
        return _DEFAULT_LOAD_LIMIT
    return parsed if parsed > 0 else _DEFAULT_LOAD_LIMIT


def missing_supabase_settings() -> list[str]:
    """Return the names of required settings that are absent or placeholders."""
    missing: list[str] = []

    url = supabase_url()
    if not url or not url.startswith("http") or _PLACEHOLDER_MARKER in url:
        missing.append("SUPABASE_URL")

    key = supabase_anon_key()
    if not key or _PLACEHOLDER_MARKER in key:
        missing.append("SUPABASE_ANON_KEY")

    return missing


def require_supabase_settings() -> tuple[str, str]:
    """Return `(url, anon_key)` or raise `ConfigurationError` before any request."""
    missing = missing_supabase_settings()
    if missing:
        logger.warning("supabase_configuration_incomplete missing=%s", ",".join(missing))
        raise ConfigurationError(SETUP_INSTRUCTIONS)

    url = supabase_url()
    key = supabase_anon_key()
    if url is None or key is None:
        raise ConfigurationError(SETUP_INSTRUCTIONS)
    return url.rstrip("/"), key
