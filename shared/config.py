"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_DEV_ENVS = {"dev", "local"}
_TEST_ENVS = {"test", "ci"}
_DEV_JWT_SECRET = "finance-tracker-dev-secret"


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in _DEV_ENVS


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def is_development() -> bool:
    """Return whether error details may be exposed to callers."""
    return app_env().lower() in _DEV_ENVS


def log_level() -> str:
    """Return the root log level name."""
    return (get_env("LOG_LEVEL", "INFO") or "INFO").strip().upper() or "INFO"


def configure_logging() -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    root.setLevel(log_level())


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins; every origin is allowed unless restricted."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    return ["*"]


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")


def jwt_secret() -> str:
    """Return the token signing secret.

    Development and test environments fall back to a fixed secret; any other
    environment must define ``JWT_SECRET``.
    """
    secret = (get_env("JWT_SECRET", "") or "").strip()
    if secret:
        return secret

    if app_env().lower() in _DEV_ENVS | _TEST_ENVS:
        return _DEV_JWT_SECRET

    raise RuntimeError("JWT_SECRET must be defined outside dev/test environments")


def jwt_expires_hours() -> int:
    """Return access token lifetime in hours."""
    raw_value = (get_env("JWT_EXPIRES_HOURS", "") or "").strip()
    if not raw_value:
        return 24
    try:
        hours = int(raw_value)
    except ValueError:
        logger.warning("jwt_expires_hours_invalid value=%s; using default 24", raw_value)
        return 24
    return hours if hours > 0 else 24


def auth_service_url() -> str | None:
    """Return the remote auth-service URL used for token verification."""
    value = (get_env("AUTH_SERVICE_URL", "") or "").strip()
    return value or None


def http_timeout_seconds() -> float:
    """Return the timeout applied to outbound HTTP calls."""
    raw_value = (get_env("HTTP_TIMEOUT_SECONDS", "") or "").strip()
    if not raw_value:
        return 10.0
    try:
        timeout = float(raw_value)
    except ValueError:
        logger.warning("http_timeout_seconds_invalid value=%s; using default 10", raw_value)
        return 10.0
    return timeout if timeout > 0 else 10.0
