"""Centralized configuration loading for the digest engine."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


DEFAULT_APP_URL = "https://kinpath.family"


@dataclass(frozen=True)
class AppConfig:
    """Typed application configuration loaded from environment variables."""

    resend_api_key: str
    digest_from_email: str
    digest_reply_to_email: str | None
    app_url: str
    timezone: str
    digest_hour_utc: int
    digest_db_path: Path
    failure_log_dir: Path
    max_external_retries: int
    enable_dry_run: bool
    digest_workers: int = 4
    call_timeout_seconds: float = 30.0
    run_timeout_seconds: float = 1800.0
    resource_limit: int = 3
    resource_lookback_days: int = 7
    admin_trigger_token: str | None = None
    ops_slack_bot_token: str | None = None
    ops_channel_id: str | None = None


_REQUIRED_ENV_VARS = (
    "RESEND_API_KEY",
    "DIGEST_FROM_EMAIL",
    "DIGEST_DB_PATH",
    "FAILURE_LOG_DIR",
    "ENABLE_DRY_RUN",
)


def _get_required_env(name: str) -> str:
    import os

    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        raise ConfigError(f"Missing required environment variable: {name}")
    return raw.strip()


def _get_optional_env(name: str) -> str | None:
    import os

    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _parse_bool(name: str, raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {raw!r}")


def _parse_int(name: str, raw: str, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer value for {name}: {raw!r}") from exc

    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(f"{name} must be <= {maximum}, got {value}")
    return value


def _parse_seconds(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid number of seconds for {name}: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {value}")
    return value


def _validate_timezone(raw: str) -> str:
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Invalid TIMEZONE: {raw!r}") from exc
    return raw


def _validate_required_envs() -> None:
    for name in _REQUIRED_ENV_VARS:
        _get_required_env(name)


@lru_cache(maxsize=1)
def get_config(load_dotenv_file: bool = True) -> AppConfig:
    """Load and cache app configuration."""
    if load_dotenv_file:
        load_dotenv()

    _validate_required_envs()

    app_url = (_get_optional_env("APP_URL") or DEFAULT_APP_URL).rstrip("/")
    if not app_url.startswith("https://"):
        raise ConfigError(f"APP_URL must be an https URL, got {app_url!r}")

    def _int_or_default(name: str, default: int, **bounds: int) -> int:
        raw = _get_optional_env(name)
        return _parse_int(name, raw, **bounds) if raw else default

    def _seconds_or_default(name: str, default: float) -> float:
        raw = _get_optional_env(name)
        return _parse_seconds(name, raw) if raw else default

    return AppConfig(
        resend_api_key=_get_required_env("RESEND_API_KEY"),
        digest_from_email=_get_required_env("DIGEST_FROM_EMAIL"),
        digest_reply_to_email=_get_optional_env("DIGEST_REPLY_TO_EMAIL"),
        app_url=app_url,
        timezone=_validate_timezone(_get_optional_env("TIMEZONE") or "UTC"),
        digest_hour_utc=_int_or_default("DIGEST_HOUR_UTC", 9, minimum=0, maximum=23),
        digest_db_path=Path(_get_required_env("DIGEST_DB_PATH")),
        failure_log_dir=Path(_get_required_env("FAILURE_LOG_DIR")),
        max_external_retries=_int_or_default("MAX_EXTERNAL_RETRIES", 3, minimum=1),
        enable_dry_run=_parse_bool("ENABLE_DRY_RUN", _get_required_env("ENABLE_DRY_RUN")),
        digest_workers=_int_or_default("DIGEST_WORKERS", 4, minimum=1, maximum=64),
        call_timeout_seconds=_seconds_or_default("CALL_TIMEOUT_SECONDS", 30.0),
        run_timeout_seconds=_seconds_or_default("RUN_TIMEOUT_SECONDS", 1800.0),
        resource_limit=_int_or_default("RESOURCE_LIMIT", 3, minimum=1, maximum=20),
        resource_lookback_days=_int_or_default("RESOURCE_LOOKBACK_DAYS", 7, minimum=1),
        admin_trigger_token=_get_optional_env("DIGEST_ADMIN_TOKEN"),
        ops_slack_bot_token=_get_optional_env("OPS_SLACK_BOT_TOKEN"),
        ops_channel_id=_get_optional_env("OPS_CHANNEL_ID"),
    )


def reset_config_cache() -> None:
    """Clear memoized configuration for tests and process reloads."""
    get_config.cache_clear()
