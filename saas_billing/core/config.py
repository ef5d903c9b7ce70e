from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv = "dev"
    log_level: LogLevel = "info"
    log_json: bool = False
    port: int = 8080
    database_url: str | None = None
    redis_url: str | None = None
    db_timeout_seconds: int = 5
    access_token_ttl_min: int = 60
    jwt_private_key_path: str | None = None
    auth_rate_limit: int = 10
    api_rate_limit: int = 100
    rate_limit_window_seconds: int = 60
    plans_cache_ttl_seconds: int = 300
    cors_origins: tuple[str, ...] = ()

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    jwt_key_path = _getenv("JWT_PRIVATE_KEY_PATH", "") or None
    if app_env_raw == "prod" and jwt_key_path is None:
        raise ValueError("JWT_PRIVATE_KEY_PATH is required when APP_ENV=prod")

    cors_raw = _getenv("CORS_ORIGINS", "")
    cors_origins = tuple(o.strip() for o in cors_raw.split(",") if o.strip())

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", app_env_raw == "prod"),
        port=_getint("PORT", 8080, minimum=1),
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        db_timeout_seconds=_getint("DB_TIMEOUT_SECONDS", 5, minimum=1),
        access_token_ttl_min=_getint("ACCESS_TOKEN_TTL_MIN", 60, minimum=1),
        jwt_private_key_path=jwt_key_path,
        auth_rate_limit=_getint("AUTH_RATE_LIMIT", 10, minimum=1),
        api_rate_limit=_getint("API_RATE_LIMIT", 100, minimum=1),
        rate_limit_window_seconds=_getint("RATE_LIMIT_WINDOW_SECONDS", 60, minimum=1),
        plans_cache_ttl_seconds=_getint("PLANS_CACHE_TTL_SECONDS", 300, minimum=1),
        cors_origins=cors_origins,
    )
