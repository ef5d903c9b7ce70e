from __future__ import annotations

import pytest

from saas_billing.core.config import Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "DATABASE_URL",
    "REDIS_URL",
    "DB_TIMEOUT_SECONDS",
    "ACCESS_TOKEN_TTL_MIN",
    "JWT_PRIVATE_KEY_PATH",
    "AUTH_RATE_LIMIT",
    "API_RATE_LIMIT",
    "RATE_LIMIT_WINDOW_SECONDS",
    "PLANS_CACHE_TTL_SECONDS",
    "CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings == Settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.auth_rate_limit == 10
    assert settings.api_rate_limit == 100
    assert settings.rate_limit_window_seconds == 60


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/billing")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
    monkeypatch.setenv("AUTH_RATE_LIMIT", "3")
    monkeypatch.setenv("PLANS_CACHE_TTL_SECONDS", "30")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "error"
    assert settings.database_url == "postgresql+asyncpg://u:p@db/billing"
    assert settings.redis_url == "redis://cache:6379/0"
    assert settings.auth_rate_limit == 3
    assert settings.plans_cache_ttl_seconds == 30


def test_load_settings_normalizes_case(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "TEST")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "debug"


def test_load_settings_strips_whitespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  test  ")
    monkeypatch.setenv("LOG_LEVEL", "  warning  ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "warning"


def test_empty_urls_mean_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("REDIS_URL", "   ")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None


def test_cors_origins_are_split(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, https://admin.example.com,")
    assert load_settings().cors_origins == (
        "https://app.example.com",
        "https://admin.example.com",
    )


def test_prod_defaults_to_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("JWT_PRIVATE_KEY_PATH", "/run/secrets/jwt.pem")
    settings = load_settings()
    assert settings.is_prod
    assert settings.log_json is True


def test_log_json_can_be_overridden(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "yes")
    assert load_settings().log_json is True


# ---- invalid values ----


def test_load_settings_rejects_invalid_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_empty_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_invalid_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL must be"):
        load_settings()


def test_prod_requires_signing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    with pytest.raises(ValueError, match="JWT_PRIVATE_KEY_PATH is required"):
        load_settings()


@pytest.mark.parametrize(
    "name,value",
    [
        ("PORT", "eighty"),
        ("PORT", "0"),
        ("AUTH_RATE_LIMIT", "0"),
        ("API_RATE_LIMIT", "-5"),
        ("DB_TIMEOUT_SECONDS", "1.5"),
    ],
)
def test_rejects_bad_integers(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        load_settings()


def test_rejects_bad_boolean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "maybe")
    with pytest.raises(ValueError, match="LOG_JSON must be a boolean"):
        load_settings()
