from __future__ import annotations

import pytest

from org_service.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "DATABASE_URL",
    "SESSION_PUBLIC_KEY",
    "ORG_CREATE_POLICY",
    "CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 3005
    assert settings.database_url is None
    assert settings.session_public_key is None
    assert settings.org_create_policy == "any"
    assert settings.cors_origins == ("http://localhost:3000", "http://localhost:3001")


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/orgs")
    monkeypatch.setenv("ORG_CREATE_POLICY", "super_admin")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example ,")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.log_json is True
    assert settings.port == 8080
    assert settings.database_url == "postgresql+asyncpg://db/orgs"
    assert settings.org_create_policy == "super_admin"
    assert settings.cors_origins == ("https://a.example", "https://b.example")


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  TEST  ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ORG_CREATE_POLICY", " Super_Admin ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "debug"
    assert settings.org_create_policy == "super_admin"


def test_session_public_key_unescapes_newlines(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SESSION_PUBLIC_KEY", "-----BEGIN-----\\nabc\\n-----END-----")
    settings = load_settings()
    assert settings.session_public_key == "-----BEGIN-----\nabc\n-----END-----"


# ---- invalid values ----


@pytest.mark.parametrize(
    "name,value,message",
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("APP_ENV", "", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("ORG_CREATE_POLICY", "owners", "ORG_CREATE_POLICY must be any|super_admin"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=3005,
        database_url=None,
        session_public_key=None,
        org_create_policy="any",
        cors_origins=(),
    )


def test_settings_env_flags() -> None:
    assert _make_settings("dev").is_dev is True
    assert _make_settings("test").is_test is True
    prod = _make_settings("prod")
    assert prod.is_prod is True
    assert prod.is_dev is False


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
