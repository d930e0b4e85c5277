"""Unit tests for core/config.py -- startup validation and Settings.get()."""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings
from core.errors import ConfigErrorKind, IdentityError

GOOD_KEY = "k" * 32


def test_explicit_values():
    settings = Settings(secret_key=GOOD_KEY, database_url="sqlite:///:memory:", bcrypt_rounds=4)
    assert settings.secret_key == GOOD_KEY
    assert settings.token_expire_seconds == 3600


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("DATABASE_URL", "postgresql://db/identity")
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "120")
    settings = Settings()
    assert settings.database_url == "postgresql://db/identity"
    assert settings.token_expire_seconds == 120


def test_missing_secret_in_production_is_fatal():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_missing_secret_in_debug_generates_one():
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) == 64


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(secret_key="too-short")


def test_empty_database_url_rejected():
    with pytest.raises(ValidationError, match="DATABASE_URL is required"):
        Settings(secret_key=GOOD_KEY, database_url="")


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(secret_key=GOOD_KEY, bcrypt_rounds=3)


class TestGet:
    def test_returns_value_by_env_name(self):
        settings = Settings(secret_key=GOOD_KEY, database_url="sqlite:///x.db")
        assert settings.get("SECRET_KEY") == GOOD_KEY
        assert settings.get("database_url") == "sqlite:///x.db"

    def test_unknown_variable(self):
        settings = Settings(secret_key=GOOD_KEY)
        with pytest.raises(IdentityError) as exc_info:
            settings.get("EMAIL_HOST")
        assert exc_info.value.kind is ConfigErrorKind.MISSING_VARIABLE


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
