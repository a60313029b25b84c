"""Unit tests for core/config.py -- Settings validation and duration parsing.

Settings is constructed with _env_file=None so a developer's local .env does
not leak into the assertions; environment variables are set via monkeypatch.
"""

import pytest
from pydantic import ValidationError

from auth.tokens import TokenConfig
from core.config import Settings, parse_duration

_KEY = "k" * 32


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [("3600", 3600), ("45s", 45), ("30m", 1800), ("12h", 43200), ("90d", 7776000), (" 2H ", 7200)],
    )
    def test_valid(self, value: str, expected: int) -> None:
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10w", "-5m", "0", "0d"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_duration(value)


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
        settings = Settings(_env_file=None)

        assert settings.jwt_expires_in == "90d"
        assert settings.token_expire_seconds == 90 * 86400
        assert settings.password_reset_expire_minutes == 10
        assert settings.smtp_host == ""
        assert settings.rate_limit_enabled is True

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        monkeypatch.setenv("JWT_EXPIRES_IN", "15m")
        monkeypatch.setenv("PASSWORD_RESET_EXPIRE_MINUTES", "30")
        monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
        settings = Settings(_env_file=None)

        assert settings.token_expire_seconds == 900
        assert settings.password_reset_expire_minutes == 30
        assert settings.smtp_host == "smtp.example.com"

    def test_token_config_from_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        monkeypatch.setenv("JWT_EXPIRES_IN", "1h")
        config = TokenConfig.from_settings(Settings(_env_file=None))
        assert config.secret_key == _KEY
        assert config.expire_seconds == 3600
        assert config.algorithm == "HS256"

    def test_invalid_expiry_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        monkeypatch.setenv("JWT_EXPIRES_IN", "forever")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_production_requires_secret(self, monkeypatch) -> None:
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(_env_file=None)

    def test_debug_generates_secret(self, monkeypatch) -> None:
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        settings = Settings(_env_file=None)
        assert len(settings.secret_key) >= 32

    def test_short_secret_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", "too-short")
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(_env_file=None)
