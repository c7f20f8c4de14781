"""Tests for environment driven settings."""

import pytest

from herald.core.config import (
    ChannelQueueSettings,
    EnvironmentLoader,
    Settings,
    get_settings,
)
from herald.core.enums import Environment
from herald.core.errors import ConfigurationError


@pytest.fixture
def env_file(tmp_path):
    return str(tmp_path / ".env")


class TestEnvironmentLoader:
    """Test suite for EnvironmentLoader."""

    def test_env_file_values(self, tmp_path, monkeypatch):
        """Test that the env file fills gaps without overriding the process environment."""
        path = tmp_path / ".env"
        path.write_text(
            "# comment\n"
            'APP_NAME="Herald Test"\n'
            "DISPATCH_TICK_INTERVAL_MS=100\n"
            "not a pair\n"
            "LOG_LEVEL='debug'\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("DISPATCH_TICK_INTERVAL_MS", "500")

        settings = Settings(env_file=str(path))

        assert settings.app_name == "Herald Test"
        assert settings.log_level == "DEBUG"
        assert settings.dispatch.tick_interval_ms == 500

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("YES", True), ("1", True), ("off", False), ("0", False)],
    )
    def test_boolean(self, env_file, monkeypatch, raw, expected):
        """Test accepted boolean spellings."""
        monkeypatch.setenv("FLAG", raw)

        assert EnvironmentLoader(env_file).get_boolean("FLAG") is expected

    def test_invalid_values(self, env_file, monkeypatch):
        """Test that malformed values name the offending key."""
        loader = EnvironmentLoader(env_file)
        monkeypatch.setenv("COUNT", "ten")
        monkeypatch.setenv("FLAG", "maybe")
        monkeypatch.setenv("ENDPOINT", "ftp://example.com")

        for call in (
            lambda: loader.get_integer("COUNT"),
            lambda: loader.get_float("COUNT"),
            lambda: loader.get_boolean("FLAG"),
            lambda: loader.get_url("ENDPOINT"),
        ):
            with pytest.raises(ConfigurationError):
                call()

    def test_bounds_and_required(self, env_file, monkeypatch):
        """Test integer bounds and required keys."""
        loader = EnvironmentLoader(env_file)
        monkeypatch.setenv("COUNT", "5")

        assert loader.get_integer("COUNT", min_value=1, max_value=10) == 5
        with pytest.raises(ConfigurationError) as exc_info:
            loader.get_integer("COUNT", min_value=6)
        assert exc_info.value.details["config_key"] == "COUNT"

        with pytest.raises(ConfigurationError):
            loader.get_string("MISSING_KEY", required=True)

    def test_enum(self, env_file, monkeypatch):
        """Test enum lookup by value or name."""
        loader = EnvironmentLoader(env_file)

        monkeypatch.setenv("ENVIRONMENT", "staging")
        assert loader.get_enum("ENVIRONMENT", Environment, Environment.DEVELOPMENT) == (
            Environment.STAGING
        )
        monkeypatch.setenv("ENVIRONMENT", "PRODUCTION")
        assert loader.get_enum("ENVIRONMENT", Environment, Environment.DEVELOPMENT) == (
            Environment.PRODUCTION
        )
        monkeypatch.setenv("ENVIRONMENT", "moon")
        with pytest.raises(ConfigurationError):
            loader.get_enum("ENVIRONMENT", Environment, Environment.DEVELOPMENT)


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self, env_file):
        """Test defaults without any environment."""
        settings = Settings(env_file=env_file)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.dispatch.tick_interval_seconds == 0.25
        assert settings.dispatch.queue_max_depth == 10000
        assert settings.providers.email_api_url is None
        assert settings.channel_settings("SMS").max_concurrency == 5
        assert settings.channel_settings("webhook").max_retries == 5
        assert settings.channel_settings("email").dead_letter_queue == "email.dead_letter"

    def test_channel_overrides(self, env_file, monkeypatch):
        """Test per-channel environment variables."""
        monkeypatch.setenv("PUSH_MAX_CONCURRENCY", "3")
        monkeypatch.setenv("PUSH_MAX_DELAY_SECONDS", "30")
        monkeypatch.setenv("PUSH_SEND_TIMEOUT_SECONDS", "2.5")

        push = Settings(env_file=env_file).channel_settings("push")

        assert (push.max_concurrency, push.max_delay_seconds, push.send_timeout_seconds) == (
            3,
            30.0,
            2.5,
        )

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("EMAIL_MAX_CONCURRENCY", "0"),
            ("SMS_MAX_RETRIES", "-1"),
            ("PUSH_BACKOFF_MULTIPLIER", "0.5"),
            ("WEBHOOK_MAX_DELAY_SECONDS", "0.1"),
            ("IN_APP_SEND_TIMEOUT_SECONDS", "0"),
            ("DISPATCH_TICK_INTERVAL_MS", "5"),
            ("LOG_LEVEL", "VERBOSE"),
            ("EMAIL_API_URL", "mail.example.com"),
        ],
    )
    def test_invalid_settings(self, env_file, monkeypatch, key, value):
        """Test that invalid values fail at construction."""
        monkeypatch.setenv(key, value)

        with pytest.raises(ConfigurationError):
            Settings(env_file=env_file)

    def test_production_rules(self, env_file, monkeypatch):
        """Test production-only checks."""
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("DEBUG", "true")
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(env_file=env_file)
        assert exc_info.value.details["config_key"] == "DEBUG"

        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.setenv("EMAIL_API_URL", "https://mail.example.com")
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(env_file=env_file)
        assert exc_info.value.details["config_key"] == "EMAIL_API_KEY"

        monkeypatch.setenv("EMAIL_API_KEY", "mail-key")
        assert Settings(env_file=env_file).environment.is_production

    def test_to_dict_hides_secrets(self, env_file, monkeypatch):
        """Test that API keys only appear on request."""
        monkeypatch.setenv("SMS_API_URL", "https://sms.example.com")
        monkeypatch.setenv("SMS_API_KEY", "sms-key")
        settings = Settings(env_file=env_file)

        data = settings.to_dict()
        assert data["providers"]["sms_api_url"] == "https://sms.example.com"
        assert "sms_api_key" not in data["providers"]
        assert data["dispatch"]["channels"]["sms"]["max_retries"] == 3
        assert settings.to_dict(include_secrets=True)["providers"]["sms_api_key"] == "sms-key"

    def test_get_settings_is_cached(self, env_file):
        """Test that get_settings returns one instance per env file."""
        assert get_settings(env_file) is get_settings(env_file)


class TestChannelQueueSettings:
    """Test suite for ChannelQueueSettings validation."""

    def test_max_delay_below_initial(self):
        """Test that the delay cap cannot be below the first delay."""
        with pytest.raises(ConfigurationError) as exc_info:
            ChannelQueueSettings("sms", initial_delay_seconds=10, max_delay_seconds=5)

        assert exc_info.value.details["config_key"] == "SMS_MAX_DELAY_SECONDS"
