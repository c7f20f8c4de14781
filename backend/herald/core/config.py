"""Application configuration management.

Settings are loaded from environment variables (optionally seeded from a
``.env`` file) through ``EnvironmentLoader`` typed getters and validated once
at construction. ``get_settings()`` returns a cached instance.

Architecture:
- EnvironmentLoader: Environment variable loading with type conversion
- ChannelQueueSettings: Per-channel worker, retry and dead-letter settings
- DispatchConfig: Queue tick, depth bound and webhook transport settings
- ProviderConfig: HTTP relay endpoints for email, SMS and push
- Settings: Main configuration class with all application settings
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any

from herald.core.enums import Environment, LogLevel
from herald.core.errors import ConfigurationError

CHANNEL_NAMES = ("email", "sms", "push", "in_app", "webhook")


# =====================================================================================
# ENVIRONMENT LOADER
# =====================================================================================


class EnvironmentLoader:
    """
    Environment variable loader with type conversion and validation.

    Values already present in the process environment take precedence over
    entries read from the env file.
    """

    TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
    FALSE_VALUES = frozenset({"false", "0", "no", "off"})

    def __init__(self, env_file: str = ".env"):
        self.env_file = env_file
        self._load_env_file()

    def _load_env_file(self) -> None:
        """Load environment variables from file if it exists."""
        if not os.path.exists(self.env_file):
            return

        try:
            with open(self.env_file, encoding="utf-8") as f:
                for raw_line in f:
                    line = raw_line.strip()

                    if not line or line.startswith("#") or "=" not in line:
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()

                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key not in os.environ:
                        os.environ[key] = value

        except OSError as e:
            raise ConfigurationError(
                f"Failed to load environment file {self.env_file}: {e}"
            ) from e

    @staticmethod
    def _missing(key: str) -> ConfigurationError:
        return ConfigurationError(f"{key} is required", config_key=key)

    def get_string(
        self, key: str, default: str | None = None, required: bool = False
    ) -> str | None:
        value = os.environ.get(key, default)
        if value is None and required:
            raise self._missing(key)
        return value

    def get_integer(
        self,
        key: str,
        default: int | None = None,
        required: bool = False,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> int | None:
        raw = os.environ.get(key)
        if raw is None:
            if required and default is None:
                raise self._missing(key)
            return default

        try:
            value = int(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"{key} must be an integer, got {raw!r}", config_key=key
            ) from e

        if min_value is not None and value < min_value:
            raise ConfigurationError(f"{key} must be >= {min_value}", config_key=key)
        if max_value is not None and value > max_value:
            raise ConfigurationError(f"{key} must be <= {max_value}", config_key=key)
        return value

    def get_float(
        self,
        key: str,
        default: float | None = None,
        required: bool = False,
        min_value: float | None = None,
    ) -> float | None:
        raw = os.environ.get(key)
        if raw is None:
            if required and default is None:
                raise self._missing(key)
            return default

        try:
            value = float(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"{key} must be a number, got {raw!r}", config_key=key
            ) from e

        if min_value is not None and value < min_value:
            raise ConfigurationError(f"{key} must be >= {min_value}", config_key=key)
        return value

    def get_boolean(self, key: str, default: bool = False) -> bool:
        raw = os.environ.get(key)
        if raw is None:
            return default

        lowered = raw.strip().lower()
        if lowered in self.TRUE_VALUES:
            return True
        if lowered in self.FALSE_VALUES:
            return False
        raise ConfigurationError(f"{key} must be a boolean, got {raw!r}", config_key=key)

    def get_enum(self, key: str, enum_class: type[Enum], default: Enum) -> Enum:
        raw = os.environ.get(key)
        if raw is None:
            return default

        for member in enum_class:
            if raw.lower() in (str(member.value).lower(), member.name.lower()):
                return member

        allowed = ", ".join(member.name for member in enum_class)
        raise ConfigurationError(
            f"{key} must be one of {allowed}, got {raw!r}", config_key=key
        )

    def get_url(self, key: str, default: str | None = None) -> str | None:
        value = self.get_string(key, default)
        if value is not None and not value.startswith(("http://", "https://")):
            raise ConfigurationError(f"{key} must be a valid URL", config_key=key)
        return value


# =====================================================================================
# CONFIGURATION SECTIONS
# =====================================================================================


@dataclass
class ChannelQueueSettings:
    """Worker pool, retry policy and dead-letter target of one channel."""

    channel: str
    max_concurrency: int = 10
    max_retries: int = 3
    initial_delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay_seconds: float = 60.0
    send_timeout_seconds: float = 10.0
    dead_letter_queue: str | None = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"{self.channel} max concurrency must be at least 1",
                config_key=f"{self.channel.upper()}_MAX_CONCURRENCY",
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"{self.channel} max retries cannot be negative",
                config_key=f"{self.channel.upper()}_MAX_RETRIES",
            )
        if self.backoff_multiplier < 1:
            raise ConfigurationError(
                f"{self.channel} backoff multiplier must be >= 1",
                config_key=f"{self.channel.upper()}_BACKOFF_MULTIPLIER",
            )
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ConfigurationError(
                f"{self.channel} max delay must not be below the initial delay",
                config_key=f"{self.channel.upper()}_MAX_DELAY_SECONDS",
            )
        if self.send_timeout_seconds <= 0:
            raise ConfigurationError(
                f"{self.channel} send timeout must be positive",
                config_key=f"{self.channel.upper()}_SEND_TIMEOUT_SECONDS",
            )


# Defaults differ per channel: in-app writes are local and cheap, webhooks are
# third party endpoints with a larger retry budget.
CHANNEL_DEFAULTS: dict[str, dict[str, Any]] = {
    "email": {"max_concurrency": 10, "max_retries": 3, "send_timeout_seconds": 10.0},
    "sms": {"max_concurrency": 5, "max_retries": 3, "send_timeout_seconds": 10.0},
    "push": {"max_concurrency": 20, "max_retries": 2, "send_timeout_seconds": 5.0},
    "in_app": {"max_concurrency": 50, "max_retries": 1, "send_timeout_seconds": 2.0},
    "webhook": {"max_concurrency": 10, "max_retries": 5, "send_timeout_seconds": 15.0},
}


@dataclass
class DispatchConfig:
    """Scheduler tick, queue bound and webhook transport settings."""

    tick_interval_ms: int = 250
    queue_max_depth: int = 10000
    webhook_signature_header: str = "X-Herald-Signature"
    webhook_timeout_seconds: float = 10.0
    campaign_tick_seconds: int = 60
    channels: dict[str, ChannelQueueSettings] = field(default_factory=dict)

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000


@dataclass
class ProviderConfig:
    """HTTP relay endpoints for the outbound transports."""

    email_api_url: str | None = None
    email_api_key: str | None = None
    email_from_address: str = "noreply@herald.local"
    sms_api_url: str | None = None
    sms_api_key: str | None = None
    sms_from_number: str | None = None
    push_api_url: str | None = None
    push_api_key: str | None = None

    def to_dict(self, include_secrets: bool = False) -> dict[str, Any]:
        data = {
            "email_api_url": self.email_api_url,
            "email_from_address": self.email_from_address,
            "sms_api_url": self.sms_api_url,
            "sms_from_number": self.sms_from_number,
            "push_api_url": self.push_api_url,
        }
        if include_secrets:
            data.update(
                {
                    "email_api_key": self.email_api_key,
                    "sms_api_key": self.sms_api_key,
                    "push_api_key": self.push_api_key,
                }
            )
        return data


# =====================================================================================
# SETTINGS
# =====================================================================================


class Settings:
    """
    Main application settings.

    Usage Example:
        settings = Settings()

        settings.dispatch.tick_interval_ms
        settings.dispatch.channels["webhook"].max_retries
        settings.providers.email_api_url
    """

    def __init__(self, env_file: str = ".env"):
        self.env_loader = EnvironmentLoader(env_file)

        self._load_application_config()
        self._load_dispatch_config()
        self._load_provider_config()

        self._validate_configuration()

    def _load_application_config(self) -> None:
        self.app_name = self.env_loader.get_string("APP_NAME", "Herald")
        self.app_version = self.env_loader.get_string("APP_VERSION", "0.1.0")
        self.environment = self.env_loader.get_enum(
            "ENVIRONMENT", Environment, Environment.DEVELOPMENT
        )
        self.debug = self.env_loader.get_boolean("DEBUG", False)
        self.log_level = self.env_loader.get_string("LOG_LEVEL", "INFO").upper()

    def _load_dispatch_config(self) -> None:
        loader = self.env_loader
        self.dispatch = DispatchConfig(
            tick_interval_ms=loader.get_integer(
                "DISPATCH_TICK_INTERVAL_MS", 250, min_value=10
            ),
            queue_max_depth=loader.get_integer(
                "DISPATCH_QUEUE_MAX_DEPTH", 10000, min_value=1
            ),
            webhook_signature_header=loader.get_string(
                "WEBHOOK_SIGNATURE_HEADER", "X-Herald-Signature"
            ),
            webhook_timeout_seconds=loader.get_float(
                "WEBHOOK_TIMEOUT_SECONDS", 10.0, min_value=0.1
            ),
            campaign_tick_seconds=loader.get_integer(
                "CAMPAIGN_TICK_SECONDS", 60, min_value=1
            ),
            channels={name: self._load_channel(name) for name in CHANNEL_NAMES},
        )

    def _load_channel(self, name: str) -> ChannelQueueSettings:
        prefix = name.upper()
        defaults = CHANNEL_DEFAULTS[name]
        loader = self.env_loader
        return ChannelQueueSettings(
            channel=name,
            max_concurrency=loader.get_integer(
                f"{prefix}_MAX_CONCURRENCY", defaults["max_concurrency"]
            ),
            max_retries=loader.get_integer(
                f"{prefix}_MAX_RETRIES", defaults["max_retries"]
            ),
            initial_delay_seconds=loader.get_float(
                f"{prefix}_INITIAL_DELAY_SECONDS", 1.0, min_value=0.0
            ),
            backoff_multiplier=loader.get_float(f"{prefix}_BACKOFF_MULTIPLIER", 2.0),
            max_delay_seconds=loader.get_float(f"{prefix}_MAX_DELAY_SECONDS", 60.0),
            send_timeout_seconds=loader.get_float(
                f"{prefix}_SEND_TIMEOUT_SECONDS", defaults["send_timeout_seconds"]
            ),
            dead_letter_queue=loader.get_string(
                f"{prefix}_DEAD_LETTER_QUEUE", f"{name}.dead_letter"
            )
            or None,
        )

    def _load_provider_config(self) -> None:
        loader = self.env_loader
        self.providers = ProviderConfig(
            email_api_url=loader.get_url("EMAIL_API_URL"),
            email_api_key=loader.get_string("EMAIL_API_KEY"),
            email_from_address=loader.get_string(
                "EMAIL_FROM_ADDRESS", "noreply@herald.local"
            ),
            sms_api_url=loader.get_url("SMS_API_URL"),
            sms_api_key=loader.get_string("SMS_API_KEY"),
            sms_from_number=loader.get_string("SMS_FROM_NUMBER"),
            push_api_url=loader.get_url("PUSH_API_URL"),
            push_api_key=loader.get_string("PUSH_API_KEY"),
        )

    def _validate_configuration(self) -> None:
        if self.log_level not in {level.level_name for level in LogLevel}:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}", config_key="LOG_LEVEL"
            )

        if self.environment.is_production:
            if self.debug:
                raise ConfigurationError(
                    "Debug mode cannot be enabled in production", config_key="DEBUG"
                )
            if self.providers.email_api_url and not self.providers.email_api_key:
                raise ConfigurationError(
                    "EMAIL_API_KEY is required when EMAIL_API_URL is set in production",
                    config_key="EMAIL_API_KEY",
                )

    def channel_settings(self, channel: str) -> ChannelQueueSettings:
        return self.dispatch.channels[channel.lower()]

    def to_dict(self, include_secrets: bool = False) -> dict[str, Any]:
        return {
            "app_name": self.app_name,
            "app_version": self.app_version,
            "environment": self.environment.value,
            "debug": self.debug,
            "log_level": self.log_level,
            "dispatch": {
                "tick_interval_ms": self.dispatch.tick_interval_ms,
                "queue_max_depth": self.dispatch.queue_max_depth,
                "webhook_signature_header": self.dispatch.webhook_signature_header,
                "webhook_timeout_seconds": self.dispatch.webhook_timeout_seconds,
                "campaign_tick_seconds": self.dispatch.campaign_tick_seconds,
                "channels": {
                    name: vars(channel).copy()
                    for name, channel in self.dispatch.channels.items()
                },
            },
            "providers": self.providers.to_dict(include_secrets=include_secrets),
        }


@lru_cache
def get_settings(env_file: str = ".env") -> Settings:
    """
    Get cached settings instance.

    Args:
        env_file: Environment file to load
    """
    return Settings(env_file)


__all__ = [
    "CHANNEL_NAMES",
    "ChannelQueueSettings",
    "DispatchConfig",
    "EnvironmentLoader",
    "ProviderConfig",
    "Settings",
    "get_settings",
]
