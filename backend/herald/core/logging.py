# ruff: noqa: A005
"""Structured logging built on structlog.

Provides the logging setup used by every Herald component: a validated
LogConfig, filters that mask sensitive data before it reaches a sink, a
StructuredLogger wrapper with keyword-style context, and module level
helpers for configuring the pipeline and binding request context.

Note: This module name intentionally shadows the standard library 'logging'
module inside the herald.core package.
"""

import logging
import re
import sys
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

from herald.core.enums import Environment, LogFormat, LogLevel
from herald.core.errors import ConfigurationError


@dataclass
class LogConfig:
    """
    Logging configuration with validation and environment defaults.

    Usage Example:
        config = LogConfig(level=LogLevel.DEBUG, environment=Environment.TESTING)
        configure_logging(config)
    """

    level: LogLevel = field(default=LogLevel.INFO)
    format: LogFormat = field(default=LogFormat.JSON)
    environment: Environment = field(default=Environment.DEVELOPMENT)

    enable_timestamps: bool = field(default=True)
    enable_caller_info: bool = field(default=False)
    enable_exception_info: bool = field(default=True)

    enable_sensitive_data_filtering: bool = field(default=True)
    truncate_long_messages: bool = field(default=True)
    max_message_length: int = field(default=10000)

    def __post_init__(self):
        self.validate()
        self.apply_environment_defaults()

    def validate(self) -> None:
        """
        Validate logging configuration parameters.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.max_message_length < 1000:
            raise ConfigurationError(
                "Maximum message length must be at least 1000 characters",
                config_key="max_message_length",
            )

    def apply_environment_defaults(self) -> None:
        """Apply environment-specific defaults."""
        if self.environment == Environment.DEVELOPMENT:
            self.format = LogFormat.CONSOLE
            self.enable_caller_info = True

        elif self.environment == Environment.TESTING:
            self.format = LogFormat.PLAIN

        elif self.environment in (Environment.STAGING, Environment.PRODUCTION):
            self.format = LogFormat.JSON
            self.enable_caller_info = False
            self.enable_sensitive_data_filtering = True

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "level": self.level.level_name,
            "format": self.format.value,
            "environment": self.environment.value,
            "enable_timestamps": self.enable_timestamps,
            "enable_caller_info": self.enable_caller_info,
            "enable_sensitive_data_filtering": self.enable_sensitive_data_filtering,
            "max_message_length": self.max_message_length,
        }


# =====================================================================================
# SECURITY FILTERS
# =====================================================================================


class LogFilter(ABC):
    """Base class for log record filters."""

    @abstractmethod
    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        """Return a filtered copy of the log record."""

    @abstractmethod
    def should_skip(self, record: dict[str, Any]) -> bool:
        """Return True if the record should not be emitted at all."""


class SensitiveDataFilter(LogFilter):
    """
    Masks sensitive values in log records.

    Field names that look like credentials (password, token, secret, api key,
    signature) are masked wholesale. String values are scanned for card numbers
    and email addresses, which are masked in place. Nested dicts and lists are
    walked recursively.
    """

    def __init__(self, mask_char: str = "*", preserve_length: bool = False):
        self.mask_char = mask_char
        self.preserve_length = preserve_length

        self.sensitive_patterns = [
            re.compile(r"password", re.IGNORECASE),
            re.compile(r"token", re.IGNORECASE),
            re.compile(r"secret", re.IGNORECASE),
            re.compile(r"api.?key", re.IGNORECASE),
            re.compile(r"credential", re.IGNORECASE),
            re.compile(r"authorization", re.IGNORECASE),
            re.compile(r"signature", re.IGNORECASE),
        ]

        self.value_patterns = [
            re.compile(r"\b\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4}\b"),
            re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        ]

    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        filtered_record = {}

        for key, value in record.items():
            if self._is_sensitive_field(key):
                filtered_record[key] = self._mask_value(value)
            elif isinstance(value, str):
                filtered_record[key] = self._sanitize_string_value(value)
            elif isinstance(value, dict):
                filtered_record[key] = self.filter(value)
            elif isinstance(value, list):
                filtered_record[key] = [
                    self.filter(item)
                    if isinstance(item, dict)
                    else self._sanitize_string_value(item)
                    if isinstance(item, str)
                    else item
                    for item in value
                ]
            else:
                filtered_record[key] = value

        return filtered_record

    def should_skip(self, record: dict[str, Any]) -> bool:
        return False

    def _is_sensitive_field(self, field_name: str) -> bool:
        return any(pattern.search(field_name) for pattern in self.sensitive_patterns)

    def _mask_value(self, value: Any) -> str | None:
        if value is None:
            return None

        value_str = str(value)

        if self.preserve_length:
            return self.mask_char * len(value_str)
        return f"{self.mask_char * 3}[MASKED]"

    def _sanitize_string_value(self, value: str) -> str:
        sanitized = value
        for pattern in self.value_patterns:
            sanitized = pattern.sub(lambda m: self._mask_value(m.group()), sanitized)
        return sanitized


class MessageLengthFilter(LogFilter):
    """Filter for truncating overly long log messages."""

    def __init__(
        self, max_length: int = 10000, truncation_suffix: str = "... [TRUNCATED]"
    ):
        self.max_length = max_length
        self.truncation_suffix = truncation_suffix

    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        filtered_record = record.copy()

        message = record.get("message", "")
        if isinstance(message, str) and len(message) > self.max_length:
            truncated_length = self.max_length - len(self.truncation_suffix)
            filtered_record["message"] = (
                message[:truncated_length] + self.truncation_suffix
            )
            filtered_record["original_message_length"] = len(message)
            filtered_record["message_truncated"] = True

        return filtered_record

    def should_skip(self, record: dict[str, Any]) -> bool:
        return False


# =====================================================================================
# STRUCTURED LOGGER
# =====================================================================================


class StructuredLogger:
    """
    Structured logger wrapper.

    Accepts keyword context on every call, runs the configured filters over
    the record and hands it to structlog.
    """

    def __init__(self, name: str, config: LogConfig):
        self.name = name
        self.config = config

        self.filters: list[LogFilter] = []
        if config.enable_sensitive_data_filtering:
            self.filters.append(SensitiveDataFilter())
        if config.truncate_long_messages:
            self.filters.append(MessageLengthFilter(config.max_message_length))

        self._logger = structlog.get_logger(name)
        self._log_count = 0
        self._error_count = 0

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.ERROR, message, **kwargs)
        self._error_count += 1

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.CRITICAL, message, **kwargs)
        self._error_count += 1

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        kwargs["exc_info"] = True
        self.error(message, **kwargs)

    def prepare_record(self, message: str, **kwargs: Any) -> dict[str, Any] | None:
        """Build and filter the record for a message, or None if skipped."""
        record = {"message": message, **kwargs}
        for filter_instance in self.filters:
            if filter_instance.should_skip(record):
                return None
            record = filter_instance.filter(record)
        return record

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if level.priority < self.config.level.priority:
            return

        record = self.prepare_record(message, **kwargs)
        if record is None:
            return

        event = record.pop("message")
        getattr(self._logger, level.level_name.lower())(event, **record)
        self._log_count += 1

    def get_stats(self) -> dict[str, Any]:
        """Get logger statistics."""
        return {
            "logger_name": self.name,
            "log_count": self._log_count,
            "error_count": self._error_count,
            "error_rate": self._error_count / max(self._log_count, 1),
        }


# =====================================================================================
# LOGGER FACTORY
# =====================================================================================


class LoggerFactory:
    """Creates and caches structured loggers for a single configuration."""

    def __init__(self, config: LogConfig):
        self.config = config
        self._loggers: dict[str, StructuredLogger] = {}
        self._configured = False

    def configure_logging(self) -> None:
        """Configure structlog and the standard library root logger."""
        if self._configured:
            return

        processors = [
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
        ]

        if self.config.enable_timestamps:
            processors.append(structlog.processors.TimeStamper(fmt="iso"))

        if self.config.enable_caller_info:
            processors.append(
                structlog.processors.CallsiteParameterAdder(
                    parameters=[
                        structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO,
                        structlog.processors.CallsiteParameter.FUNC_NAME,
                    ]
                )
            )

        if self.config.enable_exception_info:
            processors.extend(
                [
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.format_exc_info,
                ]
            )

        processors.append(structlog.processors.UnicodeDecoder())

        if self.config.format == LogFormat.JSON:
            processors.append(structlog.processors.JSONRenderer())
        elif self.config.format == LogFormat.CONSOLE:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))
        else:
            processors.append(structlog.processors.KeyValueRenderer())

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=self.config.level.to_logging_level(),
        )

        if self.config.environment.is_production:
            logging.getLogger("httpx").setLevel(logging.WARNING)
            logging.getLogger("apscheduler").setLevel(logging.WARNING)

        self._configured = True

    def get_logger(self, name: str) -> StructuredLogger:
        """Get or create structured logger."""
        if not self._configured:
            self.configure_logging()

        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, self.config)

        return self._loggers[name]


# =====================================================================================
# GLOBAL CONFIGURATION AND FACTORY
# =====================================================================================

_logger_factory: LoggerFactory | None = None


def configure_logging(config: LogConfig | None = None) -> None:
    """
    Configure global logging system.

    Args:
        config: Logging configuration (built from settings if not provided)
    """
    global _logger_factory  # noqa: PLW0603 - Required to initialize global factory

    if config is None:
        from herald.core.config import get_settings

        settings = get_settings()
        config = LogConfig(
            level=LogLevel.from_string(settings.log_level),
            environment=settings.environment,
        )

    _logger_factory = LoggerFactory(config)
    _logger_factory.configure_logging()


def get_logger(name: str) -> StructuredLogger:
    """
    Get structured logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    if _logger_factory is None:
        configure_logging()

    return _logger_factory.get_logger(name)


@contextmanager
def bound_context(**kwargs: Any):
    """Bind context variables for the duration of a block."""
    structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*kwargs.keys())


__all__ = [
    "LogConfig",
    "LogFilter",
    "LoggerFactory",
    "MessageLengthFilter",
    "SensitiveDataFilter",
    "StructuredLogger",
    "bound_context",
    "configure_logging",
    "get_logger",
]
