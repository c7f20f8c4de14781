"""Shared kernel for the Herald backend.

Components:
- domain: Base domain primitives (ValueObject, Entity, AggregateRoot)
- errors: Error hierarchy shared by every module
- logging: Structured logging on top of structlog
- config: Environment driven settings
"""

from .errors import (
    ApplicationError,
    ConfigurationError,
    DomainError,
    HeraldError,
    InfrastructureError,
    NotFoundError,
    ResourceExhaustedError,
    ValidationError,
)

__all__ = [
    "ApplicationError",
    "ConfigurationError",
    "DomainError",
    "HeraldError",
    "InfrastructureError",
    "NotFoundError",
    "ResourceExhaustedError",
    "ValidationError",
]
