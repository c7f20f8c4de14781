"""Domain building blocks shared by all modules."""

from herald.core.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject

__all__ = ["AggregateRoot", "DomainEvent", "Entity", "ValueObject"]
