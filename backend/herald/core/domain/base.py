"""Domain building blocks.

Provides the base classes every domain model in Herald derives from:

- ValueObject: immutable, attribute-equal values with validation helpers
- Entity: identity-equal objects with creation and modification timestamps
- AggregateRoot: consistency boundary that collects domain events
- DomainEvent: something that happened which other components may react to
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID, uuid4

from herald.core.errors import ValidationError


class ValueObject(ABC):
    """
    Base value object.

    Value objects are immutable and defined entirely by their attributes.
    Subclasses validate in ``__init__`` and call ``_freeze()`` when done.

    Usage Example:
        class Window(ValueObject):
            def __init__(self, start: str, end: str):
                super().__init__()
                self.start = start
                self.end = end
                self._freeze()

            def __str__(self) -> str:
                return f"{self.start}-{self.end}"
    """

    def __init__(self):
        self._frozen = False
        self._hash_cache = None

    def _freeze(self) -> None:
        """Mark the object as frozen (immutable)."""
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False) and name != "_hash_cache":
            raise AttributeError(f"Cannot modify immutable {self.__class__.__name__}")
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(
                f"Cannot delete attribute from immutable {self.__class__.__name__}"
            )
        super().__delattr__(name)

    def _public_attrs(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self._public_attrs() == other._public_attrs()

    def __hash__(self) -> int:
        if self._hash_cache is None:
            values = []
            for key, value in sorted(self._public_attrs().items()):
                if isinstance(value, dict):
                    value = tuple(sorted(value.items()))
                elif isinstance(value, set | frozenset):
                    value = tuple(sorted(value, key=str))
                elif isinstance(value, list):
                    value = tuple(value)
                values.append((key, value))

            self._hash_cache = hash((self.__class__.__name__, tuple(values)))

        return self._hash_cache

    def __repr__(self) -> str:
        attrs_str = ", ".join(f"{k}={v!r}" for k, v in self._public_attrs().items())
        return f"{self.__class__.__name__}({attrs_str})"

    @abstractmethod
    def __str__(self) -> str:
        """String representation. Must be implemented by subclasses."""

    def to_dict(self) -> dict[str, Any]:
        """Convert value object to dictionary."""
        result = {}
        for key, value in self._public_attrs().items():
            if hasattr(value, "to_dict"):
                result[key] = value.to_dict()
            elif isinstance(value, UUID | datetime):
                result[key] = str(value)
            else:
                result[key] = value
        return result

    @classmethod
    def validate_not_empty(cls, value: Any, field_name: str) -> None:
        """
        Validate that a value is not None or blank.

        Raises:
            ValidationError: If value is empty
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} cannot be empty", field=field_name)

    @classmethod
    def validate_in_range(
        cls,
        value: float,
        min_value: float | None,
        max_value: float | None,
        field_name: str,
    ) -> None:
        """
        Validate that a numeric value lies within bounds.

        Raises:
            ValidationError: If value is out of range
        """
        if min_value is not None and value < min_value:
            raise ValidationError(
                f"{field_name} must be at least {min_value}", field=field_name
            )
        if max_value is not None and value > max_value:
            raise ValidationError(
                f"{field_name} must be at most {max_value}", field=field_name
            )


class Entity(ABC):
    """
    Base entity with identity and lifecycle timestamps.

    Entities are equal when they share a type and an id.
    """

    def __init__(self, entity_id: UUID | None = None, created_at: datetime | None = None):
        self.id = entity_id or uuid4()
        self.created_at = created_at or datetime.now(UTC)
        self.updated_at = self.created_at

        self._validate_entity()

    def _validate_entity(self) -> None:
        """
        Validate entity state. Override in subclasses for specific validation.

        Raises:
            ValidationError: If entity is in invalid state
        """
        if not isinstance(self.id, UUID):
            raise ValidationError("Entity ID must be a UUID")

        if not isinstance(self.created_at, datetime):
            raise ValidationError("Entity created_at must be a datetime")

    def mark_modified(self, at: datetime | None = None) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = at or datetime.now(UTC)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.id))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id}, created_at={self.created_at})"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.id})"


class AggregateRoot(Entity):
    """
    Aggregate root with domain event management.

    Aggregates record events as they change state; the application layer
    drains them with ``clear_events()`` after the aggregate has been saved.
    """

    def __init__(self, entity_id: UUID | None = None, created_at: datetime | None = None):
        self._events: list[DomainEvent] = []
        self._version = 1
        super().__init__(entity_id, created_at)

    def add_event(self, event: "DomainEvent") -> None:
        """
        Add a domain event to the aggregate.

        Raises:
            ValidationError: If event is not a DomainEvent
        """
        if not isinstance(event, DomainEvent):
            raise ValidationError("Event must be a DomainEvent instance")

        self._events.append(event)

    def clear_events(self) -> list["DomainEvent"]:
        """Clear and return all uncommitted events."""
        events = self._events.copy()
        self._events.clear()
        return events

    def increment_version(self) -> None:
        """Increment aggregate version for optimistic locking."""
        self._version += 1

    @property
    def version(self) -> int:
        return self._version

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"id={self.id}, "
            f"version={self._version}, "
            f"events={len(self._events)}, "
            f"created_at={self.created_at})"
        )


class DomainEvent(ABC):
    """
    Base domain event class.

    Domain events represent something that happened in the domain
    that other components care about.
    """

    event_type: str = "domain_event"

    def __init__(self, aggregate_id: UUID):
        self.event_id = uuid4()
        self.aggregate_id = aggregate_id
        self.occurred_at = datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        result = {"event_type": self.event_type}
        for key, value in self.__dict__.items():
            if isinstance(value, UUID | datetime):
                result[key] = str(value)
            elif hasattr(value, "value"):
                result[key] = value.value
            else:
                result[key] = value
        return result

    @abstractmethod
    def __str__(self) -> str:
        """String representation of the event."""


EntityT = TypeVar("EntityT", bound=Entity)
AggregateT = TypeVar("AggregateT", bound=AggregateRoot)

__all__ = [
    "AggregateRoot",
    "AggregateT",
    "DomainEvent",
    "Entity",
    "EntityT",
    "ValueObject",
]
