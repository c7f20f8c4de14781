"""User directory port."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from herald.modules.notification.domain.value_objects import ContactInfo


class IUserDirectory(ABC):
    """Read-only view of users owned by another module."""

    @abstractmethod
    async def get_contact(self, user_id: str) -> ContactInfo | None:
        """Per-channel addresses of a user, or None if the user is unknown."""

    @abstractmethod
    def iter_user_ids(
        self,
        roles: tuple[str, ...] = (),
        locations: tuple[str, ...] = (),
        segments: tuple[str, ...] = (),
    ) -> AsyncIterator[str]:
        """Lazily yield ids of users matching every non-empty filter."""
