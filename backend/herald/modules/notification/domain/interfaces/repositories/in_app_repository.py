"""In-app inbox storage interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from herald.modules.notification.domain.entities.in_app_notification import (
    InAppNotification,
)
from herald.modules.notification.domain.enums import NotificationType


class IInAppNotificationRepository(ABC):
    """Per-user inbox of in-app notifications."""

    @abstractmethod
    async def add(self, item: InAppNotification) -> None:
        """
        Store a new inbox entry.

        Raises:
            InfrastructureError: If the inbox cannot be written
        """

    @abstractmethod
    async def get(self, user_id: str, item_id: UUID) -> InAppNotification | None:
        """Find one entry of a user's inbox."""

    @abstractmethod
    async def save(self, item: InAppNotification) -> None:
        """Persist changes to an existing entry."""

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> list[InAppNotification]:
        """A user's entries, newest first."""
