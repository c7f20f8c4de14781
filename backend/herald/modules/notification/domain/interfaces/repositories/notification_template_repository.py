"""Notification Template Repository Interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)
from herald.modules.notification.domain.enums import NotificationChannel, NotificationType


class INotificationTemplateRepository(ABC):
    """Repository interface for versioned notification templates."""

    @abstractmethod
    async def save(self, template: NotificationTemplate) -> None:
        """Insert or replace one template version."""

    @abstractmethod
    async def get_by_id(self, template_id: UUID) -> NotificationTemplate | None:
        """Find a template version by id."""

    @abstractmethod
    async def get_active(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        """Find the active version for a (type, channel) pair."""

    @abstractmethod
    async def list_versions(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> list[NotificationTemplate]:
        """List all versions of a pair, oldest first."""

    @abstractmethod
    async def list_all(
        self,
        notification_type: NotificationType | None = None,
        channel: NotificationChannel | None = None,
        active_only: bool = False,
    ) -> list[NotificationTemplate]:
        """List templates with optional filters."""

    @abstractmethod
    async def activate(self, template: NotificationTemplate) -> NotificationTemplate | None:
        """
        Make ``template`` the active version of its pair.

        Returns:
            The previously active version, now deactivated, if there was one
        """
