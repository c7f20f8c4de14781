"""Notification Repository Interface.

Domain contract for notification and delivery unit storage.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.enums import NotificationCategory


class INotificationRepository(ABC):
    """Repository interface for Notification aggregates."""

    @abstractmethod
    async def save(self, notification: Notification) -> None:
        """Insert or replace a notification."""

    @abstractmethod
    async def get_by_id(self, notification_id: UUID) -> Notification | None:
        """Find a notification by id."""

    @abstractmethod
    async def find_by_user(
        self, user_id: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        """Find a user's notifications, newest first."""

    @abstractmethod
    async def count_queued_since(
        self, user_id: str, category: NotificationCategory, since: datetime
    ) -> int:
        """Count a user's queued notifications of one category created at or after ``since``."""


class IDeliveryUnitRepository(ABC):
    """Repository interface for per-channel delivery units."""

    @abstractmethod
    async def save(self, unit: DeliveryUnit) -> None:
        """Insert or replace a delivery unit."""

    @abstractmethod
    async def get_by_id(self, unit_id: UUID) -> DeliveryUnit | None:
        """Find a delivery unit by id."""

    @abstractmethod
    async def find_by_notification(self, notification_id: UUID) -> list[DeliveryUnit]:
        """Find every unit derived from one notification."""
