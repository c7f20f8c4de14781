"""In-memory notification and delivery unit storage."""

from datetime import datetime
from uuid import UUID

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.enums import NotificationCategory, NotificationStatus
from herald.modules.notification.domain.interfaces.repositories import (
    IDeliveryUnitRepository,
    INotificationRepository,
)


class InMemoryNotificationRepository(INotificationRepository):
    """Dictionary-backed notification repository."""

    def __init__(self):
        self._items: dict[UUID, Notification] = {}

    async def save(self, notification: Notification) -> None:
        self._items[notification.id] = notification

    async def get_by_id(self, notification_id: UUID) -> Notification | None:
        return self._items.get(notification_id)

    async def find_by_user(
        self, user_id: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        matches = sorted(
            (n for n in self._items.values() if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return matches[offset:end]

    async def count_queued_since(
        self, user_id: str, category: NotificationCategory, since: datetime
    ) -> int:
        return sum(
            1
            for n in self._items.values()
            if n.user_id == user_id
            and n.status == NotificationStatus.QUEUED
            and n.notification_type.category == category
            and n.created_at >= since
        )

    def __len__(self) -> int:
        return len(self._items)


class InMemoryDeliveryUnitRepository(IDeliveryUnitRepository):
    """Dictionary-backed delivery unit repository."""

    def __init__(self):
        self._items: dict[UUID, DeliveryUnit] = {}

    async def save(self, unit: DeliveryUnit) -> None:
        self._items[unit.id] = unit

    async def get_by_id(self, unit_id: UUID) -> DeliveryUnit | None:
        return self._items.get(unit_id)

    async def find_by_notification(self, notification_id: UUID) -> list[DeliveryUnit]:
        return [u for u in self._items.values() if u.notification_id == notification_id]

    def __len__(self) -> int:
        return len(self._items)
