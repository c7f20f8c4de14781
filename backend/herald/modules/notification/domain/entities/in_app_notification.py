"""In-app inbox entry."""

from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.domain.base import Entity
from herald.modules.notification.domain.enums import NotificationPriority, NotificationType


class InAppNotification(Entity):
    """A notification as it appears in the user's in-app inbox."""

    def __init__(
        self,
        user_id: str,
        notification_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority,
        created_at: datetime,
        data: dict[str, Any] | None = None,
        expires_at: datetime | None = None,
        action_url: str | None = None,
        image_url: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
    ):
        super().__init__(created_at=created_at)
        self.user_id = user_id
        self.notification_id = notification_id
        self.notification_type = notification_type
        self.title = title
        self.message = message
        self.priority = priority
        self.data = dict(data or {})
        self.expires_at = expires_at
        self.action_url = action_url
        self.image_url = image_url
        self.category = category
        self.tags = list(tags or [])
        self.is_read = False
        self.read_at: datetime | None = None

    def mark_read(self, at: datetime) -> bool:
        """Mark as read; returns False if it already was."""
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = at
        self.mark_modified(at)
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "notification_id": str(self.notification_id),
            "type": self.notification_type.value,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "priority": self.priority.value,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "action_url": self.action_url,
            "image_url": self.image_url,
            "category": self.category,
            "tags": self.tags,
        }

    def __str__(self) -> str:
        return f"InAppNotification({self.title})"
