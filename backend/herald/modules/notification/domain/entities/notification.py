"""Notification aggregate.

A notification is the caller-facing request to tell one user about one
business event over one or more channels. Its content is immutable after
creation; only the lifecycle status changes. Delivery itself is tracked on
the per-channel DeliveryUnits derived from it.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from herald.core.domain.base import AggregateRoot
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from herald.modules.notification.domain.errors import InvalidStatusTransitionError
from herald.modules.notification.domain.events import (
    NotificationCancelled,
    NotificationCreated,
    NotificationExpired,
    NotificationSuppressed,
)

MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 10000


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class Notification(AggregateRoot):
    """A request to notify one user, fanned out per channel at enqueue time."""

    def __init__(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        channels: list[NotificationChannel],
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
        scheduled_at: datetime | None = None,
        expires_at: datetime | None = None,
        tags: list[str] | None = None,
        category: str | None = None,
        metadata: dict[str, Any] | None = None,
        action_url: str | None = None,
        image_url: str | None = None,
        sound: str | None = None,
        badge: int | None = None,
        batch_id: UUID | None = None,
        campaign_id: UUID | None = None,
        entity_id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        super().__init__(entity_id, created_at)

        self.user_id = self._validate_user_id(user_id)
        self.notification_type = NotificationType(notification_type)
        self.title = self._validate_text(title, "title", MAX_TITLE_LENGTH)
        self.message = self._validate_text(message, "message", MAX_MESSAGE_LENGTH)
        self.channels = self._validate_channels(channels)
        self.priority = NotificationPriority(priority)
        self.data = dict(data or {})
        self.scheduled_at = ensure_aware(scheduled_at)
        self.expires_at = ensure_aware(expires_at)
        self.tags = list(tags or [])
        self.category = category or self.notification_type.category.value
        self.metadata = dict(metadata or {})
        self.action_url = action_url
        self.image_url = image_url
        self.sound = sound
        self.badge = badge
        self.batch_id = batch_id
        self.campaign_id = campaign_id

        self.status = NotificationStatus.PENDING
        self.status_reason: str | None = None

        self._validate_schedule()
        if badge is not None and badge < 0:
            raise ValidationError("Badge count cannot be negative", field="badge")

        self.add_event(
            NotificationCreated(
                notification_id=self.id,
                user_id=self.user_id,
                notification_type=self.notification_type,
                channels=self.channels,
                priority=self.priority,
                scheduled_at=self.scheduled_at,
            )
        )

    @staticmethod
    def _validate_user_id(user_id: str) -> str:
        if user_id is None or not str(user_id).strip():
            raise ValidationError("user_id is required", field="user_id")
        return str(user_id).strip()

    @staticmethod
    def _validate_text(value: str, field_name: str, max_length: int) -> str:
        if not value or not value.strip():
            raise ValidationError(f"{field_name} is required", field=field_name)
        if len(value) > max_length:
            raise ValidationError(
                f"{field_name} cannot exceed {max_length} characters", field=field_name
            )
        return value

    @staticmethod
    def _validate_channels(channels: list[NotificationChannel]) -> list[NotificationChannel]:
        if not channels:
            raise ValidationError("At least one channel is required", field="channels")

        unique: list[NotificationChannel] = []
        for channel in channels:
            resolved = NotificationChannel(channel)
            if resolved not in unique:
                unique.append(resolved)
        return unique

    def _validate_schedule(self) -> None:
        if (
            self.scheduled_at is not None
            and self.expires_at is not None
            and self.expires_at <= self.scheduled_at
        ):
            raise ValidationError(
                "expires_at must be later than scheduled_at", field="expires_at"
            )

    # Lifecycle

    def _transition(self, new_status: NotificationStatus, reason: str | None = None) -> None:
        if not self.status.can_transition_to(new_status):
            raise InvalidStatusTransitionError("Notification", self.status, new_status)
        self.status = new_status
        self.status_reason = reason
        self.mark_modified()

    def mark_queued(self) -> None:
        self._transition(NotificationStatus.QUEUED)

    def mark_suppressed(self, reason: str) -> None:
        self._transition(NotificationStatus.SUPPRESSED, reason)
        self.add_event(NotificationSuppressed(self.id, self.user_id, reason))

    def mark_expired(self) -> None:
        self._transition(NotificationStatus.EXPIRED, "expired before dispatch")
        self.add_event(NotificationExpired(self.id, self.expires_at))

    def cancel(self, cancelled_units: int = 0) -> None:
        self._transition(NotificationStatus.CANCELLED, "cancelled by caller")
        self.add_event(NotificationCancelled(self.id, cancelled_units))

    @property
    def is_cancelled(self) -> bool:
        return self.status == NotificationStatus.CANCELLED

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def is_scheduled_after(self, now: datetime) -> bool:
        return self.scheduled_at is not None and self.scheduled_at > now

    def template_variables(self) -> dict[str, Any]:
        """Variable bag handed to the renderer; title and message are always present."""
        return {**self.data, "title": self.title, "message": self.message}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "type": self.notification_type.value,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "channels": [channel.value for channel in self.channels],
            "priority": self.priority.value,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "tags": self.tags,
            "category": self.category,
            "metadata": self.metadata,
            "action_url": self.action_url,
            "image_url": self.image_url,
            "status": self.status.value,
            "status_reason": self.status_reason,
            "batch_id": str(self.batch_id) if self.batch_id else None,
            "campaign_id": str(self.campaign_id) if self.campaign_id else None,
            "created_at": self.created_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"Notification({self.notification_type.value} -> {self.user_id})"
