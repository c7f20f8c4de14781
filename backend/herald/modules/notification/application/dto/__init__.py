"""Notification application DTOs.

Data Transfer Objects used by the dispatch service facade for requests
coming in from callers and results going back out.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.errors import ValidationError
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


def _parse_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"{field_name} is not an ISO-8601 datetime", field=field_name) from e


def _parse_enum(enum_class: type, value: Any, field_name: str) -> Any:
    try:
        return enum_class(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value}", field=field_name) from e


@dataclass(frozen=True)
class SendNotificationRequest:
    """DTO for a single notification request."""

    user_id: str
    notification_type: NotificationType
    title: str
    message: str
    channels: list[NotificationChannel]
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = field(default_factory=dict)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    tags: list[str] = field(default_factory=list)
    category: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    image_url: str | None = None
    sound: str | None = None
    badge: int | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SendNotificationRequest":
        """
        Build a request from a plain dictionary with string enum values.

        Raises:
            ValidationError: On missing fields or unknown enum values
        """
        missing = [
            name for name in ("user_id", "type", "title", "message", "channels") if not raw.get(name)
        ]
        if missing:
            raise ValidationError.from_fields({name: ["is required"] for name in missing})

        return cls(
            user_id=str(raw["user_id"]),
            notification_type=_parse_enum(NotificationType, raw["type"], "type"),
            title=raw["title"],
            message=raw["message"],
            channels=[_parse_enum(NotificationChannel, c, "channels") for c in raw["channels"]],
            priority=_parse_enum(
                NotificationPriority, raw.get("priority") or "normal", "priority"
            ),
            data=dict(raw.get("data") or {}),
            scheduled_at=_parse_datetime(raw.get("scheduled_at"), "scheduled_at"),
            expires_at=_parse_datetime(raw.get("expires_at"), "expires_at"),
            tags=list(raw.get("tags") or []),
            category=raw.get("category"),
            metadata=dict(raw.get("metadata") or {}),
            action_url=raw.get("action_url"),
            image_url=raw.get("image_url"),
            sound=raw.get("sound"),
            badge=raw.get("badge"),
        )

    def to_notification(
        self,
        created_at: datetime | None = None,
        batch_id: UUID | None = None,
        campaign_id: UUID | None = None,
        scheduled_at: datetime | None = None,
    ) -> Notification:
        """Create the Notification aggregate; validation happens here."""
        return Notification(
            user_id=self.user_id,
            notification_type=self.notification_type,
            title=self.title,
            message=self.message,
            channels=self.channels,
            priority=self.priority,
            data=self.data,
            scheduled_at=scheduled_at or self.scheduled_at,
            expires_at=self.expires_at,
            tags=self.tags,
            category=self.category,
            metadata=self.metadata,
            action_url=self.action_url,
            image_url=self.image_url,
            sound=self.sound,
            badge=self.badge,
            batch_id=batch_id,
            campaign_id=campaign_id,
            created_at=created_at,
        )


@dataclass(frozen=True)
class SendResult:
    """DTO for the immediate answer to an enqueue."""

    notification_id: UUID
    status: NotificationStatus
    channels: list[NotificationChannel] = field(default_factory=list)
    unit_ids: list[UUID] = field(default_factory=list)
    reason: str | None = None

    @property
    def is_queued(self) -> bool:
        return self.status == NotificationStatus.QUEUED

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_id": str(self.notification_id),
            "status": self.status.value,
            "channels": [channel.value for channel in self.channels],
            "unit_ids": [str(unit_id) for unit_id in self.unit_ids],
            "reason": self.reason,
        }


@dataclass(frozen=True)
class BulkSendResult:
    """DTO for a bulk enqueue."""

    batch_id: UUID
    batch_name: str
    results: list[SendResult] = field(default_factory=list)
    rejections: list[dict[str, Any]] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.results)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": str(self.batch_id),
            "batch_name": self.batch_name,
            "accepted": self.accepted_count,
            "rejected": self.rejected_count,
            "results": [result.to_dict() for result in self.results],
            "rejections": list(self.rejections),
        }


@dataclass(frozen=True)
class CampaignRunResult:
    """DTO summarizing one campaign expansion."""

    campaign_id: UUID
    occurrence: int
    recipients: int = 0
    enqueued: int = 0
    suppressed: int = 0
    rejected: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "campaign_id": str(self.campaign_id),
            "occurrence": self.occurrence,
            "recipients": self.recipients,
            "enqueued": self.enqueued,
            "suppressed": self.suppressed,
            "rejected": self.rejected,
        }


__all__ = [
    "BulkSendResult",
    "CampaignRunResult",
    "SendNotificationRequest",
    "SendResult",
]
