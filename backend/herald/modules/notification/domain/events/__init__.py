"""Notification domain events.

Events are collected on aggregates while they change state and drained by the
application layer once the change has been saved.
"""

from datetime import datetime
from uuid import UUID

from herald.core.domain.base import DomainEvent
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


class NotificationCreated(DomainEvent):
    """Emitted when a notification has been accepted."""

    event_type = "notification.created"

    def __init__(
        self,
        notification_id: UUID,
        user_id: str,
        notification_type: NotificationType,
        channels: list[NotificationChannel],
        priority: NotificationPriority,
        scheduled_at: datetime | None = None,
    ):
        super().__init__(notification_id)
        self.notification_id = notification_id
        self.user_id = user_id
        self.notification_type = notification_type
        self.channels = [channel.value for channel in channels]
        self.priority = priority
        self.scheduled_at = scheduled_at

    def __str__(self) -> str:
        return f"NotificationCreated({self.notification_id})"


class NotificationSuppressed(DomainEvent):
    """Emitted when preferences or frequency caps leave nothing to deliver."""

    event_type = "notification.suppressed"

    def __init__(self, notification_id: UUID, user_id: str, reason: str):
        super().__init__(notification_id)
        self.notification_id = notification_id
        self.user_id = user_id
        self.reason = reason

    def __str__(self) -> str:
        return f"NotificationSuppressed({self.notification_id}: {self.reason})"


class NotificationExpired(DomainEvent):
    event_type = "notification.expired"

    def __init__(self, notification_id: UUID, expires_at: datetime):
        super().__init__(notification_id)
        self.notification_id = notification_id
        self.expires_at = expires_at

    def __str__(self) -> str:
        return f"NotificationExpired({self.notification_id})"


class NotificationCancelled(DomainEvent):
    event_type = "notification.cancelled"

    def __init__(self, notification_id: UUID, cancelled_units: int = 0):
        super().__init__(notification_id)
        self.notification_id = notification_id
        self.cancelled_units = cancelled_units

    def __str__(self) -> str:
        return f"NotificationCancelled({self.notification_id})"


class TemplateActivated(DomainEvent):
    event_type = "template.activated"

    def __init__(
        self,
        template_id: UUID,
        notification_type: NotificationType,
        channel: NotificationChannel,
        version: int,
    ):
        super().__init__(template_id)
        self.template_id = template_id
        self.notification_type = notification_type
        self.channel = channel
        self.version = version

    def __str__(self) -> str:
        return f"TemplateActivated({self.template_id} v{self.version})"


class BatchCompleted(DomainEvent):
    event_type = "batch.completed"

    def __init__(self, batch_id: UUID, accepted: int, rejected: int):
        super().__init__(batch_id)
        self.batch_id = batch_id
        self.accepted = accepted
        self.rejected = rejected

    def __str__(self) -> str:
        return f"BatchCompleted({self.batch_id})"


class CampaignLaunched(DomainEvent):
    """Emitted every time a campaign expands into notifications."""

    event_type = "campaign.launched"

    def __init__(self, campaign_id: UUID, occurrence: int, recipients: int):
        super().__init__(campaign_id)
        self.campaign_id = campaign_id
        self.occurrence = occurrence
        self.recipients = recipients

    def __str__(self) -> str:
        return f"CampaignLaunched({self.campaign_id} #{self.occurrence})"


class CampaignFinished(DomainEvent):
    """Emitted when a campaign reaches COMPLETED or CANCELLED."""

    event_type = "campaign.finished"

    def __init__(self, campaign_id: UUID, status: str, occurrences: int):
        super().__init__(campaign_id)
        self.campaign_id = campaign_id
        self.status = status
        self.occurrences = occurrences

    def __str__(self) -> str:
        return f"CampaignFinished({self.campaign_id}: {self.status})"


__all__ = [
    "BatchCompleted",
    "CampaignFinished",
    "CampaignLaunched",
    "NotificationCancelled",
    "NotificationCreated",
    "NotificationExpired",
    "NotificationSuppressed",
    "TemplateActivated",
]
