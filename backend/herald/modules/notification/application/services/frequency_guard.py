"""Frequency caps: marketing interval and reminder opt-out."""

from datetime import datetime, timedelta

from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.enums import NotificationCategory
from herald.modules.notification.domain.interfaces.repositories import INotificationRepository
from herald.modules.notification.domain.value_objects import FrequencySettings


class FrequencyGuard:
    """Suppression check applied after preference resolution.

    Independent of quiet hours, which only move delivery in time. URGENT
    notifications are never suppressed.
    """

    def __init__(self, notification_repository: INotificationRepository):
        self.notification_repository = notification_repository

    async def check(
        self, notification: Notification, frequency: FrequencySettings, now: datetime
    ) -> str | None:
        """Return the suppression reason, or None if the notification may go out."""
        if notification.priority.bypasses_frequency_caps():
            return None

        notification_type = notification.notification_type

        if notification_type.is_reminder() and not frequency.reminders:
            return "reminders disabled by user"

        if notification_type.is_marketing():
            interval_days = frequency.marketing.min_interval_days()
            if interval_days is None:
                return "marketing notifications disabled by user"

            recent = await self.notification_repository.count_queued_since(
                notification.user_id,
                NotificationCategory.MARKETING,
                now - timedelta(days=interval_days),
            )
            if recent:
                return f"marketing frequency cap reached ({frequency.marketing.value})"

        return None
