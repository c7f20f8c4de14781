"""Notification domain entities."""

from herald.modules.notification.domain.entities.delivery_record import DeliveryRecord
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.in_app_notification import (
    InAppNotification,
)
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)

__all__ = [
    "DeliveryRecord",
    "DeliveryUnit",
    "InAppNotification",
    "Notification",
    "NotificationPreferences",
]
