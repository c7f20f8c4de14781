"""Notification domain aggregates."""

from herald.modules.notification.domain.aggregates.campaign import Campaign
from herald.modules.notification.domain.aggregates.notification_batch import (
    NotificationBatch,
)
from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)

__all__ = ["Campaign", "NotificationBatch", "NotificationTemplate"]
