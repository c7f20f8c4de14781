"""Notification domain interfaces."""

from herald.modules.notification.domain.interfaces.repositories import (
    ICampaignRepository,
    IDeadLetterStore,
    IDeliveryHistoryRepository,
    IDeliveryUnitRepository,
    IInAppNotificationRepository,
    INotificationBatchRepository,
    INotificationRepository,
    INotificationTemplateRepository,
    IPreferenceRepository,
)
from herald.modules.notification.domain.interfaces.services import (
    IChannelSender,
    IClock,
    IDispatchQueue,
    ITemplateEngine,
    IUserDirectory,
)

__all__ = [
    "ICampaignRepository",
    "IChannelSender",
    "IClock",
    "IDeadLetterStore",
    "IDeliveryHistoryRepository",
    "IDeliveryUnitRepository",
    "IDispatchQueue",
    "IInAppNotificationRepository",
    "INotificationBatchRepository",
    "INotificationRepository",
    "INotificationTemplateRepository",
    "IPreferenceRepository",
    "ITemplateEngine",
    "IUserDirectory",
]
