"""Notification repository interfaces."""

from herald.modules.notification.domain.interfaces.repositories.campaign_repository import (
    ICampaignRepository,
    INotificationBatchRepository,
)
from herald.modules.notification.domain.interfaces.repositories.delivery_history_repository import (
    IDeadLetterStore,
    IDeliveryHistoryRepository,
)
from herald.modules.notification.domain.interfaces.repositories.in_app_repository import (
    IInAppNotificationRepository,
)
from herald.modules.notification.domain.interfaces.repositories.notification_repository import (
    IDeliveryUnitRepository,
    INotificationRepository,
)
from herald.modules.notification.domain.interfaces.repositories.notification_template_repository import (
    INotificationTemplateRepository,
)
from herald.modules.notification.domain.interfaces.repositories.preference_repository import (
    IPreferenceRepository,
)

__all__ = [
    "ICampaignRepository",
    "IDeadLetterStore",
    "IDeliveryHistoryRepository",
    "IDeliveryUnitRepository",
    "IInAppNotificationRepository",
    "INotificationBatchRepository",
    "INotificationRepository",
    "INotificationTemplateRepository",
    "IPreferenceRepository",
]
