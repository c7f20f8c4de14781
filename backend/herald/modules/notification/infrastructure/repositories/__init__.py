"""In-memory implementations of the notification repositories."""

from herald.modules.notification.infrastructure.repositories.campaign_repository import (
    InMemoryCampaignRepository,
    InMemoryNotificationBatchRepository,
)
from herald.modules.notification.infrastructure.repositories.delivery_history_repository import (
    InMemoryDeadLetterStore,
    InMemoryDeliveryHistoryRepository,
)
from herald.modules.notification.infrastructure.repositories.in_app_repository import (
    InMemoryInAppNotificationRepository,
)
from herald.modules.notification.infrastructure.repositories.notification_repository import (
    InMemoryDeliveryUnitRepository,
    InMemoryNotificationRepository,
)
from herald.modules.notification.infrastructure.repositories.notification_template_repository import (
    InMemoryNotificationTemplateRepository,
    default_templates,
)
from herald.modules.notification.infrastructure.repositories.preference_repository import (
    InMemoryPreferenceRepository,
)
from herald.modules.notification.infrastructure.repositories.user_directory import (
    DirectoryEntry,
    InMemoryUserDirectory,
)

__all__ = [
    "DirectoryEntry",
    "InMemoryCampaignRepository",
    "InMemoryDeadLetterStore",
    "InMemoryDeliveryHistoryRepository",
    "InMemoryDeliveryUnitRepository",
    "InMemoryInAppNotificationRepository",
    "InMemoryNotificationBatchRepository",
    "InMemoryNotificationRepository",
    "InMemoryNotificationTemplateRepository",
    "InMemoryPreferenceRepository",
    "InMemoryUserDirectory",
    "default_templates",
]
