"""Notification application services."""

from herald.modules.notification.application.services.delivery_tracking_service import (
    DeliveryTracker,
    period_key,
)
from herald.modules.notification.application.services.dispatch_scheduler import (
    DispatchScheduler,
)
from herald.modules.notification.application.services.dispatch_service import (
    NotificationDispatchService,
)
from herald.modules.notification.application.services.frequency_guard import FrequencyGuard
from herald.modules.notification.application.services.orchestrator import (
    BatchOrchestrator,
    ExpandedItem,
)
from herald.modules.notification.application.services.preference_resolver import (
    PreferenceResolver,
)
from herald.modules.notification.application.services.retry_controller import (
    RetryAction,
    RetryController,
)
from herald.modules.notification.application.services.template_renderer import (
    TemplateRenderer,
    truncate,
)

__all__ = [
    "BatchOrchestrator",
    "DeliveryTracker",
    "DispatchScheduler",
    "ExpandedItem",
    "FrequencyGuard",
    "NotificationDispatchService",
    "PreferenceResolver",
    "RetryAction",
    "RetryController",
    "TemplateRenderer",
    "period_key",
    "truncate",
]
