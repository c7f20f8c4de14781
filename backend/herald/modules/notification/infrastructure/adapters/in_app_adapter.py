"""In-app channel sender: writes to the user's inbox."""

from herald.core.errors import InfrastructureError
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.in_app_notification import (
    InAppNotification,
)
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.errors import TransportError
from herald.modules.notification.domain.interfaces.repositories import (
    IInAppNotificationRepository,
)
from herald.modules.notification.domain.interfaces.services import IClock
from herald.modules.notification.domain.value_objects import SendOutcome
from herald.modules.notification.infrastructure.adapters.base import BaseChannelSender


class InAppChannelSender(BaseChannelSender):
    """Local inbox write; only storage errors can fail it, and those are retryable."""

    channel = NotificationChannel.IN_APP

    def __init__(self, inbox: IInAppNotificationRepository, clock: IClock):
        super().__init__()
        self.inbox = inbox
        self.clock = clock

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        content = self._content(unit)
        payload = content.payload

        item = InAppNotification(
            user_id=unit.user_id,
            notification_id=unit.notification_id,
            notification_type=unit.notification_type,
            title=payload.get("title") or content.subject or "",
            message=content.body,
            priority=unit.priority,
            created_at=self.clock.now(),
            data=payload.get("data"),
            expires_at=unit.expires_at,
            action_url=payload.get("action_url"),
            image_url=payload.get("image_url"),
            category=payload.get("category"),
            tags=payload.get("tags"),
        )

        try:
            await self.inbox.add(item)
        except InfrastructureError as e:
            raise TransportError(self.channel.value, f"inbox write failed: {e.message}") from e

        return SendOutcome.delivered(provider_message_id=str(item.id))
