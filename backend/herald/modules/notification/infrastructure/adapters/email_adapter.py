"""Email channel sender backed by a JSON mail relay."""

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.interfaces.services import IUserDirectory
from herald.modules.notification.domain.value_objects import SendOutcome
from herald.modules.notification.infrastructure.adapters.base import BaseChannelSender
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient


class EmailChannelSender(BaseChannelSender):
    """Posts subject, HTML and plain-text parts to the mail relay."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        relay: HttpRelayClient,
        user_directory: IUserDirectory,
        from_address: str,
        path: str = "/emails",
    ):
        super().__init__(user_directory)
        self.relay = relay
        self.from_address = from_address
        self.path = path

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        address = await self._address(unit)
        content = self._content(unit)

        payload = {
            "from": self.from_address,
            "to": address,
            "subject": content.subject or "Notification",
            "text": content.text_body or content.body,
        }
        if content.html_body:
            payload["html"] = content.html_body

        response = await self.relay.post(self.path, json=payload)
        return SendOutcome.delivered(provider_message_id=self.relay.message_id(response))
