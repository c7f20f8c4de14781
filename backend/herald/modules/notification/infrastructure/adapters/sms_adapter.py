"""SMS channel sender backed by a JSON SMS relay."""

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.interfaces.services import IUserDirectory
from herald.modules.notification.domain.value_objects import SendOutcome
from herald.modules.notification.infrastructure.adapters.base import BaseChannelSender
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient


class SmsChannelSender(BaseChannelSender):
    channel = NotificationChannel.SMS

    def __init__(
        self,
        relay: HttpRelayClient,
        user_directory: IUserDirectory,
        from_number: str | None = None,
        path: str = "/messages",
    ):
        super().__init__(user_directory)
        self.relay = relay
        self.from_number = from_number
        self.path = path

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        phone = await self._address(unit)
        content = self._content(unit)

        payload = {"to": phone, "body": content.body}
        if self.from_number:
            payload["from"] = self.from_number

        response = await self.relay.post(self.path, json=payload)
        return SendOutcome.delivered(provider_message_id=self.relay.message_id(response))
