"""Push channel sender backed by a JSON push relay."""

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.interfaces.services import IUserDirectory
from herald.modules.notification.domain.value_objects import SendOutcome
from herald.modules.notification.infrastructure.adapters.base import BaseChannelSender
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient


class PushChannelSender(BaseChannelSender):
    """Sends the rendered push payload to the device token of the user."""

    channel = NotificationChannel.PUSH

    def __init__(
        self,
        relay: HttpRelayClient,
        user_directory: IUserDirectory,
        path: str = "/push",
    ):
        super().__init__(user_directory)
        self.relay = relay
        self.path = path

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        token = await self._address(unit)
        content = self._content(unit)

        payload = {
            "token": token,
            "notification": content.payload,
            "priority": "high" if unit.priority.rank >= 2 else "normal",
        }
        response = await self.relay.post(self.path, json=payload)
        return SendOutcome.delivered(provider_message_id=self.relay.message_id(response))
