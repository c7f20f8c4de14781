"""Base channel sender and shared helpers."""

from abc import abstractmethod

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.errors import TransportError
from herald.modules.notification.domain.interfaces.services import (
    IChannelSender,
    IUserDirectory,
)
from herald.modules.notification.domain.value_objects import RenderedContent, SendOutcome
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient

logger = get_logger(__name__)


class BaseChannelSender(IChannelSender):
    """Base class for channel senders.

    Subclasses implement ``_deliver`` and raise ``TransportError`` for any
    failed attempt. ``send`` turns those errors into a FAILED outcome carrying
    the transport's retry classification, so callers only ever see outcomes.
    """

    channel: NotificationChannel
    relay: HttpRelayClient | None = None

    def __init__(self, user_directory: IUserDirectory | None = None):
        self.user_directory = user_directory

    async def close(self) -> None:
        if self.relay is not None:
            await self.relay.close()

    async def send(self, unit: DeliveryUnit) -> SendOutcome:
        try:
            outcome = await self._deliver(unit)
        except TransportError as e:
            logger.warning(
                "Delivery attempt failed",
                unit_id=str(unit.id),
                notification_id=str(unit.notification_id),
                channel=self.channel.value,
                attempt=unit.attempts,
                reason=e.reason,
                retryable=e.is_retryable,
            )
            return SendOutcome.failed(e.reason, retryable=e.is_retryable)

        logger.debug(
            "Delivery attempt succeeded",
            unit_id=str(unit.id),
            channel=self.channel.value,
            attempt=unit.attempts,
            provider_message_id=outcome.provider_message_id,
        )
        return outcome

    @abstractmethod
    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        """
        Perform one transport attempt.

        Raises:
            TransportError: If the attempt failed
        """

    def _content(self, unit: DeliveryUnit) -> RenderedContent:
        if unit.content is None:
            raise TransportError(self.channel.value, "unit has no rendered content", False)
        return unit.content

    async def _address(self, unit: DeliveryUnit) -> str:
        """Contact address of the unit's user for this channel.

        Raises:
            TransportError: Permanent, if the user has no address for the channel
        """
        contact = None
        if self.user_directory is not None:
            contact = await self.user_directory.get_contact(unit.user_id)

        address = contact.address_for(self.channel) if contact else None
        if not address:
            raise TransportError(
                self.channel.value,
                f"no {self.channel.value} address for user {unit.user_id}",
                is_retryable=False,
            )
        return address


class LoggingChannelSender(BaseChannelSender):
    """Sender for channels without a configured provider: logs and reports delivery."""

    def __init__(self, channel: NotificationChannel, user_directory: IUserDirectory | None = None):
        super().__init__(user_directory)
        self.channel = NotificationChannel(channel)
        self.sent: list[DeliveryUnit] = []

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        content = self._content(unit)
        logger.info(
            "Provider not configured, delivery logged only",
            unit_id=str(unit.id),
            channel=self.channel.value,
            user_id=unit.user_id,
            subject=content.subject,
        )
        self.sent.append(unit)
        return SendOutcome.delivered(detail="logged")
