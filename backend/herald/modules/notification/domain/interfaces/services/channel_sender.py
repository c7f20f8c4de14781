"""Channel sender port."""

from abc import ABC, abstractmethod

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.value_objects import SendOutcome


class IChannelSender(ABC):
    """Transport for one channel.

    A sender makes exactly one transport attempt per call and classifies the
    result. It never schedules retries and never raises for transport
    problems; those become a FAILED outcome with ``retryable`` set.
    """

    channel: NotificationChannel

    @abstractmethod
    async def send(self, unit: DeliveryUnit) -> SendOutcome:
        """Attempt delivery of ``unit`` and classify the result."""

    async def close(self) -> None:
        """Release transport resources held by the sender."""
        return None
