"""Processing of claimed delivery units."""

import asyncio
from collections.abc import Iterable

from herald.core.logging import bound_context, get_logger
from herald.modules.notification.application.services.delivery_tracking_service import (
    DeliveryTracker,
)
from herald.modules.notification.application.services.retry_controller import (
    RetryAction,
    RetryController,
)
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import DeliveryStatus, NotificationChannel
from herald.modules.notification.domain.interfaces.repositories import (
    IDeliveryUnitRepository,
    INotificationRepository,
)
from herald.modules.notification.domain.interfaces.services import (
    IChannelSender,
    IClock,
    IDispatchQueue,
)
from herald.modules.notification.domain.value_objects import QueueConfig, SendOutcome

logger = get_logger(__name__)


class DispatchScheduler:
    """
    Sends claimed units through their channel sender and applies the outcome.

    Every failure of a single unit, including a sender that raises or hangs
    past the channel's send timeout, is turned into a recorded outcome for
    that unit only. A retryable failure whose notification was cancelled
    during the attempt is not retried.
    """

    def __init__(
        self,
        queues: dict[NotificationChannel, IDispatchQueue],
        senders: dict[NotificationChannel, IChannelSender],
        unit_repository: IDeliveryUnitRepository,
        notification_repository: INotificationRepository,
        retry_controller: RetryController,
        tracker: DeliveryTracker,
        clock: IClock,
    ):
        self.queues = queues
        self.senders = senders
        self.unit_repository = unit_repository
        self.notification_repository = notification_repository
        self.retry_controller = retry_controller
        self.tracker = tracker
        self.clock = clock

    async def process(self, unit: DeliveryUnit) -> None:
        """Finish one unit handed out by ``pop_due``."""
        queue = self.queues[unit.channel]

        if unit.status == DeliveryStatus.EXPIRED:
            await self.tracker.record(unit, is_final=True, at=self.clock.now())
            await self.unit_repository.save(unit)
            logger.info(
                "Delivery unit expired before send",
                unit_id=str(unit.id),
                notification_id=str(unit.notification_id),
                channel=unit.channel.value,
            )
            return

        with bound_context(
            notification_id=str(unit.notification_id), channel=unit.channel.value
        ):
            outcome = await self._attempt(unit, queue.config)
            cancelled = await self._is_cancelled(unit)
            action = await self.retry_controller.on_outcome(
                unit, outcome, queue.config, cancelled=cancelled
            )
        await self.unit_repository.save(unit)

        if action == RetryAction.RETRY:
            queue.push(unit, force=True)

    async def close(self) -> None:
        """Release the transports of every registered sender."""
        for sender in self.senders.values():
            await sender.close()

    async def _is_cancelled(self, unit: DeliveryUnit) -> bool:
        notification = await self.notification_repository.get_by_id(unit.notification_id)
        return notification is not None and notification.is_cancelled

    async def _attempt(self, unit: DeliveryUnit, config: QueueConfig) -> SendOutcome:
        sender = self.senders.get(unit.channel)
        if sender is None:
            return SendOutcome.failed(
                f"no sender registered for channel {unit.channel.value}", retryable=False
            )

        try:
            return await asyncio.wait_for(
                sender.send(unit), timeout=config.send_timeout_seconds
            )
        except TimeoutError:
            logger.warning(
                "Send attempt timed out",
                unit_id=str(unit.id),
                channel=unit.channel.value,
                attempt=unit.attempts,
                timeout_seconds=config.send_timeout_seconds,
            )
            return SendOutcome.failed(
                f"send timed out after {config.send_timeout_seconds}s", retryable=True
            )
        except Exception as e:
            logger.exception(
                "Channel sender raised",
                unit_id=str(unit.id),
                channel=unit.channel.value,
                attempt=unit.attempts,
            )
            return SendOutcome.failed(f"sender error: {e}", retryable=True)

    async def run_once(self, channels: Iterable[NotificationChannel] | None = None) -> int:
        """
        Process every unit that is due now, one at a time per channel.

        Args:
            channels: Channels to drain, all when omitted

        Returns:
            Number of units processed
        """
        processed = 0
        for channel in list(channels or self.queues):
            queue = self.queues[channel]
            while (unit := queue.pop_due(self.clock.now())) is not None:
                await self.process(unit)
                processed += 1
        return processed
