"""Retry and backoff decisions for finished send attempts."""

import random
from datetime import timedelta
from enum import Enum

from herald.core.logging import get_logger
from herald.modules.notification.application.services.delivery_tracking_service import (
    DeliveryTracker,
)
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.interfaces.repositories import IDeadLetterStore
from herald.modules.notification.domain.interfaces.services import IClock
from herald.modules.notification.domain.value_objects import QueueConfig, RetryPolicy, SendOutcome

logger = get_logger(__name__)

DEFAULT_JITTER_RATIO = 0.2


class RetryAction(Enum):
    """What happens to a unit after an attempt."""

    DELIVERED = "delivered"
    RETRY = "retry"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RetryController:
    """
    Applies a channel's retry policy to a send outcome.

    Delivered units are finalized. Retryable failures within the retry limit
    move to RETRY_WAIT with an exponential, jittered delay, unless the
    notification was cancelled while the attempt ran; such units end as
    CANCELLED. Everything else is finalized as FAILED and, when the channel
    has a dead-letter queue, copied there.
    """

    def __init__(
        self,
        tracker: DeliveryTracker,
        dead_letters: IDeadLetterStore,
        clock: IClock,
        jitter_ratio: float = DEFAULT_JITTER_RATIO,
        rng: random.Random | None = None,
    ):
        self.tracker = tracker
        self.dead_letters = dead_letters
        self.clock = clock
        self.jitter_ratio = jitter_ratio
        self._rng = rng or random.Random()

    def compute_delay(self, policy: RetryPolicy, retry_count: int) -> float:
        """Capped exponential delay with +/- ``jitter_ratio`` applied on top."""
        delay = policy.base_delay(retry_count)
        if self.jitter_ratio:
            delay *= 1 + self._rng.uniform(-self.jitter_ratio, self.jitter_ratio)
        return max(0.0, delay)

    async def on_outcome(
        self,
        unit: DeliveryUnit,
        outcome: SendOutcome,
        config: QueueConfig,
        cancelled: bool = False,
    ) -> RetryAction:
        """Transition the unit and record history for one attempt.

        Args:
            unit: Unit in SENDING status
            outcome: Classified result of the attempt
            config: Queue configuration of the unit's channel
            cancelled: Whether the parent notification was cancelled meanwhile

        Returns:
            The action taken
        """
        now = self.clock.now()

        if outcome.is_success:
            unit.mark_delivered(now)
            await self.tracker.record(unit, is_final=True, at=now)
            return RetryAction.DELIVERED

        policy = config.retry_policy
        if outcome.retryable and policy.allows_retry(unit.retry_count):
            if cancelled:
                unit.cancel_after_attempt(outcome.detail, now)
                await self.tracker.record(unit, is_final=True, at=now, error=outcome.detail)
                logger.info(
                    "Retry dropped for cancelled notification",
                    unit_id=str(unit.id),
                    notification_id=str(unit.notification_id),
                    channel=unit.channel.value,
                    attempt=unit.attempts,
                    error=outcome.detail,
                )
                return RetryAction.CANCELLED

            delay = self.compute_delay(policy, unit.retry_count)
            unit.schedule_retry(now + timedelta(seconds=delay), outcome.detail, now)
            await self.tracker.record(unit, is_final=False, at=now, error=outcome.detail)

            logger.info(
                "Delivery retry scheduled",
                unit_id=str(unit.id),
                channel=unit.channel.value,
                attempt=unit.attempts,
                retry=unit.retry_count,
                delay_seconds=round(delay, 3),
                error=outcome.detail,
            )
            return RetryAction.RETRY

        unit.mark_failed(outcome.detail, now)
        record = await self.tracker.record(unit, is_final=True, at=now, error=outcome.detail)

        if config.dead_letter_queue:
            await self.dead_letters.append(config.dead_letter_queue, record)

        logger.warning(
            "Delivery failed permanently",
            unit_id=str(unit.id),
            notification_id=str(unit.notification_id),
            channel=unit.channel.value,
            attempts=unit.attempts,
            retryable=outcome.retryable,
            error=outcome.detail,
            dead_letter_queue=config.dead_letter_queue,
        )
        return RetryAction.FAILED
