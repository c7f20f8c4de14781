"""Per-channel dispatch queues.

Each channel owns one ``ChannelQueue``. Units wait in a due-time heap until
they are due and then move to a ready heap ordered by
``(priority desc, due time asc, arrival)``. Workers take units with
``pop_due``, which also performs the atomic PENDING -> SENDING claim. The
queue only ever runs on the event loop thread and ``pop_due`` never awaits,
so a unit is claimed by exactly one worker.
"""

import asyncio
import heapq
import itertools
from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import DeliveryStatus, NotificationChannel
from herald.modules.notification.domain.errors import QueueSaturatedError
from herald.modules.notification.domain.interfaces.services import IDispatchQueue
from herald.modules.notification.domain.value_objects import QueueConfig

logger = get_logger(__name__)


class ChannelQueue(IDispatchQueue):
    """Bounded priority queue of delivery units for one channel."""

    def __init__(self, config: QueueConfig, max_depth: int | None = None):
        """Initialize channel queue.

        Args:
            config: Dispatch policy of the channel
            max_depth: Depth bound, defaults to ``config.max_depth``
        """
        self.config = config
        self.channel = config.channel
        self.max_depth = max_depth or config.max_depth

        self._waiting: list[tuple[datetime, int, DeliveryUnit]] = []
        self._ready: list[tuple[int, datetime, int, DeliveryUnit]] = []
        self._members: set[UUID] = set()
        self._sequence = itertools.count()

        # Set whenever a unit is pushed so idle workers re-check the queue.
        self.wakeup = asyncio.Event()

    @property
    def depth(self) -> int:
        """Units queued and not yet taken by a worker."""
        return len(self._members)

    def __len__(self) -> int:
        return self.depth

    def __contains__(self, unit: DeliveryUnit) -> bool:
        return unit.id in self._members

    def ensure_capacity(self, additional: int = 1) -> None:
        """
        Check that ``additional`` units fit below the depth bound.

        Raises:
            QueueSaturatedError: If the queue would exceed its bound
        """
        if self.depth + additional > self.max_depth:
            raise QueueSaturatedError(self.channel.value, self.depth, self.max_depth)

    def push(self, unit: DeliveryUnit, force: bool = False) -> None:
        """
        Add a unit; it stays invisible to ``pop_due`` until its due time.

        Args:
            unit: Unit in PENDING or RETRY_WAIT status
            force: Skip the depth bound, used when re-queueing retries

        Raises:
            QueueSaturatedError: If the queue is full and ``force`` is not set
        """
        if unit.channel != self.channel:
            raise ValueError(
                f"Unit for {unit.channel.value} pushed to {self.channel.value} queue"
            )
        if unit.id in self._members:
            return
        if not force:
            self.ensure_capacity()

        self._members.add(unit.id)
        heapq.heappush(self._waiting, (unit.due_time, next(self._sequence), unit))
        self.wakeup.set()

    def discard(self, unit: DeliveryUnit) -> bool:
        """Forget a unit; stale heap entries are skipped when popped."""
        if unit.id not in self._members:
            return False
        self._members.discard(unit.id)
        return True

    def promote_due(self, now: datetime) -> int:
        """Move units whose due time has passed into the ready heap."""
        promoted = 0
        while self._waiting and self._waiting[0][0] <= now:
            _, sequence, unit = heapq.heappop(self._waiting)
            if unit.id not in self._members or unit.is_final:
                self._members.discard(unit.id)
                continue

            if unit.status == DeliveryStatus.RETRY_WAIT:
                unit.promote(now)

            heapq.heappush(
                self._ready, (-unit.priority.rank, unit.due_time, sequence, unit)
            )
            promoted += 1
        return promoted

    def pop_due(self, now: datetime) -> DeliveryUnit | None:
        """
        Take the highest priority due unit.

        The returned unit is either claimed (SENDING) or, when its expiry has
        passed, already EXPIRED and must not be handed to a sender.
        """
        self.promote_due(now)

        while self._ready:
            _, _, _, unit = heapq.heappop(self._ready)
            if unit.id not in self._members:
                continue
            self._members.discard(unit.id)

            if unit.status != DeliveryStatus.PENDING:
                continue

            if unit.is_expired(now):
                unit.expire(now)
                return unit

            unit.claim(now)
            return unit

        return None

    def next_due_at(self) -> datetime | None:
        """Due time of the earliest waiting unit, if any."""
        while self._waiting and self._waiting[0][2].id not in self._members:
            heapq.heappop(self._waiting)
        return self._waiting[0][0] if self._waiting else None

    def stats(self) -> dict[str, Any]:
        ready = sum(1 for entry in self._ready if entry[3].id in self._members)
        return {
            "channel": self.channel.value,
            "depth": self.depth,
            "ready": ready,
            "waiting": self.depth - ready,
            "max_depth": self.max_depth,
            "max_concurrency": self.config.max_concurrency,
        }


def build_queues(
    configs: dict[NotificationChannel, QueueConfig],
) -> dict[NotificationChannel, ChannelQueue]:
    """One queue per configured channel."""
    queues = {channel: ChannelQueue(config) for channel, config in configs.items()}
    logger.debug(
        "Dispatch queues created",
        channels=[channel.value for channel in queues],
    )
    return queues
