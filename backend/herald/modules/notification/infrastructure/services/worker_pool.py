"""Asyncio worker pool draining the channel queues."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.interfaces.services import IClock
from herald.modules.notification.infrastructure.services.queue_service import ChannelQueue

logger = get_logger(__name__)

UnitHandler = Callable[[DeliveryUnit], Awaitable[None]]


class ChannelWorkerPool:
    """
    Fixed pool of ``max_concurrency`` workers per channel.

    Workers only read their own channel's queue. An idle worker sleeps until
    something is pushed or the tick interval elapses, which is when units
    waiting on a due time become visible.
    """

    def __init__(
        self,
        queues: dict[NotificationChannel, ChannelQueue],
        handler: UnitHandler,
        clock: IClock,
        tick_interval_seconds: float = 0.25,
        stop_timeout_seconds: float = 5.0,
    ):
        self.queues = queues
        self.handler = handler
        self.clock = clock
        self.tick_interval_seconds = tick_interval_seconds
        self.stop_timeout_seconds = stop_timeout_seconds

        self._tasks: list[asyncio.Task] = []
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def worker_count(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return

        self._stopping = False
        for channel, queue in self.queues.items():
            for index in range(queue.config.max_concurrency):
                self._tasks.append(
                    asyncio.create_task(
                        self._work(queue, index),
                        name=f"herald-{channel.value}-worker-{index}",
                    )
                )

        logger.info(
            "Worker pool started",
            workers=len(self._tasks),
            channels=[channel.value for channel in self.queues],
        )

    async def stop(self) -> None:
        """Let in-flight sends finish, then cancel workers that do not exit in time."""
        if not self._tasks:
            return

        self._stopping = True
        for queue in self.queues.values():
            queue.wakeup.set()

        _, pending = await asyncio.wait(self._tasks, timeout=self.stop_timeout_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("Worker pool cancelled busy workers", cancelled=len(pending))

        self._tasks.clear()
        logger.info("Worker pool stopped")

    async def _work(self, queue: ChannelQueue, index: int) -> None:
        while not self._stopping:
            queue.wakeup.clear()
            unit = queue.pop_due(self.clock.now())

            if unit is None:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        queue.wakeup.wait(), timeout=self.tick_interval_seconds
                    )
                continue

            try:
                await self.handler(unit)
            except Exception:
                # The worker must survive a failing unit; the unit stays as the handler left it.
                logger.exception(
                    "Unhandled error while processing delivery unit",
                    unit_id=str(unit.id),
                    channel=queue.channel.value,
                    worker=index,
                )
