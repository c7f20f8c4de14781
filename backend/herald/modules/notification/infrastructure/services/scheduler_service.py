"""APScheduler-driven tick for recurring and scheduled campaigns."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from herald.core.errors import HeraldError
from herald.core.logging import get_logger

logger = get_logger(__name__)

CAMPAIGN_TICK_JOB_ID = "herald.campaign_tick"


class CampaignTickScheduler:
    """Runs the campaign tick callback on a fixed interval."""

    def __init__(
        self,
        tick: Callable[[], Awaitable[Any]],
        interval_seconds: int = 60,
        scheduler: AsyncIOScheduler | None = None,
    ):
        """Initialize tick scheduler.

        Args:
            tick: Coroutine function expanding due campaigns
            interval_seconds: Seconds between ticks
            scheduler: Optional pre-configured scheduler
        """
        self.tick = tick
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or self._create_scheduler()

    def _create_scheduler(self) -> AsyncIOScheduler:
        jobstores = {"default": MemoryJobStore()}
        executors = {"default": AsyncIOExecutor()}

        # A tick that overran its slot is skipped rather than stacked.
        job_defaults = {
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": self.interval_seconds,
        }

        return AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone="UTC",
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self) -> None:
        """Register the tick job and start the scheduler."""
        self.scheduler.add_job(
            self.run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=CAMPAIGN_TICK_JOB_ID,
            name="Expand due campaigns",
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Campaign tick scheduled", interval_seconds=self.interval_seconds)

    async def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler applies shutdown on the next loop iteration
            while self.scheduler.running:
                await asyncio.sleep(0)
            logger.info("Campaign tick stopped")

    async def run_tick(self) -> Any:
        try:
            return await self.tick()
        except HeraldError as e:
            logger.error("Campaign tick failed", error_code=e.code, error=e.message)
            raise
