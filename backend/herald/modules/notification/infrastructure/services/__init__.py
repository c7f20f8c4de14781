"""Dispatch infrastructure services."""

from herald.modules.notification.infrastructure.services.queue_service import (
    ChannelQueue,
    build_queues,
)
from herald.modules.notification.infrastructure.services.scheduler_service import (
    CampaignTickScheduler,
)
from herald.modules.notification.infrastructure.services.worker_pool import ChannelWorkerPool

__all__ = [
    "CampaignTickScheduler",
    "ChannelQueue",
    "ChannelWorkerPool",
    "build_queues",
]
