"""Notification infrastructure: channel senders, queues, workers and in-memory stores."""

from herald.modules.notification.infrastructure.dependencies import (
    build_dispatch_service,
    build_queue_configs,
    build_senders,
)

__all__ = ["build_dispatch_service", "build_queue_configs", "build_senders"]
