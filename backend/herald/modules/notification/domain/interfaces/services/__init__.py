"""Notification service ports."""

from herald.modules.notification.domain.interfaces.services.channel_sender import (
    IChannelSender,
)
from herald.modules.notification.domain.interfaces.services.clock import IClock
from herald.modules.notification.domain.interfaces.services.dispatch_queue import (
    IDispatchQueue,
)
from herald.modules.notification.domain.interfaces.services.template_engine import (
    ITemplateEngine,
)
from herald.modules.notification.domain.interfaces.services.user_directory import (
    IUserDirectory,
)

__all__ = [
    "IChannelSender",
    "IClock",
    "IDispatchQueue",
    "ITemplateEngine",
    "IUserDirectory",
]
