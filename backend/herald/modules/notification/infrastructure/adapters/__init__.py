"""Channel sender adapters."""

from herald.modules.notification.infrastructure.adapters.base import (
    BaseChannelSender,
    LoggingChannelSender,
)
from herald.modules.notification.infrastructure.adapters.email_adapter import (
    EmailChannelSender,
)
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient
from herald.modules.notification.infrastructure.adapters.in_app_adapter import (
    InAppChannelSender,
)
from herald.modules.notification.infrastructure.adapters.push_adapter import (
    PushChannelSender,
)
from herald.modules.notification.infrastructure.adapters.sms_adapter import SmsChannelSender
from herald.modules.notification.infrastructure.adapters.webhook_adapter import (
    WebhookChannelSender,
)

__all__ = [
    "BaseChannelSender",
    "EmailChannelSender",
    "HttpRelayClient",
    "InAppChannelSender",
    "LoggingChannelSender",
    "PushChannelSender",
    "SmsChannelSender",
    "WebhookChannelSender",
]
