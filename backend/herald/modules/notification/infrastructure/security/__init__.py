"""Security helpers for outbound deliveries."""

from herald.modules.notification.infrastructure.security.webhook_signature import (
    WebhookSigner,
    canonical_json,
)

__all__ = ["WebhookSigner", "canonical_json"]
