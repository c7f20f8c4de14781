"""Webhook channel sender: signed JSON POST to the user's endpoint."""

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.errors import PreferenceLookupError, TransportError
from herald.modules.notification.domain.interfaces.repositories import IPreferenceRepository
from herald.modules.notification.domain.value_objects import SendOutcome
from herald.modules.notification.infrastructure.adapters.base import BaseChannelSender
from herald.modules.notification.infrastructure.adapters.http_relay import HttpRelayClient
from herald.modules.notification.infrastructure.security.webhook_signature import (
    WebhookSigner,
    canonical_json,
)

logger = get_logger(__name__)


class WebhookChannelSender(BaseChannelSender):
    """
    Posts the canonical JSON payload to the webhook URL from the user's
    preferences.

    The body is signed with the user's webhook secret; the signature header
    carries ``sha256=<hex>`` over the exact bytes sent. Receivers should
    answer 2xx. 4xx answers other than 429 are not retried.
    """

    channel = NotificationChannel.WEBHOOK

    def __init__(
        self,
        preferences: IPreferenceRepository,
        relay: HttpRelayClient,
        signer: WebhookSigner | None = None,
    ):
        super().__init__()
        self.preferences = preferences
        self.relay = relay
        self.signer = signer or WebhookSigner()

    async def _target(self, user_id: str) -> tuple[str, str | None]:
        try:
            prefs = await self.preferences.get(user_id)
        except PreferenceLookupError as e:
            raise TransportError(self.channel.value, e.message, is_retryable=True) from e

        if prefs is None or not prefs.webhook_url:
            raise TransportError(
                self.channel.value,
                f"no webhook url configured for user {user_id}",
                is_retryable=False,
            )
        return prefs.webhook_url, prefs.webhook_secret

    async def _deliver(self, unit: DeliveryUnit) -> SendOutcome:
        url, secret = await self._target(unit.user_id)
        content = self._content(unit)
        body = canonical_json(content.payload)

        headers = {
            "Content-Type": "application/json",
            "X-Notification-ID": str(unit.notification_id),
            "X-Notification-Type": unit.notification_type.value,
        }
        if secret:
            headers.update(self.signer.headers(secret, body))
        else:
            logger.warning(
                "Webhook sent unsigned, user has no secret",
                unit_id=str(unit.id),
                user_id=unit.user_id,
            )

        response = await self.relay.post(url, content=body, headers=headers)
        return SendOutcome.delivered(
            provider_message_id=response.headers.get("X-Request-ID"),
            detail=f"HTTP {response.status_code}",
        )
