"""Tests for webhook signing and the webhook channel sender."""

import httpx
import pytest

from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)
from herald.modules.notification.domain.enums import DeliveryStatus, NotificationChannel
from herald.modules.notification.infrastructure.adapters import (
    HttpRelayClient,
    WebhookChannelSender,
)
from herald.modules.notification.infrastructure.repositories import (
    InMemoryPreferenceRepository,
)
from herald.modules.notification.infrastructure.security import WebhookSigner
from herald.modules.notification.infrastructure.security.webhook_signature import (
    canonical_json,
)

HOOK_URL = "https://hooks.example.com/herald"


class TestCanonicalJson:
    """Test suite for canonical payload serialization."""

    def test_sorted_and_compact(self):
        """Test that key order and whitespace do not change the bytes."""
        assert canonical_json({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'
        assert canonical_json({"a": 1, "b": 2}) == canonical_json({"b": 2, "a": 1})

    def test_unicode_is_kept(self):
        """Test that non-ASCII text is encoded as UTF-8, not escaped."""
        assert canonical_json({"city": "Évora"}) == '{"city":"Évora"}'.encode()


class TestWebhookSigner:
    """Test suite for WebhookSigner."""

    def test_sign_and_verify(self):
        """Test that a signature verifies against the same body and secret."""
        body = b'{"id":1}'
        signature = WebhookSigner.sign("s3cr3t", body)

        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64
        assert WebhookSigner.verify("s3cr3t", body, signature)

    @pytest.mark.parametrize(
        ("secret", "body", "signature"),
        [
            ("other", b'{"id":1}', None),
            ("s3cr3t", b'{"id":2}', None),
            ("s3cr3t", b'{"id":1}', ""),
            ("", b'{"id":1}', None),
        ],
    )
    def test_verify_rejects(self, secret, body, signature):
        """Test that a wrong secret, changed body or missing value fails verification."""
        if signature is None:
            signature = WebhookSigner.sign("s3cr3t", b'{"id":1}')

        assert not WebhookSigner.verify(secret, body, signature)

    def test_headers_use_configured_name(self):
        """Test the signature header name."""
        headers = WebhookSigner("X-Custom-Signature").headers("s3cr3t", b"{}")

        assert list(headers) == ["X-Custom-Signature"]


class TestWebhookChannelSender:
    """Test suite for WebhookChannelSender."""

    @pytest.fixture
    def receiver(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202, headers={"X-Request-ID": "req-1"})

        handler.requests = requests
        return handler

    @pytest.fixture
    def preferences(self):
        return InMemoryPreferenceRepository()

    async def _configure(self, preferences, **changes):
        prefs = NotificationPreferences.default("user-1")
        prefs.apply_update(changes)
        await preferences.save(prefs)

    def _sender(self, preferences, handler):
        relay = HttpRelayClient("webhook", transport=httpx.MockTransport(handler))
        return WebhookChannelSender(preferences, relay)

    @pytest.mark.asyncio
    async def test_signed_delivery(self, preferences, receiver, make_unit, rendered_content):
        """Test that the body is canonical JSON and the signature verifies."""
        await self._configure(preferences, webhook_url=HOOK_URL, webhook_secret="s3cr3t")
        payload = {"title": "Hello", "data": {"listing": 42}}
        unit = make_unit(
            NotificationChannel.WEBHOOK,
            content=rendered_content(NotificationChannel.WEBHOOK, payload=payload),
        )

        outcome = await self._sender(preferences, receiver).send(unit)

        assert outcome.status == DeliveryStatus.DELIVERED
        assert outcome.provider_message_id == "req-1"
        assert outcome.detail == "HTTP 202"

        (request,) = receiver.requests
        assert str(request.url) == HOOK_URL
        assert request.content == canonical_json(payload)
        assert request.headers["X-Notification-ID"] == str(unit.notification_id)
        assert request.headers["X-Notification-Type"] == unit.notification_type.value
        assert WebhookSigner.verify(
            "s3cr3t", request.content, request.headers["X-Herald-Signature"]
        )

    @pytest.mark.asyncio
    async def test_unsigned_without_secret(self, preferences, receiver, make_unit):
        """Test that a user without a secret gets an unsigned request."""
        await self._configure(preferences, webhook_url=HOOK_URL)

        outcome = await self._sender(preferences, receiver).send(
            make_unit(NotificationChannel.WEBHOOK)
        )

        assert outcome.is_success
        assert "X-Herald-Signature" not in receiver.requests[0].headers

    @pytest.mark.asyncio
    async def test_missing_url_is_permanent(self, preferences, receiver, make_unit):
        """Test that a user without a webhook URL is not retried."""
        outcome = await self._sender(preferences, receiver).send(
            make_unit(NotificationChannel.WEBHOOK)
        )

        assert outcome.status == DeliveryStatus.FAILED
        assert not outcome.retryable
        assert outcome.detail == "no webhook url configured for user user-1"
        assert receiver.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("status_code", "retryable"), [(502, True), (410, False)])
    async def test_receiver_errors(self, preferences, make_unit, status_code, retryable):
        """Test the retry classification of receiver answers."""
        await self._configure(preferences, webhook_url=HOOK_URL)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code)

        outcome = await self._sender(preferences, handler).send(
            make_unit(NotificationChannel.WEBHOOK)
        )

        assert outcome.status == DeliveryStatus.FAILED
        assert outcome.retryable is retryable
        assert outcome.detail == f"HTTP {status_code}"
