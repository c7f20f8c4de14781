"""Pytest configuration and fixtures for notification module tests.

Provides a manual clock, scripted channel senders and a fully wired dispatch
service backed by the in-memory stores, so pipeline tests can step time and
drain queues deterministically.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import pytest

from herald.core.config import Settings
from herald.modules.notification.application.services import NotificationDispatchService
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from herald.modules.notification.domain.interfaces.services import IChannelSender
from herald.modules.notification.domain.value_objects import (
    QueueConfig,
    RenderedContent,
    RetryPolicy,
    SendOutcome,
)
from herald.modules.notification.infrastructure import build_dispatch_service
from herald.modules.notification.infrastructure.clock import ManualClock
from herald.modules.notification.infrastructure.repositories import (
    InMemoryDeadLetterStore,
    InMemoryDeliveryHistoryRepository,
    InMemoryInAppNotificationRepository,
    InMemoryNotificationRepository,
    InMemoryNotificationTemplateRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
)

# Monday
START = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class RecordingSender(IChannelSender):
    """Channel sender that records every unit and replays scripted outcomes.

    Outcomes are consumed in order; the last one repeats. An exception in the
    script is raised instead of returned. Without a script every send succeeds.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        outcomes: list[SendOutcome | Exception] | None = None,
        delay: float = 0.0,
    ):
        self.channel = channel
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.calls: list[DeliveryUnit] = []

    def script(self, *outcomes: SendOutcome | Exception) -> None:
        self.outcomes = list(outcomes)

    async def send(self, unit: DeliveryUnit) -> SendOutcome:
        self.calls.append(unit)
        if self.delay:
            await asyncio.sleep(self.delay)

        if not self.outcomes:
            return SendOutcome.delivered(provider_message_id=f"msg-{len(self.calls)}")

        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def queue_configs_for(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    max_delay: float = 60.0,
    send_timeout: float = 5.0,
    max_depth: int = 100,
    max_concurrency: int = 2,
) -> dict[NotificationChannel, QueueConfig]:
    """Identical queue configuration for every channel."""
    return {
        channel: QueueConfig(
            channel=channel,
            max_concurrency=max_concurrency,
            retry_policy=RetryPolicy(max_retries, initial_delay, multiplier, max_delay),
            send_timeout_seconds=send_timeout,
            dead_letter_queue=f"{channel.value}.dead_letter",
            max_depth=max_depth,
        )
        for channel in NotificationChannel
    }


@dataclass
class DispatchHarness:
    """Dispatch service plus direct handles on its collaborators."""

    service: NotificationDispatchService
    clock: ManualClock
    senders: dict[NotificationChannel, RecordingSender]
    directory: InMemoryUserDirectory
    preferences: InMemoryPreferenceRepository
    templates: InMemoryNotificationTemplateRepository
    notifications: InMemoryNotificationRepository
    inbox: InMemoryInAppNotificationRepository
    history: InMemoryDeliveryHistoryRepository
    dead_letters: InMemoryDeadLetterStore

    def sender(self, channel: NotificationChannel) -> RecordingSender:
        return self.senders[channel]

    async def drain(self) -> int:
        return await self.service.dispatch_due()

    async def advance(self, seconds: float = 0, **delta: Any) -> int:
        """Move the clock forward and process whatever became due."""
        self.clock.advance(seconds, **delta)
        return await self.drain()

    async def save_preferences(self, user_id: str, **changes: Any) -> NotificationPreferences:
        preferences = NotificationPreferences.default(user_id)
        preferences.apply_update(changes, self.clock.now())
        await self.preferences.save(preferences)
        return preferences


# ============================================================================
# Basic Test Data
# ============================================================================


@pytest.fixture
def clock():
    """Manual clock starting on a Monday at noon UTC."""
    return ManualClock(START)


@pytest.fixture
def test_settings(tmp_path):
    """Settings read from the environment only."""
    return Settings(env_file=str(tmp_path / ".env"))


@pytest.fixture
def user_directory():
    """Directory with three users covering every address type."""
    directory = InMemoryUserDirectory()
    directory.add_user(
        "user-1",
        email="one@example.com",
        phone="+15550000001",
        push_token="token-1",
        name="User One",
        roles=["buyer"],
        locations=["lisbon"],
    )
    directory.add_user(
        "user-2",
        email="two@example.com",
        phone="+15550000002",
        roles=["buyer", "agent"],
        locations=["porto"],
    )
    directory.add_user("user-3", email="three@example.com", roles=["agent"], segments=["vip"])
    return directory


@pytest.fixture
def basic_request():
    """Dictionary form of a simple two-channel send request."""
    return {
        "user_id": "user-1",
        "type": NotificationType.NEW_MESSAGE.value,
        "title": "New message",
        "message": "You have a new message from Ana",
        "channels": [NotificationChannel.EMAIL.value, NotificationChannel.IN_APP.value],
        "priority": NotificationPriority.NORMAL.value,
        "data": {"sender": "Ana"},
    }


@pytest.fixture
def rendered_content():
    """Plain content usable by any sender."""

    def _content(channel: NotificationChannel, **kwargs: Any) -> RenderedContent:
        defaults = {"subject": "Subject", "body": "Body", "payload": {"title": "Subject"}}
        defaults.update(kwargs)
        return RenderedContent(channel=channel, **defaults)

    return _content


@pytest.fixture
def make_unit(clock, rendered_content):
    """Factory for delivery units in PENDING status."""

    def _make(
        channel: NotificationChannel = NotificationChannel.EMAIL,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        user_id: str = "user-1",
        **kwargs: Any,
    ) -> DeliveryUnit:
        kwargs.setdefault("created_at", clock.now())
        kwargs.setdefault("content", rendered_content(channel))
        return DeliveryUnit(
            notification_id=uuid4(),
            user_id=user_id,
            channel=channel,
            notification_type=NotificationType.NEW_MESSAGE,
            priority=priority,
            **kwargs,
        )

    return _make


# ============================================================================
# Dispatch Pipeline
# ============================================================================


@pytest.fixture
def make_queue_configs():
    """Factory for identical per-channel queue configurations."""
    return queue_configs_for


@pytest.fixture
def make_harness(clock, test_settings, user_directory):
    """Factory building a dispatch service wired to recording senders.

    ``real_channels`` keeps the configured sender for those channels (e.g.
    the in-app inbox writer) instead of a recording one.
    """

    def _make(
        queue_configs: dict[NotificationChannel, QueueConfig] | None = None,
        real_channels: tuple[NotificationChannel, ...] = (),
        seed_templates: bool = False,
        jitter_ratio: float = 0.0,
    ) -> DispatchHarness:
        senders = {
            channel: RecordingSender(channel)
            for channel in NotificationChannel
            if channel not in real_channels
        }
        preferences = InMemoryPreferenceRepository()
        templates = InMemoryNotificationTemplateRepository(seed_defaults=seed_templates)
        notifications = InMemoryNotificationRepository()
        inbox = InMemoryInAppNotificationRepository()
        history = InMemoryDeliveryHistoryRepository()
        dead_letters = InMemoryDeadLetterStore()

        service = build_dispatch_service(
            test_settings,
            clock=clock,
            user_directory=user_directory,
            notification_repository=notifications,
            preference_repository=preferences,
            template_repository=templates,
            history_repository=history,
            dead_letters=dead_letters,
            inbox_repository=inbox,
            senders=dict(senders),
            queue_configs=queue_configs or queue_configs_for(),
            retry_jitter_ratio=jitter_ratio,
        )
        return DispatchHarness(
            service=service,
            clock=clock,
            senders=senders,
            directory=user_directory,
            preferences=preferences,
            templates=templates,
            notifications=notifications,
            inbox=inbox,
            history=history,
            dead_letters=dead_letters,
        )

    return _make


@pytest.fixture
def harness(make_harness):
    """Default dispatch harness: recording senders on every channel."""
    return make_harness()
