"""Tests for retry decisions, audience expansion and platform event handlers."""

import random
from unittest.mock import Mock
from uuid import uuid4

import pytest

from herald.core.errors import ValidationError
from herald.modules.notification.application.event_handlers import NotificationEventHandlers
from herald.modules.notification.application.services import (
    BatchOrchestrator,
    RetryController,
    period_key,
    truncate,
)
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    StatsGroupBy,
)
from herald.modules.notification.domain.errors import TooManyItemsError
from herald.modules.notification.domain.value_objects import AudienceSpec, RetryPolicy


async def collect(iterator):
    return [item async for item in iterator]


class TestRetryController:
    """Test suite for backoff computation."""

    def test_delay_without_jitter(self, clock):
        """Test the raw exponential schedule."""
        controller = RetryController(Mock(), Mock(), clock, jitter_ratio=0.0)
        policy = RetryPolicy(max_retries=5, initial_delay_seconds=1, backoff_multiplier=2)

        assert [controller.compute_delay(policy, n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self, clock):
        """Test that the cap applies before jitter."""
        controller = RetryController(Mock(), Mock(), clock, jitter_ratio=0.0)
        policy = RetryPolicy(max_retries=10, max_delay_seconds=5)

        assert controller.compute_delay(policy, 10) == 5.0

    def test_jitter_bounds(self, clock):
        """Test that jitter stays within the configured ratio."""
        controller = RetryController(
            Mock(), Mock(), clock, jitter_ratio=0.2, rng=random.Random(42)
        )
        policy = RetryPolicy(max_retries=10, initial_delay_seconds=10, max_delay_seconds=10)

        delays = [controller.compute_delay(policy, 3) for _ in range(200)]

        assert all(8.0 <= delay <= 12.0 for delay in delays)
        assert len(set(delays)) > 1


class TestBatchOrchestrator:
    """Test suite for bulk and audience expansion."""

    def test_cap_is_checked_before_expansion(self, user_directory, clock):
        """Test that an oversized bulk request raises immediately."""
        orchestrator = BatchOrchestrator(user_directory, max_bulk_items=2)

        with pytest.raises(TooManyItemsError):
            orchestrator.expand_bulk([{}, {}, {}], uuid4(), clock.now())

    def test_invalid_items_are_reported(self, user_directory, clock, basic_request):
        """Test that each item is validated on its own."""
        orchestrator = BatchOrchestrator(user_directory)
        batch_id = uuid4()

        items = list(orchestrator.expand_bulk([basic_request, {}], batch_id, clock.now()))

        assert items[0].notification.batch_id == batch_id
        assert items[1].notification is None
        assert items[1].error.code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_audience_by_filters(self, user_directory):
        """Test that every given filter group has to match."""
        orchestrator = BatchOrchestrator(user_directory)

        buyers_in_porto = AudienceSpec(roles=["buyer"], locations=["porto"])
        vip_agents = AudienceSpec(roles=["agent"], segments=["vip"])

        assert await collect(orchestrator.resolve_audience(buyers_in_porto)) == ["user-2"]
        assert await collect(orchestrator.resolve_audience(vip_agents)) == ["user-3"]

    @pytest.mark.asyncio
    async def test_audience_deduplicates(self, user_directory):
        """Test that explicit ids come first and appear once."""
        orchestrator = BatchOrchestrator(user_directory)
        audience = AudienceSpec(user_ids=["user-2", "user-2", "ghost"], roles=["buyer"])

        assert await collect(orchestrator.resolve_audience(audience)) == [
            "user-2",
            "ghost",
            "user-1",
        ]


class TestHelpers:
    """Test suite for small rendering and stats helpers."""

    def test_truncate(self):
        """Test truncation with an ellipsis."""
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "aaaaaaa..."

    @pytest.mark.parametrize(
        ("group_by", "expected"),
        [
            (StatsGroupBy.DAY, "2024-01-01"),
            (StatsGroupBy.WEEK, "2024-W01"),
            (StatsGroupBy.MONTH, "2024-01"),
        ],
    )
    def test_period_key(self, clock, group_by, expected):
        """Test stats bucket labels."""
        assert period_key(clock.now(), group_by) == expected


class TestEventHandlers:
    """Test suite for platform event handlers."""

    @pytest.mark.asyncio
    async def test_property_inquiry(self, harness):
        """Test that an inquiry notifies the agent on three channels."""
        handlers = NotificationEventHandlers(harness.service)

        (result,) = await handlers.handle(
            "property.inquiry", {"agent_id": "user-2", "property_title": "Sea view flat"}
        )

        assert result.status == NotificationStatus.QUEUED
        assert result.channels == [
            NotificationChannel.EMAIL,
            NotificationChannel.IN_APP,
            NotificationChannel.PUSH,
        ]
        notification = await harness.service.get_notification(result.notification_id)
        assert notification.user_id == "user-2"
        assert notification.priority == NotificationPriority.HIGH
        assert notification.message == "You have a new inquiry for Sea view flat"
        assert notification.data["property_title"] == "Sea view flat"

    @pytest.mark.asyncio
    async def test_appointment_scheduled_notifies_both_sides(self, harness):
        """Test that agent and client each get a notification."""
        handlers = NotificationEventHandlers(harness.service)

        results = await handlers.handle(
            "appointment.scheduled",
            {
                "agent_id": "user-2",
                "client_id": "user-1",
                "property_title": "Loft",
                "appointment_date": "2024-01-05",
            },
        )

        assert len(results) == 2
        agent, client = [
            await harness.service.get_notification(r.notification_id) for r in results
        ]
        assert (agent.user_id, client.user_id) == ("user-2", "user-1")
        assert NotificationChannel.SMS in agent.channels
        assert client.title == "Appointment Confirmed"

    @pytest.mark.asyncio
    async def test_unknown_event(self, harness):
        """Test that unknown events are ignored."""
        handlers = NotificationEventHandlers(harness.service)

        assert await handlers.handle("property.deleted", {"agent_id": "user-1"}) == []
        assert "user.registered" in handlers.event_names

    @pytest.mark.asyncio
    async def test_missing_payload_key(self, harness):
        """Test that a payload without the recipient is rejected."""
        handlers = NotificationEventHandlers(harness.service)

        with pytest.raises(ValidationError):
            await handlers.handle("user.registered", {"email": "new@example.com"})
