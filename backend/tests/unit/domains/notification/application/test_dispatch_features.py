"""
Tests for templates, bulk sends, frequency caps, the inbox and campaigns.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from herald.core.errors import ValidationError
from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)
from herald.modules.notification.domain.enums import (
    BatchStatus,
    CampaignStatus,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    RecurrenceFrequency,
    ScheduleType,
)
from herald.modules.notification.domain.errors import (
    BatchNotFoundError,
    InAppNotificationNotFoundError,
    MalformedTemplateError,
    TooManyItemsError,
)
from herald.modules.notification.domain.value_objects import (
    AudienceSpec,
    CampaignContent,
    CampaignSchedule,
)

EMAIL = NotificationChannel.EMAIL
SMS = NotificationChannel.SMS
IN_APP = NotificationChannel.IN_APP


def request_for(basic_request, **overrides):
    request = dict(basic_request)
    request.update(overrides)
    return request


class TestTemplates:
    """Test suite for template rendering through the pipeline."""

    @pytest.mark.asyncio
    async def test_fallback_without_template(self, harness, basic_request):
        """Test plain-text content built from title and message."""
        await harness.service.send(request_for(basic_request, channels=["email", "sms"]))
        await harness.drain()

        email = harness.sender(EMAIL).calls[0].content
        sms = harness.sender(SMS).calls[0].content

        assert email.is_fallback
        assert email.subject == "New message"
        assert email.text_body == "You have a new message from Ana"
        assert sms.body == "New message: You have a new message from Ana"

    @pytest.mark.asyncio
    async def test_sms_fallback_is_truncated(self, harness, basic_request):
        """Test that SMS bodies are cut to the channel limit."""
        await harness.service.send(
            request_for(basic_request, channels=["sms"], message="x" * 300)
        )
        await harness.drain()

        body = harness.sender(SMS).calls[0].content.body
        assert len(body) == 160
        assert body.endswith("...")

    @pytest.mark.asyncio
    async def test_seeded_template(self, make_harness, basic_request):
        """Test rendering the default welcome email."""
        harness = make_harness(seed_templates=True)
        await harness.service.send(
            request_for(
                basic_request,
                type="welcome",
                channels=["email"],
                data={"app_name": "Herald", "first_name": "Ada", "platform_url": "https://x.io"},
            )
        )
        await harness.drain()

        content = harness.sender(EMAIL).calls[0].content
        assert not content.is_fallback
        assert content.subject == "Welcome to Herald!"
        assert "<h1>Welcome Ada!</h1>" in content.html_body
        assert "Welcome Ada!" in content.text_body
        assert "<h1>" not in content.text_body

    @pytest.mark.asyncio
    async def test_undeclared_variable_renders_literally(self, harness, basic_request):
        """Test that only declared variables reach the template."""
        await harness.service.create_template(
            name="message-in-app",
            notification_type="new_message",
            channel="in_app",
            body="Hi from {{ sender }} {{ secret }}",
            variables=["sender"],
            activate=True,
        )

        await harness.service.send(
            request_for(basic_request, channels=["in_app"], data={"sender": "Ana", "secret": "x"})
        )
        await harness.drain()

        assert harness.sender(IN_APP).calls[0].content.body == "Hi from Ana {{ secret }}"

    @pytest.mark.asyncio
    async def test_html_values_are_escaped(self, harness, basic_request):
        """Test that email bodies escape substituted values."""
        await harness.service.create_template(
            name="message-email",
            notification_type="new_message",
            channel="email",
            subject="From {{ sender }}",
            body="<p>{{ sender }}</p>",
            variables=["sender"],
            activate=True,
        )

        await harness.service.send(
            request_for(basic_request, channels=["email"], data={"sender": "<b>Ana</b>"})
        )
        await harness.drain()

        content = harness.sender(EMAIL).calls[0].content
        assert content.subject == "From <b>Ana</b>"
        assert content.html_body == "<p>&lt;b&gt;Ana&lt;/b&gt;</p>"

    @pytest.mark.asyncio
    async def test_malformed_active_template_falls_back(self, harness, basic_request):
        """Test that a stored malformed template degrades to plain text."""
        await harness.templates.save(
            NotificationTemplate(
                name="broken",
                notification_type=NotificationType.NEW_MESSAGE,
                channel=IN_APP,
                body="Hi {{ sender",
                variables=["sender"],
                is_active=True,
            )
        )

        result = await harness.service.send(request_for(basic_request, channels=["in_app"]))
        await harness.drain()

        content = harness.sender(IN_APP).calls[0].content
        assert result.is_queued
        assert content.is_fallback
        assert content.body == "You have a new message from Ana"

    @pytest.mark.asyncio
    async def test_create_malformed_template_is_rejected(self, harness):
        """Test that unbalanced placeholders are rejected at creation."""
        with pytest.raises(MalformedTemplateError):
            await harness.service.create_template(
                name="broken",
                notification_type="new_message",
                channel="sms",
                body="Hi {{ sender",
            )

        assert await harness.service.list_template_versions("new_message", "sms") == []

    @pytest.mark.asyncio
    async def test_activating_new_version(self, harness, basic_request):
        """Test that activating a version deactivates the previous one."""
        first = await harness.service.create_template(
            name="v1", notification_type="new_message", channel="sms", body="One", activate=True
        )
        second = await harness.service.create_template(
            name="v2", notification_type="new_message", channel="sms", body="Two"
        )
        assert (first.version_number, second.version_number) == (1, 2)
        assert not second.is_active

        await harness.service.activate_template(second.id)
        await harness.service.send(request_for(basic_request, channels=["sms"]))
        await harness.drain()

        assert not first.is_active
        assert harness.sender(SMS).calls[0].content.body == "Two"

    @pytest.mark.asyncio
    async def test_preview(self, harness):
        """Test previews with sample data and overrides."""
        template = await harness.service.create_template(
            name="preview",
            notification_type="new_message",
            channel="sms",
            body="{{ sender }} in {{ city }}",
            variables=["sender", "city"],
            preview_data={"sender": "Ana"},
        )

        preview = await harness.service.preview_template(template.id, {"city": "Lisbon"})

        assert preview["body"] == "Ana in Lisbon"
        assert preview["version"] == 1


class TestBulkSend:
    """Test suite for bulk sends."""

    @pytest.mark.asyncio
    async def test_bulk_accepts_valid_items(self, harness, basic_request):
        """Test a clean batch."""
        requests = [request_for(basic_request, user_id=u) for u in ("user-1", "user-2")]

        result = await harness.service.send_bulk(requests, batch_name="weekly")

        assert result.batch_name == "weekly"
        assert result.accepted_count == 2
        assert result.rejections == []
        assert await harness.drain() == 4

    @pytest.mark.asyncio
    async def test_bulk_cap(self, harness, basic_request):
        """Test that an oversized batch is refused before anything is stored."""
        with pytest.raises(TooManyItemsError):
            await harness.service.send_bulk([basic_request] * 1001)

        assert len(harness.notifications) == 0

    @pytest.mark.asyncio
    async def test_invalid_item_is_rejected_alone(self, harness, basic_request):
        """Test that one invalid item does not stop the batch."""
        requests = [basic_request, request_for(basic_request, title=""), basic_request]

        result = await harness.service.send_bulk(requests)

        assert result.accepted_count == 2
        assert [r["index"] for r in result.rejections] == [1]
        assert result.rejections[0]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_batch_is_stored(self, harness, basic_request):
        """Test that the batch and its counters can be fetched after the send."""
        result = await harness.service.send_bulk(
            [basic_request, request_for(basic_request, title="")], batch_name="weekly"
        )

        batch = await harness.service.get_batch(result.batch_id)

        assert batch.name == "weekly"
        assert batch.status == BatchStatus.COMPLETED
        assert (batch.accepted_count, batch.rejected_count) == (1, 1)
        with pytest.raises(BatchNotFoundError):
            await harness.service.get_batch(uuid4())

    @pytest.mark.asyncio
    async def test_saturated_queue_rejects_items(
        self, make_harness, make_queue_configs, basic_request
    ):
        """Test that items hitting a full queue are rejected with QUEUE_SATURATED."""
        harness = make_harness(queue_configs=make_queue_configs(max_depth=2))
        requests = [request_for(basic_request, channels=["email"])] * 3

        result = await harness.service.send_bulk(requests)

        assert result.accepted_count == 2
        assert result.rejections[0]["index"] == 2
        assert result.rejections[0]["code"] == "QUEUE_SATURATED"

    @pytest.mark.asyncio
    async def test_bulk_schedule(self, harness, basic_request, clock):
        """Test that a batch-level schedule applies to every item."""
        at = clock.now() + timedelta(minutes=30)

        await harness.service.send_bulk([basic_request], scheduled_at=at)

        assert await harness.drain() == 0
        assert await harness.advance(minutes=30) == 2


class TestFrequencyCaps:
    """Test suite for marketing caps and reminder opt-out."""

    @pytest.mark.asyncio
    async def test_marketing_cap(self, harness, basic_request):
        """Test that a second marketing message within the interval is suppressed."""
        newsletter = request_for(basic_request, type="newsletter", channels=["email"])

        first = await harness.service.send(newsletter)
        second = await harness.service.send(newsletter)

        assert first.is_queued
        assert second.status == NotificationStatus.SUPPRESSED
        assert second.reason == "marketing frequency cap reached (weekly)"

    @pytest.mark.asyncio
    async def test_marketing_cap_expires(self, harness, basic_request):
        """Test that the cap only covers the marketing interval."""
        newsletter = request_for(basic_request, type="newsletter", channels=["email"])
        await harness.service.send(newsletter)

        harness.clock.advance(days=7, seconds=1)

        assert (await harness.service.send(newsletter)).is_queued

    @pytest.mark.asyncio
    async def test_urgent_bypasses_caps(self, harness, basic_request):
        """Test that URGENT notifications are never capped."""
        await harness.save_preferences("user-1", frequency={"marketing": "never"})

        result = await harness.service.send(
            request_for(basic_request, type="promotion", priority="urgent")
        )

        assert result.is_queued

    @pytest.mark.asyncio
    async def test_marketing_disabled(self, harness, basic_request):
        """Test the marketing opt-out."""
        await harness.save_preferences("user-1", frequency={"marketing": "never"})

        result = await harness.service.send(request_for(basic_request, type="promotion"))

        assert result.reason == "marketing notifications disabled by user"

    @pytest.mark.asyncio
    async def test_reminders_disabled(self, harness, basic_request):
        """Test the reminder opt-out."""
        await harness.save_preferences("user-1", frequency={"reminders": False})

        result = await harness.service.send(
            request_for(basic_request, type="appointment_reminder")
        )

        assert result.status == NotificationStatus.SUPPRESSED
        assert result.reason == "reminders disabled by user"


class TestPreferences:
    """Test suite for preference reads and updates through the service."""

    @pytest.mark.asyncio
    async def test_defaults_for_new_user(self, harness):
        """Test that a user without preferences sees everything enabled."""
        preferences = await harness.service.get_preferences("user-9")

        for channel in NotificationChannel:
            assert preferences.is_channel_enabled(channel, NotificationType.WELCOME)

    @pytest.mark.asyncio
    async def test_update_for_new_user(self, harness):
        """Test that updating a user without stored preferences starts from the defaults."""
        updated = await harness.service.update_preferences("user-9", {"channels": {"email": False}})

        assert not updated.is_channel_enabled(NotificationChannel.EMAIL, NotificationType.WELCOME)
        assert updated.is_channel_enabled(NotificationChannel.SMS, NotificationType.WELCOME)

        stored = await harness.service.get_preferences("user-9")
        assert not stored.is_channel_enabled(NotificationChannel.EMAIL, NotificationType.WELCOME)

    @pytest.mark.asyncio
    async def test_update_applies_to_next_send(self, harness, basic_request):
        """Test that an update invalidates cached preferences."""
        await harness.service.send(basic_request)

        await harness.service.update_preferences("user-1", {"channels": {"email": False}})
        result = await harness.service.send(basic_request)

        assert result.channels == [IN_APP]

    @pytest.mark.asyncio
    async def test_invalid_update(self, harness):
        """Test that invalid updates are rejected."""
        with pytest.raises(ValidationError):
            await harness.service.update_preferences("user-1", {"colour": "blue"})


class TestInbox:
    """Test suite for the in-app inbox."""

    @pytest.mark.asyncio
    async def test_inbox_flow(self, make_harness, basic_request):
        """Test delivery to the inbox, paging and read tracking."""
        harness = make_harness(real_channels=(IN_APP,))
        for title in ("first", "second", "third"):
            await harness.service.send(request_for(basic_request, channels=["in_app"], title=title))
        await harness.drain()

        inbox = await harness.service.list_inbox("user-1")
        assert inbox["total"] == 3
        assert inbox["unread_count"] == 3
        assert [item["title"] for item in inbox["items"]] == ["third", "second", "first"]

        page = await harness.service.list_inbox("user-1", page=2, limit=2)
        assert [item["title"] for item in page["items"]] == ["first"]

        newest = (await harness.inbox.list_for_user("user-1"))[0]
        assert inbox["items"][0]["id"] == str(newest.id)
        item = await harness.service.mark_read("user-1", newest.id)
        assert item.is_read
        assert await harness.service.unread_count("user-1") == 2

        assert await harness.service.mark_all_read("user-1") == 2
        assert (await harness.service.list_inbox("user-1", unread_only=True))["total"] == 0

    @pytest.mark.asyncio
    async def test_mark_read_unknown(self, harness):
        """Test marking an item that is not in the user's inbox."""
        with pytest.raises(InAppNotificationNotFoundError):
            await harness.service.mark_read("user-1", uuid4())


class TestCampaigns:
    """Test suite for campaigns."""

    @pytest.mark.asyncio
    async def test_audience_union_minus_exclusions(self, harness):
        """Test explicit ids plus filter matches, without excluded users."""
        campaign = await harness.service.create_campaign(
            name="Agents",
            notification_type="newsletter",
            channels=["in_app"],
            audience=AudienceSpec(
                user_ids=["user-1"], roles=["agent"], exclude_user_ids=["user-3"]
            ),
            content=CampaignContent(title="News", message="Market update", subject="Weekly"),
        )

        await harness.service.launch_campaign(campaign.id)
        await harness.drain()

        recipients = sorted(unit.user_id for unit in harness.sender(IN_APP).calls)
        assert recipients == ["user-1", "user-2"]
        assert campaign.status == CampaignStatus.COMPLETED
        assert campaign.enqueued_count == 2

        (notification,) = await harness.notifications.find_by_user("user-2")
        assert notification.campaign_id == campaign.id
        assert notification.data == {"subject": "Weekly"}
        assert notification.metadata == {"campaign_occurrence": 1}

    @pytest.mark.asyncio
    async def test_recurring_campaign(self, harness, clock):
        """Test that a recurring campaign runs until max_occurrences."""
        campaign = await harness.service.create_campaign(
            name="Daily status",
            notification_type="system_update",
            channels=["email"],
            audience=AudienceSpec(user_ids=["user-1"]),
            content=CampaignContent(title="Status", message="All good"),
            schedule=CampaignSchedule(
                ScheduleType.RECURRING, frequency=RecurrenceFrequency.DAILY, max_occurrences=2
            ),
        )

        await harness.service.launch_campaign(campaign.id)
        assert await harness.service.run_due_campaigns() == []

        clock.advance(days=1)
        (run,) = await harness.service.run_due_campaigns()

        assert run.occurrence == 2
        assert run.enqueued == 1
        assert campaign.status == CampaignStatus.COMPLETED
        assert len(await harness.notifications.find_by_user("user-1")) == 2

    @pytest.mark.asyncio
    async def test_cancelled_campaign_does_not_run(self, harness, clock):
        """Test that cancelling stops future expansions."""
        campaign = await harness.service.create_campaign(
            name="Later",
            notification_type="system_update",
            channels=["email"],
            audience=AudienceSpec(user_ids=["user-1"]),
            content=CampaignContent(title="Later", message="Soon"),
            schedule=CampaignSchedule(
                ScheduleType.SCHEDULED, scheduled_at=clock.now() + timedelta(hours=1)
            ),
        )
        await harness.service.launch_campaign(campaign.id)
        await harness.service.cancel_campaign(campaign.id)

        clock.advance(hours=2)

        assert await harness.service.run_due_campaigns() == []
        assert len(harness.notifications) == 0
