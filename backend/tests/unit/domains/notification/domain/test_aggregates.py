"""Tests for the campaign, batch and template aggregates."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from herald.core.errors import ValidationError
from herald.modules.notification.domain.aggregates.campaign import (
    Campaign,
    add_months,
    advance,
)
from herald.modules.notification.domain.aggregates.notification_batch import (
    MAX_BATCH_SIZE,
    NotificationBatch,
)
from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
    check_placeholder_balance,
)
from herald.modules.notification.domain.enums import (
    BatchStatus,
    CampaignStatus,
    NotificationChannel,
    NotificationType,
    RecurrenceFrequency,
    ScheduleType,
)
from herald.modules.notification.domain.errors import (
    InvalidStatusTransitionError,
    MalformedTemplateError,
)
from herald.modules.notification.domain.value_objects import (
    AudienceSpec,
    CampaignContent,
    CampaignSchedule,
)


def make_campaign(schedule=None, **overrides):
    values = {
        "name": "Spring listings",
        "notification_type": NotificationType.NEWSLETTER,
        "channels": [NotificationChannel.EMAIL],
        "audience": AudienceSpec(user_ids=["user-1"]),
        "content": CampaignContent(title="New homes", message="Fresh listings this week"),
        "schedule": schedule,
    }
    values.update(overrides)
    return Campaign(**values)


def daily(**kwargs):
    return CampaignSchedule(
        ScheduleType.RECURRING, frequency=RecurrenceFrequency.DAILY, **kwargs
    )


class TestRecurrence:
    """Test suite for recurrence arithmetic."""

    def test_add_months_clamps_day(self):
        """Test that the 31st rolls to the last day of a shorter month."""
        assert add_months(datetime(2024, 1, 31, tzinfo=UTC), 1) == datetime(2024, 2, 29, tzinfo=UTC)
        assert add_months(datetime(2023, 1, 31, tzinfo=UTC), 1) == datetime(2023, 2, 28, tzinfo=UTC)

    def test_add_months_crosses_year(self):
        """Test month arithmetic across a year boundary."""
        assert add_months(datetime(2024, 11, 15, tzinfo=UTC), 3) == datetime(2025, 2, 15, tzinfo=UTC)

    def test_advance(self):
        """Test advancing by each frequency."""
        start = datetime(2024, 1, 1, tzinfo=UTC)

        assert advance(start, RecurrenceFrequency.DAILY, 2) == start + timedelta(days=2)
        assert advance(start, RecurrenceFrequency.WEEKLY, 1) == start + timedelta(weeks=1)
        assert advance(start, RecurrenceFrequency.MONTHLY, 1) == datetime(2024, 2, 1, tzinfo=UTC)


class TestCampaign:
    """Test suite for the Campaign aggregate."""

    def test_immediate_launch_is_due(self, clock):
        """Test that an immediate campaign is due as soon as it is launched."""
        campaign = make_campaign()
        assert not campaign.is_due(clock.now())

        campaign.launch(clock.now())

        assert campaign.status == CampaignStatus.SCHEDULED
        assert campaign.is_due(clock.now())

    def test_scheduled_launch(self, clock):
        """Test that a scheduled campaign waits for scheduled_at."""
        at = clock.now() + timedelta(hours=3)
        campaign = make_campaign(CampaignSchedule(ScheduleType.SCHEDULED, scheduled_at=at))
        campaign.launch(clock.now())

        assert not campaign.is_due(clock.now())
        assert campaign.is_due(at)

    def test_launch_twice(self, clock):
        """Test that only a draft can be launched."""
        campaign = make_campaign()
        campaign.launch(clock.now())

        with pytest.raises(InvalidStatusTransitionError):
            campaign.launch(clock.now())

    def test_one_off_completes(self, clock):
        """Test that a non-recurring campaign completes after one occurrence."""
        campaign = make_campaign()
        campaign.launch(clock.now())

        assert campaign.begin_occurrence(clock.now()) == 1
        assert campaign.status == CampaignStatus.RUNNING
        campaign.finish_occurrence(clock.now(), recipients=3, enqueued=2, rejected=1)

        assert campaign.status == CampaignStatus.COMPLETED
        assert campaign.next_run_at is None
        assert (campaign.total_recipients, campaign.enqueued_count, campaign.rejected_count) == (
            3,
            2,
            1,
        )

    def test_recurring_plans_next_run(self, clock):
        """Test that a recurring campaign schedules its next occurrence."""
        campaign = make_campaign(daily())
        campaign.launch(clock.now())
        campaign.begin_occurrence(clock.now())
        campaign.finish_occurrence(clock.now(), 1, 1, 0)

        assert campaign.status == CampaignStatus.SCHEDULED
        assert campaign.next_run_at == clock.now() + timedelta(days=1)

    def test_missed_slots_are_skipped(self, clock):
        """Test that a late run schedules the next slot after now, not the missed ones."""
        campaign = make_campaign(daily())
        campaign.launch(clock.now())

        late = clock.now() + timedelta(days=3, hours=1)
        campaign.begin_occurrence(late)
        campaign.finish_occurrence(late, 1, 1, 0)

        assert campaign.next_run_at == clock.now() + timedelta(days=4)

    def test_max_occurrences(self, clock):
        """Test that the schedule stops after max_occurrences."""
        campaign = make_campaign(daily(max_occurrences=2))
        campaign.launch(clock.now())

        for _ in range(2):
            now = campaign.next_run_at
            campaign.begin_occurrence(now)
            campaign.finish_occurrence(now, 1, 1, 0)

        assert campaign.occurrences == 2
        assert campaign.status == CampaignStatus.COMPLETED

    def test_end_date(self, clock):
        """Test that no occurrence is planned past the end date."""
        campaign = make_campaign(daily(end_date=clock.now() + timedelta(hours=12)))
        campaign.launch(clock.now())
        campaign.begin_occurrence(clock.now())
        campaign.finish_occurrence(clock.now(), 1, 1, 0)

        assert campaign.status == CampaignStatus.COMPLETED

    def test_cancel(self, clock):
        """Test that cancelling stops future runs and is final."""
        campaign = make_campaign(daily())
        campaign.launch(clock.now())
        campaign.cancel(clock.now())

        assert campaign.status == CampaignStatus.CANCELLED
        assert not campaign.is_due(clock.now() + timedelta(days=1))
        with pytest.raises(InvalidStatusTransitionError):
            campaign.cancel(clock.now())

    def test_cancel_during_run_is_kept(self, clock):
        """Test that finishing an occurrence does not revive a cancelled campaign."""
        campaign = make_campaign(daily())
        campaign.launch(clock.now())
        campaign.begin_occurrence(clock.now())
        campaign.cancel(clock.now())
        campaign.finish_occurrence(clock.now(), 5, 2, 0)

        assert campaign.status == CampaignStatus.CANCELLED
        assert campaign.enqueued_count == 2

    def test_begin_when_not_due(self, clock):
        """Test that a draft campaign cannot run."""
        with pytest.raises(ValidationError):
            make_campaign().begin_occurrence(clock.now())

    def test_requires_name_and_channels(self):
        """Test campaign field validation."""
        with pytest.raises(ValidationError):
            make_campaign(name=" ")
        with pytest.raises(ValidationError):
            make_campaign(channels=[])


class TestNotificationBatch:
    """Test suite for the NotificationBatch aggregate."""

    def test_lifecycle(self, clock):
        """Test accepted and rejected bookkeeping."""
        batch = NotificationBatch(total_count=3, name="weekly", created_at=clock.now())
        batch.start(clock.now())
        batch.record_accepted(uuid4())
        batch.record_accepted(uuid4())
        batch.record_rejected(2, "title is required", "VALIDATION_ERROR")
        batch.complete(clock.now())

        assert batch.status == BatchStatus.COMPLETED
        assert batch.accepted_count == 2
        assert batch.rejections == [
            {"index": 2, "reason": "title is required", "code": "VALIDATION_ERROR"}
        ]

    def test_fails_when_nothing_accepted(self, clock):
        """Test that a batch with only rejections fails."""
        batch = NotificationBatch(total_count=1)
        batch.start(clock.now())
        batch.record_rejected(0, "bad")
        batch.complete(clock.now())

        assert batch.status == BatchStatus.FAILED

    def test_size_limit(self):
        """Test the batch size bound."""
        NotificationBatch(total_count=MAX_BATCH_SIZE)

        with pytest.raises(ValidationError):
            NotificationBatch(total_count=MAX_BATCH_SIZE + 1)

    def test_records_require_processing(self):
        """Test that items can only be recorded while processing."""
        batch = NotificationBatch(total_count=1)

        with pytest.raises(ValidationError):
            batch.record_accepted(uuid4())

    def test_default_name(self):
        """Test that unnamed batches get a generated name."""
        batch = NotificationBatch(total_count=0)

        assert batch.name.startswith("batch-")


class TestPlaceholderBalance:
    """Test suite for template placeholder checking."""

    @pytest.mark.parametrize(
        "source",
        [
            "Hello {{ name }}",
            "{% if vip %}VIP{% endif %} {{ name }}",
            "{# note #}plain text",
            "JSON-ish } and { braces",
            "",
        ],
    )
    def test_balanced(self, source):
        """Test sources with balanced placeholders."""
        assert check_placeholder_balance(source) is None

    @pytest.mark.parametrize(
        "source",
        [
            "Hello {{ name",
            "Hello name }}",
            "{{ outer {{ inner }} }}",
            "{% if x }}",
        ],
    )
    def test_unbalanced(self, source):
        """Test sources with unbalanced placeholders."""
        assert check_placeholder_balance(source) is not None


class TestNotificationTemplate:
    """Test suite for the NotificationTemplate aggregate."""

    def test_email_needs_subject(self):
        """Test that email templates require a subject."""
        with pytest.raises(ValidationError):
            NotificationTemplate(
                name="welcome",
                notification_type=NotificationType.WELCOME,
                channel=NotificationChannel.EMAIL,
                body="Hi",
            )

    def test_ensure_well_formed(self):
        """Test that an unbalanced body is reported as malformed."""
        template = NotificationTemplate(
            name="broken",
            notification_type=NotificationType.WELCOME,
            channel=NotificationChannel.SMS,
            body="Hi {{ name",
        )

        with pytest.raises(MalformedTemplateError) as exc_info:
            template.ensure_well_formed()
        assert exc_info.value.code == "MALFORMED_TEMPLATE"
        assert "body" in exc_info.value.details["reason"]

    def test_sample_variables(self):
        """Test that preview data overrides generated markers."""
        template = NotificationTemplate(
            name="welcome",
            notification_type=NotificationType.WELCOME,
            channel=NotificationChannel.SMS,
            body="Hi {{ name }} from {{ city }}",
            variables=["name", "city"],
            preview_data={"name": "Ana"},
        )

        assert template.sample_variables() == {"name": "Ana", "city": "[city]"}

    def test_activate_emits_event_once(self):
        """Test that activation is idempotent and emits one event."""
        template = NotificationTemplate(
            name="welcome",
            notification_type=NotificationType.WELCOME,
            channel=NotificationChannel.SMS,
            body="Hi",
            version=3,
        )
        template.activate()
        template.activate()

        assert template.is_active
        assert [event.event_type for event in template.clear_events()] == ["template.activated"]
        assert template.cache_key == f"{template.id}:3"
