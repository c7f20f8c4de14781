"""Tests for notification domain value objects."""

from datetime import UTC, datetime

import pytest

from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import (
    DeliveryStatus,
    MarketingFrequency,
    NotificationChannel,
    RecurrenceFrequency,
    ScheduleType,
)
from herald.modules.notification.domain.value_objects import (
    AudienceSpec,
    CampaignSchedule,
    ContactInfo,
    FrequencySettings,
    QueueConfig,
    QuietHours,
    RetryPolicy,
    SendOutcome,
)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestQuietHours:
    """Test suite for QuietHours."""

    def test_window_spanning_midnight(self):
        """Test that a 22:00-08:00 window covers both sides of midnight."""
        quiet = QuietHours("22:00", "08:00")

        assert quiet.spans_midnight
        assert quiet.is_active(utc(2024, 1, 1, 23, 30))
        assert quiet.is_active(utc(2024, 1, 2, 7, 59))
        assert not quiet.is_active(utc(2024, 1, 2, 8, 0))
        assert not quiet.is_active(utc(2024, 1, 1, 21, 59))

    def test_deferral_until_window_end(self):
        """Test that deferral returns the end of the active window in UTC."""
        quiet = QuietHours("22:00", "08:00")

        assert quiet.deferral_until(utc(2024, 1, 1, 23, 30)) == utc(2024, 1, 2, 8, 0)
        assert quiet.deferral_until(utc(2024, 1, 1, 12, 0)) is None

    def test_window_in_user_timezone(self):
        """Test that the window is evaluated in the user's local time."""
        quiet = QuietHours("22:00", "07:00", timezone="America/New_York")

        # 04:00 UTC is 23:00 EST on the previous day
        at = utc(2024, 1, 2, 4, 0)
        assert quiet.is_active(at)
        assert quiet.deferral_until(at) == utc(2024, 1, 2, 12, 0)
        assert not quiet.is_active(utc(2024, 1, 2, 13, 0))

    def test_days_name_the_day_the_window_starts(self):
        """Test that a Sunday-only window still covers early Monday."""
        quiet = QuietHours("22:00", "08:00", days=[0])

        assert quiet.is_active(utc(2024, 1, 7, 23, 0))  # Sunday night
        assert quiet.is_active(utc(2024, 1, 8, 3, 0))  # Monday morning, Sunday's window
        assert not quiet.is_active(utc(2024, 1, 8, 23, 0))  # Monday night

    def test_same_day_window(self):
        """Test a window that does not cross midnight."""
        quiet = QuietHours("12:00", "14:00")

        assert not quiet.spans_midnight
        assert quiet.is_active(utc(2024, 1, 1, 13, 0))
        assert not quiet.is_active(utc(2024, 1, 1, 14, 0))

    def test_equal_start_and_end_is_never_active(self):
        """Test that start == end defines no window."""
        quiet = QuietHours("08:00", "08:00")

        assert not quiet.is_active(utc(2024, 1, 1, 8, 0))
        assert quiet.deferral_until(utc(2024, 1, 1, 8, 0)) is None

    def test_disabled_window(self):
        """Test that a disabled window never defers."""
        quiet = QuietHours("00:00", "23:59", enabled=False)

        assert not quiet.is_active(utc(2024, 1, 1, 12, 0))

    @pytest.mark.parametrize(
        ("start", "end", "timezone", "days"),
        [
            ("25:00", "08:00", "UTC", None),
            ("22:00", "8:00", "UTC", None),
            ("22:00", "08:00", "Mars/Olympus", None),
            ("22:00", "08:00", "UTC", [7]),
        ],
    )
    def test_invalid_values(self, start, end, timezone, days):
        """Test that malformed windows are rejected."""
        with pytest.raises(ValidationError):
            QuietHours(start, end, timezone=timezone, days=days)

    def test_is_immutable(self):
        """Test that quiet hours cannot be modified after creation."""
        quiet = QuietHours("22:00", "08:00")

        with pytest.raises(AttributeError):
            quiet.start = "23:00"


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_exponential_backoff(self):
        """Test exponential delay growth before the cap."""
        policy = RetryPolicy(max_retries=5, initial_delay_seconds=1, backoff_multiplier=2)

        assert [policy.base_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self):
        """Test that the delay never exceeds the maximum."""
        policy = RetryPolicy(initial_delay_seconds=1, backoff_multiplier=2, max_delay_seconds=60)

        assert policy.base_delay(6) == 60.0
        assert policy.base_delay(20) == 60.0

    def test_retry_budget(self):
        """Test that retries are allowed only below max_retries."""
        policy = RetryPolicy(max_retries=2)

        assert policy.allows_retry(0)
        assert policy.allows_retry(1)
        assert not policy.allows_retry(2)

    def test_max_delay_below_initial_is_rejected(self):
        """Test that an inverted delay range is invalid."""
        with pytest.raises(ValidationError):
            RetryPolicy(initial_delay_seconds=10, max_delay_seconds=5)


class TestQueueConfig:
    """Test suite for QueueConfig."""

    def test_defaults(self):
        """Test default queue configuration values."""
        config = QueueConfig(NotificationChannel.SMS)

        assert config.max_concurrency == 10
        assert config.retry_policy == RetryPolicy()
        assert config.dead_letter_queue is None

    def test_invalid_concurrency(self):
        """Test that a queue needs at least one worker."""
        with pytest.raises(ValidationError):
            QueueConfig(NotificationChannel.SMS, max_concurrency=0)

    def test_invalid_timeout(self):
        """Test that the send timeout must be positive."""
        with pytest.raises(ValidationError):
            QueueConfig(NotificationChannel.SMS, send_timeout_seconds=0)


class TestSendOutcome:
    """Test suite for SendOutcome."""

    def test_delivered_is_never_retryable(self):
        """Test that a delivered outcome carries no retry flag."""
        outcome = SendOutcome(DeliveryStatus.DELIVERED, retryable=True)

        assert outcome.is_success
        assert outcome.retryable is False

    def test_failed(self):
        """Test failed outcome classification."""
        outcome = SendOutcome.failed("HTTP 503", retryable=True)

        assert not outcome.is_success
        assert outcome.retryable
        assert outcome.detail == "HTTP 503"

    def test_only_terminal_attempt_statuses(self):
        """Test that outcomes are limited to DELIVERED and FAILED."""
        with pytest.raises(ValidationError):
            SendOutcome(DeliveryStatus.PENDING)


class TestContactInfo:
    """Test suite for ContactInfo."""

    def test_address_for_channel(self):
        """Test per-channel address lookup."""
        contact = ContactInfo("user-1", email="a@example.com", phone="+1555", push_token="tok")

        assert contact.address_for(NotificationChannel.EMAIL) == "a@example.com"
        assert contact.address_for(NotificationChannel.SMS) == "+1555"
        assert contact.address_for(NotificationChannel.PUSH) == "tok"
        assert contact.address_for(NotificationChannel.IN_APP) == "user-1"
        assert contact.address_for(NotificationChannel.WEBHOOK) is None


class TestFrequencySettings:
    """Test suite for FrequencySettings."""

    def test_defaults(self):
        """Test default frequency caps."""
        frequency = FrequencySettings()

        assert frequency.marketing == MarketingFrequency.WEEKLY
        assert frequency.reminders is True
        assert frequency.to_dict() == {
            "digest": "never",
            "marketing": "weekly",
            "reminders": True,
        }

    def test_marketing_intervals(self):
        """Test the minimum marketing interval per setting."""
        assert MarketingFrequency.NEVER.min_interval_days() is None
        assert MarketingFrequency.WEEKLY.min_interval_days() == 7
        assert MarketingFrequency.MONTHLY.min_interval_days() == 30


class TestAudienceSpec:
    """Test suite for AudienceSpec."""

    def test_requires_ids_or_filters(self):
        """Test that an empty audience is rejected."""
        with pytest.raises(ValidationError):
            AudienceSpec(exclude_user_ids=["user-1"])

    def test_filters(self):
        """Test filter detection."""
        assert AudienceSpec(roles=["agent"]).has_filters
        assert not AudienceSpec(user_ids=["user-1"]).has_filters


class TestCampaignSchedule:
    """Test suite for CampaignSchedule."""

    def test_scheduled_needs_time(self):
        """Test that a scheduled campaign needs scheduled_at."""
        with pytest.raises(ValidationError):
            CampaignSchedule(ScheduleType.SCHEDULED)

    def test_recurring_needs_frequency(self):
        """Test that a recurring campaign needs a frequency."""
        with pytest.raises(ValidationError):
            CampaignSchedule(ScheduleType.RECURRING)

    def test_interval_must_be_positive(self):
        """Test that the recurrence interval is at least one."""
        with pytest.raises(ValidationError):
            CampaignSchedule(
                ScheduleType.RECURRING, frequency=RecurrenceFrequency.DAILY, interval=0
            )

    def test_recurring(self):
        """Test a valid recurring schedule."""
        schedule = CampaignSchedule(
            ScheduleType.RECURRING, frequency=RecurrenceFrequency.WEEKLY, max_occurrences=4
        )

        assert schedule.is_recurring
        assert str(schedule) == "every 1 weekly"
