"""Notification domain value objects.

This module contains immutable value objects that represent domain concepts
without identity. These objects encapsulate validation and business logic
for specific domain values: quiet-hour windows, frequency caps, retry
policies, per-channel queue configuration, rendered content, send outcomes
and campaign audience/schedule definitions.
"""

import re
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from herald.core.domain.base import ValueObject
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import (
    DeliveryStatus,
    DigestFrequency,
    MarketingFrequency,
    NotificationChannel,
    RecurrenceFrequency,
    ScheduleType,
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _sunday_first_weekday(day: date) -> int:
    """Day index with Sunday as 0 and Saturday as 6."""
    return (day.weekday() + 1) % 7


class QuietHours(ValueObject):
    """A recurring local-time window during which non-urgent delivery is deferred.

    ``days`` lists the weekdays (0 = Sunday .. 6 = Saturday) on which the
    window *starts*. A window whose end is earlier than its start spans
    midnight and ends on the following day.
    """

    def __init__(
        self,
        start: str,
        end: str,
        timezone: str = "UTC",
        days: list[int] | tuple[int, ...] | None = None,
        enabled: bool = True,
    ):
        super().__init__()

        for field_name, value in (("start", start), ("end", end)):
            if not isinstance(value, str) or not _HHMM.match(value):
                raise ValidationError(
                    f"Quiet hours {field_name} must be in HH:MM format", field=field_name
                )

        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(
                f"Unknown timezone: {timezone}", field="timezone"
            ) from e

        resolved_days = tuple(sorted(set(days))) if days is not None else tuple(range(7))
        if any(d < 0 or d > 6 for d in resolved_days):
            raise ValidationError("Quiet hours days must be between 0 and 6", field="days")

        self.enabled = enabled
        self.start = start
        self.end = end
        self.timezone = timezone
        self.days = resolved_days

        self._freeze()

    @property
    def start_time(self) -> time:
        hours, minutes = self.start.split(":")
        return time(int(hours), int(minutes))

    @property
    def end_time(self) -> time:
        hours, minutes = self.end.split(":")
        return time(int(hours), int(minutes))

    @property
    def spans_midnight(self) -> bool:
        return self.end_time < self.start_time

    def _window_for(self, start_day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
        window_start = datetime.combine(start_day, self.start_time, tzinfo=tz)
        end_day = start_day + timedelta(days=1) if self.spans_midnight else start_day
        window_end = datetime.combine(end_day, self.end_time, tzinfo=tz)
        return window_start, window_end

    def active_window(self, at: datetime) -> tuple[datetime, datetime] | None:
        """Return the (start, end) of the window containing ``at``, if any."""
        if not self.enabled or self.start_time == self.end_time:
            return None

        tz = ZoneInfo(self.timezone)
        local = at.astimezone(tz)

        for offset in (0, 1):
            start_day = local.date() - timedelta(days=offset)
            if _sunday_first_weekday(start_day) not in self.days:
                continue
            window_start, window_end = self._window_for(start_day, tz)
            if window_start <= local < window_end:
                return window_start, window_end

        return None

    def is_active(self, at: datetime) -> bool:
        return self.active_window(at) is not None

    def deferral_until(self, at: datetime) -> datetime | None:
        """When delivery may resume if ``at`` falls inside the window, in UTC."""
        window = self.active_window(at)
        if window is None:
            return None
        return window[1].astimezone(UTC)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "start": self.start,
            "end": self.end,
            "timezone": self.timezone,
            "days": list(self.days),
        }

    def __str__(self) -> str:
        return f"{self.start}-{self.end} {self.timezone}"


class FrequencySettings(ValueObject):
    """Digest and marketing frequency caps plus the reminder opt-out."""

    def __init__(
        self,
        digest: DigestFrequency = DigestFrequency.NEVER,
        marketing: MarketingFrequency = MarketingFrequency.WEEKLY,
        reminders: bool = True,
    ):
        super().__init__()
        self.digest = DigestFrequency(digest)
        self.marketing = MarketingFrequency(marketing)
        self.reminders = bool(reminders)
        self._freeze()

    def to_dict(self) -> dict[str, Any]:
        return {
            "digest": self.digest.value,
            "marketing": self.marketing.value,
            "reminders": self.reminders,
        }

    def __str__(self) -> str:
        return f"digest={self.digest.value} marketing={self.marketing.value}"


class RetryPolicy(ValueObject):
    """Exponential backoff bounds for one channel."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay_seconds: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_delay_seconds: float = 60.0,
    ):
        super().__init__()
        self.validate_in_range(max_retries, 0, None, "max_retries")
        self.validate_in_range(initial_delay_seconds, 0, None, "initial_delay_seconds")
        self.validate_in_range(backoff_multiplier, 1, None, "backoff_multiplier")
        self.validate_in_range(
            max_delay_seconds, initial_delay_seconds, None, "max_delay_seconds"
        )

        self.max_retries = max_retries
        self.initial_delay_seconds = float(initial_delay_seconds)
        self.backoff_multiplier = float(backoff_multiplier)
        self.max_delay_seconds = float(max_delay_seconds)
        self._freeze()

    def base_delay(self, retry_count: int) -> float:
        """Delay before retry number ``retry_count + 1``, before jitter."""
        raw = self.initial_delay_seconds * self.backoff_multiplier**retry_count
        return min(self.max_delay_seconds, raw)

    def allows_retry(self, retry_count: int) -> bool:
        return retry_count < self.max_retries

    def __str__(self) -> str:
        return (
            f"retries={self.max_retries} initial={self.initial_delay_seconds}s "
            f"x{self.backoff_multiplier} max={self.max_delay_seconds}s"
        )


class QueueConfig(ValueObject):
    """Per-channel dispatch policy."""

    def __init__(
        self,
        channel: NotificationChannel,
        max_concurrency: int = 10,
        retry_policy: RetryPolicy | None = None,
        send_timeout_seconds: float = 10.0,
        dead_letter_queue: str | None = None,
        max_depth: int = 10000,
    ):
        super().__init__()
        self.validate_in_range(max_concurrency, 1, None, "max_concurrency")
        self.validate_in_range(max_depth, 1, None, "max_depth")
        if send_timeout_seconds <= 0:
            raise ValidationError(
                "send_timeout_seconds must be positive", field="send_timeout_seconds"
            )

        self.channel = NotificationChannel(channel)
        self.max_concurrency = max_concurrency
        self.retry_policy = retry_policy or RetryPolicy()
        self.send_timeout_seconds = float(send_timeout_seconds)
        self.dead_letter_queue = dead_letter_queue or None
        self.max_depth = max_depth
        self._freeze()

    def __str__(self) -> str:
        return f"{self.channel.value} x{self.max_concurrency} ({self.retry_policy})"


class RenderedContent(ValueObject):
    """Channel-specific content produced by the template renderer."""

    def __init__(
        self,
        channel: NotificationChannel,
        body: str,
        subject: str | None = None,
        html_body: str | None = None,
        text_body: str | None = None,
        payload: dict[str, Any] | None = None,
        template_id: Any = None,
        template_version: int | None = None,
        is_fallback: bool = False,
    ):
        super().__init__()
        self.channel = NotificationChannel(channel)
        self.subject = subject
        self.body = body
        self.html_body = html_body
        self.text_body = text_body
        self.payload = dict(payload or {})
        self.template_id = template_id
        self.template_version = template_version
        self.is_fallback = is_fallback
        self._freeze()

    def __hash__(self) -> int:
        return hash((self.channel, self.subject, self.body, self.template_version))

    def __str__(self) -> str:
        return self.subject or self.body[:50]


class SendOutcome(ValueObject):
    """Classification of one transport attempt."""

    def __init__(
        self,
        status: DeliveryStatus,
        retryable: bool = False,
        detail: str | None = None,
        provider_message_id: str | None = None,
    ):
        super().__init__()
        if status not in (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED):
            raise ValidationError(
                "Send outcome must be DELIVERED or FAILED", field="status"
            )
        self.status = status
        self.retryable = retryable if status == DeliveryStatus.FAILED else False
        self.detail = detail
        self.provider_message_id = provider_message_id
        self._freeze()

    @classmethod
    def delivered(
        cls, provider_message_id: str | None = None, detail: str | None = None
    ) -> "SendOutcome":
        return cls(
            DeliveryStatus.DELIVERED,
            detail=detail,
            provider_message_id=provider_message_id,
        )

    @classmethod
    def failed(cls, detail: str, retryable: bool) -> "SendOutcome":
        return cls(DeliveryStatus.FAILED, retryable=retryable, detail=detail)

    @property
    def is_success(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    def __str__(self) -> str:
        suffix = " (retryable)" if self.retryable else ""
        return f"{self.status.value}{suffix}: {self.detail or ''}".rstrip(": ")


class ContactInfo(ValueObject):
    """Per-channel addresses of a user, as known to the user directory."""

    def __init__(
        self,
        user_id: str,
        email: str | None = None,
        phone: str | None = None,
        push_token: str | None = None,
        name: str | None = None,
    ):
        super().__init__()
        self.validate_not_empty(user_id, "user_id")
        self.user_id = user_id
        self.email = email
        self.phone = phone
        self.push_token = push_token
        self.name = name
        self._freeze()

    def address_for(self, channel: NotificationChannel) -> str | None:
        addresses = {
            NotificationChannel.EMAIL: self.email,
            NotificationChannel.SMS: self.phone,
            NotificationChannel.PUSH: self.push_token,
            NotificationChannel.IN_APP: self.user_id,
        }
        return addresses.get(channel)

    def __str__(self) -> str:
        return self.user_id


class ResolvedPreferences(ValueObject):
    """Outcome of preference resolution for one (user, type, requested channels)."""

    def __init__(
        self,
        channels: frozenset[NotificationChannel],
        quiet_hours: QuietHours | None = None,
        frequency: FrequencySettings | None = None,
        fail_open: bool = False,
    ):
        super().__init__()
        self.channels = frozenset(channels)
        self.quiet_hours = quiet_hours
        self.frequency = frequency or FrequencySettings()
        self.fail_open = fail_open
        self._freeze()

    def __str__(self) -> str:
        return ",".join(sorted(channel.value for channel in self.channels))


class AudienceSpec(ValueObject):
    """Campaign audience: explicit ids and directory filters, minus exclusions."""

    def __init__(
        self,
        user_ids: list[str] | None = None,
        roles: list[str] | None = None,
        locations: list[str] | None = None,
        segments: list[str] | None = None,
        exclude_user_ids: list[str] | None = None,
    ):
        super().__init__()
        self.user_ids = tuple(user_ids or ())
        self.roles = tuple(roles or ())
        self.locations = tuple(locations or ())
        self.segments = tuple(segments or ())
        self.exclude_user_ids = frozenset(exclude_user_ids or ())

        if not self.user_ids and not self.has_filters:
            raise ValidationError(
                "Audience needs user ids or at least one filter", field="target_audience"
            )
        self._freeze()

    @property
    def has_filters(self) -> bool:
        return bool(self.roles or self.locations or self.segments)

    def __str__(self) -> str:
        return (
            f"ids={len(self.user_ids)} roles={list(self.roles)} "
            f"segments={list(self.segments)} excluded={len(self.exclude_user_ids)}"
        )


class CampaignSchedule(ValueObject):
    """When a campaign expands, and for recurring campaigns how often."""

    def __init__(
        self,
        schedule_type: ScheduleType = ScheduleType.IMMEDIATE,
        scheduled_at: datetime | None = None,
        frequency: RecurrenceFrequency | None = None,
        interval: int = 1,
        end_date: datetime | None = None,
        max_occurrences: int | None = None,
        timezone: str = "UTC",
    ):
        super().__init__()
        schedule_type = ScheduleType(schedule_type)

        if schedule_type == ScheduleType.SCHEDULED and scheduled_at is None:
            raise ValidationError(
                "Scheduled campaigns need scheduled_at", field="scheduled_at"
            )
        if schedule_type == ScheduleType.RECURRING and frequency is None:
            raise ValidationError(
                "Recurring campaigns need a frequency", field="frequency"
            )
        self.validate_in_range(interval, 1, None, "interval")
        if max_occurrences is not None:
            self.validate_in_range(max_occurrences, 1, None, "max_occurrences")

        self.schedule_type = schedule_type
        self.scheduled_at = scheduled_at
        self.frequency = RecurrenceFrequency(frequency) if frequency else None
        self.interval = interval
        self.end_date = end_date
        self.max_occurrences = max_occurrences
        self.timezone = timezone
        self._freeze()

    @property
    def is_recurring(self) -> bool:
        return self.schedule_type == ScheduleType.RECURRING

    def __str__(self) -> str:
        if self.is_recurring:
            return f"every {self.interval} {self.frequency.value}"
        return self.schedule_type.value


class CampaignContent(ValueObject):
    """Message template a campaign materializes for each recipient."""

    def __init__(
        self,
        title: str,
        message: str,
        subject: str | None = None,
        data: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.validate_not_empty(title, "title")
        self.validate_not_empty(message, "message")
        self.title = title
        self.message = message
        self.subject = subject
        self.data = dict(data or {})
        self._freeze()

    def __hash__(self) -> int:
        return hash((self.title, self.message, self.subject))

    def __str__(self) -> str:
        return self.title


__all__ = [
    "AudienceSpec",
    "CampaignContent",
    "CampaignSchedule",
    "ContactInfo",
    "FrequencySettings",
    "QueueConfig",
    "QuietHours",
    "RenderedContent",
    "ResolvedPreferences",
    "RetryPolicy",
    "SendOutcome",
]
