"""Campaign aggregate.

A campaign sends the same content to an audience, once (immediately or at a
set time) or on a recurring schedule. The aggregate owns only the schedule
bookkeeping; audience resolution and enqueueing happen in the orchestrator.
Cancelling a campaign stops future expansions only.
"""

import calendar
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from herald.core.domain.base import AggregateRoot
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import (
    CampaignStatus,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    RecurrenceFrequency,
    ScheduleType,
)
from herald.modules.notification.domain.errors import InvalidStatusTransitionError
from herald.modules.notification.domain.events import CampaignFinished, CampaignLaunched
from herald.modules.notification.domain.value_objects import (
    AudienceSpec,
    CampaignContent,
    CampaignSchedule,
)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def advance(moment: datetime, frequency: RecurrenceFrequency, interval: int) -> datetime:
    if frequency == RecurrenceFrequency.DAILY:
        return moment + timedelta(days=interval)
    if frequency == RecurrenceFrequency.WEEKLY:
        return moment + timedelta(weeks=interval)
    return add_months(moment, interval)


class Campaign(AggregateRoot):
    """Audience-targeted notification run with an optional recurrence."""

    def __init__(
        self,
        name: str,
        notification_type: NotificationType,
        channels: list[NotificationChannel],
        audience: AudienceSpec,
        content: CampaignContent,
        schedule: CampaignSchedule | None = None,
        priority: NotificationPriority = NotificationPriority.LOW,
        description: str | None = None,
        created_by: str = "system",
        entity_id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        super().__init__(entity_id, created_at)

        if not name or not name.strip():
            raise ValidationError("Campaign name is required", field="name")
        if not channels:
            raise ValidationError("At least one channel is required", field="channels")

        self.name = name.strip()
        self.description = description
        self.notification_type = NotificationType(notification_type)
        self.channels = list(dict.fromkeys(NotificationChannel(c) for c in channels))
        self.audience = audience
        self.content = content
        self.schedule = schedule or CampaignSchedule()
        self.priority = NotificationPriority(priority)
        self.created_by = created_by

        self.status = CampaignStatus.DRAFT
        self.occurrences = 0
        self.next_run_at: datetime | None = None
        self.last_run_at: datetime | None = None

        self.total_recipients = 0
        self.enqueued_count = 0
        self.rejected_count = 0

    # Lifecycle

    def launch(self, now: datetime) -> None:
        """DRAFT -> SCHEDULED; the first run is due now or at scheduled_at."""
        if self.status != CampaignStatus.DRAFT:
            raise InvalidStatusTransitionError("Campaign", self.status, CampaignStatus.SCHEDULED)

        if self.schedule.schedule_type == ScheduleType.IMMEDIATE:
            self.next_run_at = now
        else:
            self.next_run_at = self.schedule.scheduled_at or now

        self.status = CampaignStatus.SCHEDULED
        self.mark_modified(now)

    def is_due(self, now: datetime) -> bool:
        return (
            self.status.is_executable()
            and self.next_run_at is not None
            and self.next_run_at <= now
        )

    def begin_occurrence(self, now: datetime) -> int:
        if not self.is_due(now):
            raise ValidationError(f"Campaign {self.id} is not due")
        self.status = CampaignStatus.RUNNING
        self.occurrences += 1
        self.last_run_at = now
        self.mark_modified(now)
        return self.occurrences

    def finish_occurrence(
        self, now: datetime, recipients: int, enqueued: int, rejected: int
    ) -> None:
        """Record one expansion and plan the next, completing when the schedule ends."""
        self.total_recipients += recipients
        self.enqueued_count += enqueued
        self.rejected_count += rejected
        self.add_event(CampaignLaunched(self.id, self.occurrences, recipients))

        if self.status == CampaignStatus.CANCELLED:
            return

        next_run = self._next_occurrence(now)
        if next_run is None:
            self.status = CampaignStatus.COMPLETED
            self.next_run_at = None
            self.add_event(CampaignFinished(self.id, self.status.value, self.occurrences))
        else:
            self.status = CampaignStatus.SCHEDULED
            self.next_run_at = next_run
        self.mark_modified(now)

    def _next_occurrence(self, now: datetime) -> datetime | None:
        schedule = self.schedule
        if not schedule.is_recurring:
            return None
        if schedule.max_occurrences is not None and self.occurrences >= schedule.max_occurrences:
            return None

        candidate = advance(self.next_run_at or now, schedule.frequency, schedule.interval)
        while candidate <= now:
            candidate = advance(candidate, schedule.frequency, schedule.interval)

        if schedule.end_date is not None and candidate > schedule.end_date:
            return None
        return candidate

    def cancel(self, now: datetime) -> None:
        if self.status.is_final():
            raise InvalidStatusTransitionError("Campaign", self.status, CampaignStatus.CANCELLED)
        self.status = CampaignStatus.CANCELLED
        self.next_run_at = None
        self.mark_modified(now)
        self.add_event(CampaignFinished(self.id, self.status.value, self.occurrences))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "type": self.notification_type.value,
            "channels": [c.value for c in self.channels],
            "priority": self.priority.value,
            "status": self.status.value,
            "schedule": str(self.schedule),
            "occurrences": self.occurrences,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "stats": {
                "total_recipients": self.total_recipients,
                "enqueued": self.enqueued_count,
                "rejected": self.rejected_count,
            },
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"Campaign({self.name}: {self.status.value})"
