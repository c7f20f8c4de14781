"""DeliveryUnit entity: one channel-specific delivery obligation.

State machine::

    PENDING -> SENDING -> DELIVERED | RETRY_WAIT | FAILED
    RETRY_WAIT -> PENDING            (backoff elapsed)
    PENDING | RETRY_WAIT -> CANCELLED | EXPIRED
    SENDING -> EXPIRED               (expiry noticed after claim, before send)
    SENDING -> CANCELLED             (notification cancelled during a failed attempt)

Only the worker that claimed a unit mutates it while it is SENDING.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.domain.base import Entity
from herald.modules.notification.domain.enums import (
    DeliveryStatus,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from herald.modules.notification.domain.errors import InvalidStatusTransitionError
from herald.modules.notification.domain.value_objects import RenderedContent


class DeliveryUnit(Entity):
    """Per-channel expansion of a notification; the unit the queues schedule."""

    def __init__(
        self,
        notification_id: UUID,
        user_id: str,
        channel: NotificationChannel,
        notification_type: NotificationType,
        priority: NotificationPriority,
        created_at: datetime,
        not_before: datetime | None = None,
        expires_at: datetime | None = None,
        content: RenderedContent | None = None,
        entity_id: UUID | None = None,
    ):
        super().__init__(entity_id, created_at)
        self.notification_id = notification_id
        self.user_id = user_id
        self.channel = NotificationChannel(channel)
        self.notification_type = NotificationType(notification_type)
        self.priority = NotificationPriority(priority)
        self.not_before = not_before
        self.expires_at = expires_at
        self.content = content

        self.status = DeliveryStatus.PENDING
        self.attempts = 0
        self.retry_count = 0
        self.next_retry_at: datetime | None = None
        self.last_error: str | None = None
        self.last_attempt_at: datetime | None = None
        self.finalized_at: datetime | None = None

    # Scheduling

    @property
    def due_time(self) -> datetime:
        """Earliest moment the unit may be sent: max(not_before, next_retry_at)."""
        candidates = [t for t in (self.not_before, self.next_retry_at) if t is not None]
        return max(candidates) if candidates else self.created_at

    def is_due(self, now: datetime) -> bool:
        return now >= self.due_time

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    @property
    def is_final(self) -> bool:
        return self.status.is_final()

    # Transitions

    def _transition(self, new_status: DeliveryStatus, at: datetime) -> None:
        if not self.status.can_transition_to(new_status):
            raise InvalidStatusTransitionError("DeliveryUnit", self.status, new_status)
        self.status = new_status
        self.mark_modified(at)
        if new_status.is_final():
            self.finalized_at = at

    def claim(self, at: datetime) -> None:
        """PENDING -> SENDING for exactly one worker; counts the attempt."""
        self._transition(DeliveryStatus.SENDING, at)
        self.attempts += 1
        self.last_attempt_at = at

    def mark_delivered(self, at: datetime) -> None:
        self._transition(DeliveryStatus.DELIVERED, at)
        self.last_error = None

    def schedule_retry(self, next_retry_at: datetime, error: str | None, at: datetime) -> None:
        self._transition(DeliveryStatus.RETRY_WAIT, at)
        self.retry_count += 1
        self.next_retry_at = next_retry_at
        self.last_error = error

    def promote(self, at: datetime) -> None:
        """RETRY_WAIT -> PENDING once the backoff has elapsed."""
        self._transition(DeliveryStatus.PENDING, at)

    def mark_failed(self, error: str | None, at: datetime) -> None:
        self._transition(DeliveryStatus.FAILED, at)
        self.last_error = error

    def cancel(self, at: datetime) -> bool:
        """Cancel if still waiting; a unit in flight finishes its attempt."""
        if self.status == DeliveryStatus.SENDING:
            return False
        if not self.status.can_transition_to(DeliveryStatus.CANCELLED):
            return False
        self._transition(DeliveryStatus.CANCELLED, at)
        return True

    def cancel_after_attempt(self, error: str | None, at: datetime) -> None:
        """SENDING -> CANCELLED instead of a retry once the notification is cancelled."""
        self._transition(DeliveryStatus.CANCELLED, at)
        self.last_error = error

    def expire(self, at: datetime) -> None:
        self._transition(DeliveryStatus.EXPIRED, at)
        self.last_error = "expired before send"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "notification_id": str(self.notification_id),
            "user_id": self.user_id,
            "channel": self.channel.value,
            "type": self.notification_type.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "attempts": self.attempts,
            "retry_count": self.retry_count,
            "due_time": self.due_time.isoformat(),
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
            "finalized_at": self.finalized_at.isoformat() if self.finalized_at else None,
        }

    def __str__(self) -> str:
        return f"DeliveryUnit({self.channel.value}:{self.id} {self.status.value})"
