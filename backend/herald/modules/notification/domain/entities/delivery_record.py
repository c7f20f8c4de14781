"""Immutable delivery history entries."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from herald.modules.notification.domain.enums import (
    DeliveryStatus,
    NotificationChannel,
    NotificationType,
)


@dataclass(frozen=True)
class DeliveryRecord:
    """One attempt or terminal outcome of a delivery unit.

    Exactly one record per unit has ``is_final`` set; every other record for
    that unit is a non-final attempt (a retry being scheduled).
    """

    unit_id: UUID
    notification_id: UUID
    user_id: str
    notification_type: NotificationType
    channel: NotificationChannel
    status: DeliveryStatus
    attempt: int
    is_final: bool
    unit_created_at: datetime
    recorded_at: datetime
    error: str | None = None
    next_retry_at: datetime | None = None
    record_id: UUID = field(default_factory=uuid4)

    @property
    def counts_as_sent(self) -> bool:
        """True when a transport attempt was actually made."""
        return self.attempt > 0

    @property
    def latency_ms(self) -> float:
        """Milliseconds from unit creation to this record."""
        return (self.recorded_at - self.unit_created_at).total_seconds() * 1000

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.update(
            {
                "unit_id": str(self.unit_id),
                "notification_id": str(self.notification_id),
                "record_id": str(self.record_id),
                "notification_type": self.notification_type.value,
                "channel": self.channel.value,
                "status": self.status.value,
                "unit_created_at": self.unit_created_at.isoformat(),
                "recorded_at": self.recorded_at.isoformat(),
                "next_retry_at": self.next_retry_at.isoformat()
                if self.next_retry_at
                else None,
            }
        )
        return data
