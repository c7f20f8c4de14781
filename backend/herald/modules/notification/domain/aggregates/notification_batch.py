"""NotificationBatch aggregate for bulk sends.

A batch groups the notifications of one bulk request. Items are accepted or
rejected one by one while the batch is processing; a rejected item never
stops the rest of the batch.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.domain.base import AggregateRoot
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import BatchStatus
from herald.modules.notification.domain.errors import InvalidStatusTransitionError
from herald.modules.notification.domain.events import BatchCompleted

MAX_BATCH_NAME_LENGTH = 200
MAX_BATCH_SIZE = 1000


class NotificationBatch(AggregateRoot):
    """Tracks the expansion of one bulk request."""

    def __init__(
        self,
        total_count: int,
        name: str | None = None,
        scheduled_at: datetime | None = None,
        metadata: dict[str, Any] | None = None,
        entity_id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        super().__init__(entity_id, created_at)

        if total_count < 0 or total_count > MAX_BATCH_SIZE:
            raise ValidationError(
                f"Batch size must be between 0 and {MAX_BATCH_SIZE}", field="notifications"
            )

        self.name = self._validate_name(name) if name else f"batch-{str(self.id)[:8]}"
        self.scheduled_at = scheduled_at
        self.metadata = dict(metadata or {})
        self.total_count = total_count

        self.status = BatchStatus.PENDING
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None

        self.notification_ids: list[UUID] = []
        self.rejections: list[dict[str, Any]] = []

    @staticmethod
    def _validate_name(name: str) -> str:
        name = name.strip()
        if not name:
            raise ValidationError("Batch name cannot be blank", field="batch_name")
        if len(name) > MAX_BATCH_NAME_LENGTH:
            raise ValidationError(
                f"Batch name cannot exceed {MAX_BATCH_NAME_LENGTH} characters",
                field="batch_name",
            )
        return name

    @property
    def accepted_count(self) -> int:
        return len(self.notification_ids)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def start(self, at: datetime) -> None:
        if self.status != BatchStatus.PENDING:
            raise InvalidStatusTransitionError("NotificationBatch", self.status, BatchStatus.PROCESSING)
        self.status = BatchStatus.PROCESSING
        self.started_at = at
        self.mark_modified(at)

    def record_accepted(self, notification_id: UUID) -> None:
        self._ensure_processing()
        self.notification_ids.append(notification_id)

    def record_rejected(self, index: int, reason: str, code: str | None = None) -> None:
        self._ensure_processing()
        self.rejections.append({"index": index, "reason": reason, "code": code})

    def _ensure_processing(self) -> None:
        if self.status != BatchStatus.PROCESSING:
            raise ValidationError(
                f"Cannot record items on a batch in {self.status.value} status"
            )

    def complete(self, at: datetime) -> None:
        """Close the batch; it fails only if items were submitted and none was accepted."""
        self._ensure_processing()
        failed = self.total_count > 0 and self.accepted_count == 0
        self.status = BatchStatus.FAILED if failed else BatchStatus.COMPLETED
        self.completed_at = at
        self.mark_modified(at)
        self.add_event(BatchCompleted(self.id, self.accepted_count, self.rejected_count))

    def cancel(self, at: datetime) -> None:
        if self.status.is_final():
            raise InvalidStatusTransitionError("NotificationBatch", self.status, BatchStatus.CANCELLED)
        self.status = BatchStatus.CANCELLED
        self.completed_at = at
        self.mark_modified(at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "status": self.status.value,
            "total_count": self.total_count,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
            "rejections": list(self.rejections),
            "notification_ids": [str(n) for n in self.notification_ids],
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __str__(self) -> str:
        return f"NotificationBatch({self.name}: {self.status.value})"
