"""In-memory delivery history log and dead-letter store."""

from collections import defaultdict
from datetime import datetime

from herald.modules.notification.domain.entities.delivery_record import DeliveryRecord
from herald.modules.notification.domain.interfaces.repositories import (
    IDeadLetterStore,
    IDeliveryHistoryRepository,
)


class InMemoryDeliveryHistoryRepository(IDeliveryHistoryRepository):
    """Append-only list of delivery records."""

    def __init__(self):
        self._records: list[DeliveryRecord] = []

    async def append(self, record: DeliveryRecord) -> None:
        self._records.append(record)

    async def find(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[DeliveryRecord, ...]:
        return tuple(
            record
            for record in self._records
            if (user_id is None or record.user_id == user_id)
            and (start is None or record.recorded_at >= start)
            and (end is None or record.recorded_at < end)
        )

    def __len__(self) -> int:
        return len(self._records)


class InMemoryDeadLetterStore(IDeadLetterStore):
    """Dead-letter queues kept as lists per queue name."""

    def __init__(self):
        self._queues: dict[str, list[DeliveryRecord]] = defaultdict(list)

    async def append(self, queue_name: str, record: DeliveryRecord) -> None:
        self._queues[queue_name].append(record)

    async def entries(self, queue_name: str) -> list[DeliveryRecord]:
        return list(self._queues.get(queue_name, ()))

    async def counts(self) -> dict[str, int]:
        return {name: len(records) for name, records in self._queues.items()}
