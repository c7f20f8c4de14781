"""Delivery history and dead-letter storage interfaces."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from herald.modules.notification.domain.entities.delivery_record import DeliveryRecord


class IDeliveryHistoryRepository(ABC):
    """Append-only log of delivery records."""

    @abstractmethod
    async def append(self, record: DeliveryRecord) -> None:
        """Append one record. Records are never updated or removed."""

    @abstractmethod
    async def find(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Iterable[DeliveryRecord]:
        """Records recorded in ``[start, end)``, optionally for one user."""


class IDeadLetterStore(ABC):
    """Named dead-letter queues holding terminal records of exhausted units."""

    @abstractmethod
    async def append(self, queue_name: str, record: DeliveryRecord) -> None:
        """Append a terminal record to the named queue."""

    @abstractmethod
    async def entries(self, queue_name: str) -> list[DeliveryRecord]:
        """All records of one queue, in arrival order."""

    @abstractmethod
    async def counts(self) -> dict[str, int]:
        """Number of records per queue name."""
