"""In-memory campaign and batch storage."""

from datetime import datetime
from uuid import UUID

from herald.modules.notification.domain.aggregates.campaign import Campaign
from herald.modules.notification.domain.aggregates.notification_batch import (
    NotificationBatch,
)
from herald.modules.notification.domain.enums import CampaignStatus
from herald.modules.notification.domain.interfaces.repositories import (
    ICampaignRepository,
    INotificationBatchRepository,
)


class InMemoryCampaignRepository(ICampaignRepository):
    def __init__(self):
        self._items: dict[UUID, Campaign] = {}

    async def save(self, campaign: Campaign) -> None:
        self._items[campaign.id] = campaign

    async def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        return self._items.get(campaign_id)

    async def find_due(self, now: datetime) -> list[Campaign]:
        due = [c for c in self._items.values() if c.is_due(now)]
        return sorted(due, key=lambda c: c.next_run_at)

    async def list_all(self, status: CampaignStatus | None = None) -> list[Campaign]:
        return [c for c in self._items.values() if status is None or c.status == status]


class InMemoryNotificationBatchRepository(INotificationBatchRepository):
    def __init__(self):
        self._items: dict[UUID, NotificationBatch] = {}

    async def save(self, batch: NotificationBatch) -> None:
        self._items[batch.id] = batch

    async def get_by_id(self, batch_id: UUID) -> NotificationBatch | None:
        return self._items.get(batch_id)
