"""Campaign and batch repository interfaces."""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from herald.modules.notification.domain.aggregates.campaign import Campaign
from herald.modules.notification.domain.aggregates.notification_batch import (
    NotificationBatch,
)
from herald.modules.notification.domain.enums import CampaignStatus


class ICampaignRepository(ABC):
    """Repository interface for campaigns."""

    @abstractmethod
    async def save(self, campaign: Campaign) -> None:
        """Insert or replace a campaign."""

    @abstractmethod
    async def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        """Find a campaign by id."""

    @abstractmethod
    async def find_due(self, now: datetime) -> list[Campaign]:
        """Find campaigns whose next run is at or before ``now``."""

    @abstractmethod
    async def list_all(self, status: CampaignStatus | None = None) -> list[Campaign]:
        """List campaigns, optionally by status."""


class INotificationBatchRepository(ABC):
    """Repository interface for bulk request batches."""

    @abstractmethod
    async def save(self, batch: NotificationBatch) -> None:
        """Insert or replace a batch."""

    @abstractmethod
    async def get_by_id(self, batch_id: UUID) -> NotificationBatch | None:
        """Find a batch by id."""
