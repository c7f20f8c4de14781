"""Lazy expansion of bulk requests and campaigns into notifications."""

from collections.abc import AsyncIterator, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.errors import ValidationError
from herald.modules.notification.application.dto import SendNotificationRequest
from herald.modules.notification.domain.aggregates.campaign import Campaign
from herald.modules.notification.domain.aggregates.notification_batch import MAX_BATCH_SIZE
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.errors import TooManyItemsError
from herald.modules.notification.domain.interfaces.services import IUserDirectory
from herald.modules.notification.domain.value_objects import AudienceSpec


@dataclass(frozen=True)
class ExpandedItem:
    """One bulk item: a notification, or the validation error that rejected it."""

    index: int
    notification: Notification | None = None
    error: ValidationError | None = None


class BatchOrchestrator:
    """
    Turns bulk requests and campaign audiences into notifications one at a
    time, so that a large audience is never materialized in memory.
    """

    def __init__(self, user_directory: IUserDirectory, max_bulk_items: int = MAX_BATCH_SIZE):
        self.user_directory = user_directory
        self.max_bulk_items = max_bulk_items

    def expand_bulk(
        self,
        requests: Sequence[SendNotificationRequest | dict[str, Any]],
        batch_id: UUID,
        now: datetime,
        scheduled_at: datetime | None = None,
    ) -> Iterator[ExpandedItem]:
        """
        Check the item cap, then lazily build one notification per request.

        Raises:
            TooManyItemsError: If the request holds more than the cap, before
                any item is expanded
        """
        if len(requests) > self.max_bulk_items:
            raise TooManyItemsError(len(requests), self.max_bulk_items)
        return self._iter_bulk(requests, batch_id, now, scheduled_at)

    @staticmethod
    def _iter_bulk(
        requests: Sequence[SendNotificationRequest | dict[str, Any]],
        batch_id: UUID,
        now: datetime,
        scheduled_at: datetime | None,
    ) -> Iterator[ExpandedItem]:
        for index, raw in enumerate(requests):
            try:
                request = (
                    raw
                    if isinstance(raw, SendNotificationRequest)
                    else SendNotificationRequest.from_dict(raw)
                )
                notification = request.to_notification(
                    created_at=now, batch_id=batch_id, scheduled_at=scheduled_at
                )
            except ValidationError as e:
                yield ExpandedItem(index=index, error=e)
                continue
            yield ExpandedItem(index=index, notification=notification)

    async def resolve_audience(self, audience: AudienceSpec) -> AsyncIterator[str]:
        """Explicit ids first, then directory matches; exclusions and duplicates dropped."""
        seen: set[str] = set()

        for user_id in audience.user_ids:
            if user_id in audience.exclude_user_ids or user_id in seen:
                continue
            seen.add(user_id)
            yield user_id

        if not audience.has_filters:
            return

        async for user_id in self.user_directory.iter_user_ids(
            roles=audience.roles,
            locations=audience.locations,
            segments=audience.segments,
        ):
            if user_id in audience.exclude_user_ids or user_id in seen:
                continue
            seen.add(user_id)
            yield user_id

    async def expand_campaign(
        self, campaign: Campaign, now: datetime
    ) -> AsyncIterator[Notification]:
        content = campaign.content
        data = dict(content.data)
        if content.subject:
            data["subject"] = content.subject

        async for user_id in self.resolve_audience(campaign.audience):
            yield Notification(
                user_id=user_id,
                notification_type=campaign.notification_type,
                title=content.title,
                message=content.message,
                channels=campaign.channels,
                priority=campaign.priority,
                data=data,
                category=campaign.notification_type.category.value,
                metadata={"campaign_occurrence": campaign.occurrences},
                campaign_id=campaign.id,
                created_at=now,
            )
