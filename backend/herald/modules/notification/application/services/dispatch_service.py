"""Notification dispatch service facade.

Single entry point wiring the dispatch pipeline together: preference
resolution, frequency caps, rendering, queueing, delivery tracking, the
in-app inbox, template management and campaigns. Only enqueue-time problems
are raised to callers; everything after enqueue is observable through the
delivery units and the stats.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.logging import get_logger
from herald.core.domain.base import AggregateRoot
from herald.modules.notification.application.dto import (
    BulkSendResult,
    CampaignRunResult,
    SendNotificationRequest,
    SendResult,
)
from herald.modules.notification.application.services.delivery_tracking_service import (
    DeliveryTracker,
)
from herald.modules.notification.application.services.dispatch_scheduler import (
    DispatchScheduler,
)
from herald.modules.notification.application.services.frequency_guard import FrequencyGuard
from herald.modules.notification.application.services.orchestrator import BatchOrchestrator
from herald.modules.notification.application.services.preference_resolver import (
    PreferenceResolver,
)
from herald.modules.notification.application.services.template_renderer import (
    TemplateRenderer,
)
from herald.modules.notification.domain.aggregates.campaign import Campaign
from herald.modules.notification.domain.aggregates.notification_batch import NotificationBatch
from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)
from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.entities.in_app_notification import (
    InAppNotification,
)
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)
from herald.modules.notification.domain.enums import (
    CampaignStatus,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    StatsGroupBy,
)
from herald.modules.notification.domain.errors import (
    BatchNotFoundError,
    CampaignNotFoundError,
    InAppNotificationNotFoundError,
    NotificationNotFoundError,
    QueueSaturatedError,
    TemplateNotFoundError,
)
from herald.modules.notification.domain.interfaces.repositories import (
    ICampaignRepository,
    IDeadLetterStore,
    IDeliveryUnitRepository,
    IInAppNotificationRepository,
    INotificationBatchRepository,
    INotificationRepository,
    INotificationTemplateRepository,
)
from herald.modules.notification.domain.interfaces.services import IClock, IDispatchQueue
from herald.modules.notification.domain.value_objects import (
    AudienceSpec,
    CampaignContent,
    CampaignSchedule,
    ResolvedPreferences,
)

logger = get_logger(__name__)

DEFAULT_INBOX_PAGE_SIZE = 20
MAX_INBOX_PAGE_SIZE = 100


class NotificationDispatchService:
    """Facade over the dispatch pipeline."""

    def __init__(
        self,
        notification_repository: INotificationRepository,
        unit_repository: IDeliveryUnitRepository,
        template_repository: INotificationTemplateRepository,
        inbox_repository: IInAppNotificationRepository,
        campaign_repository: ICampaignRepository,
        batch_repository: INotificationBatchRepository,
        dead_letters: IDeadLetterStore,
        preference_resolver: PreferenceResolver,
        frequency_guard: FrequencyGuard,
        renderer: TemplateRenderer,
        queues: dict[NotificationChannel, IDispatchQueue],
        scheduler: DispatchScheduler,
        tracker: DeliveryTracker,
        orchestrator: BatchOrchestrator,
        clock: IClock,
        worker_pool=None,
        campaign_scheduler=None,
    ):
        self.notification_repository = notification_repository
        self.unit_repository = unit_repository
        self.template_repository = template_repository
        self.inbox_repository = inbox_repository
        self.campaign_repository = campaign_repository
        self.batch_repository = batch_repository
        self.dead_letters = dead_letters
        self.preference_resolver = preference_resolver
        self.frequency_guard = frequency_guard
        self.renderer = renderer
        self.queues = queues
        self.scheduler = scheduler
        self.tracker = tracker
        self.orchestrator = orchestrator
        self.clock = clock
        self.worker_pool = worker_pool
        self.campaign_scheduler = campaign_scheduler

    # =================================================================================
    # LIFECYCLE
    # =================================================================================

    async def start(self) -> None:
        """Start the channel workers and the campaign tick."""
        if self.worker_pool is not None:
            await self.worker_pool.start()
        if self.campaign_scheduler is not None:
            await self.campaign_scheduler.start()

    async def stop(self) -> None:
        """Stop the campaign tick and the workers, then close sender transports."""
        if self.campaign_scheduler is not None:
            await self.campaign_scheduler.shutdown()
        if self.worker_pool is not None:
            await self.worker_pool.stop()
        await self.scheduler.close()

    async def dispatch_due(self, channels: list[NotificationChannel] | None = None) -> int:
        """Process every currently due unit inline, without the worker pool."""
        return await self.scheduler.run_once(channels)

    # =================================================================================
    # ENQUEUE
    # =================================================================================

    async def send(self, request: SendNotificationRequest | dict[str, Any]) -> SendResult:
        """Validate and enqueue one notification.

        Args:
            request: Request DTO or its dictionary form

        Returns:
            Enqueue result with the notification id

        Raises:
            ValidationError: If the request is invalid
            QueueSaturatedError: If a target channel queue is full
        """
        if not isinstance(request, SendNotificationRequest):
            request = SendNotificationRequest.from_dict(request)

        notification = request.to_notification(created_at=self.clock.now())
        return await self._enqueue(notification)

    async def send_bulk(
        self,
        requests: list[SendNotificationRequest | dict[str, Any]],
        batch_name: str | None = None,
        scheduled_at: datetime | None = None,
    ) -> BulkSendResult:
        """Enqueue up to the bulk cap of notifications as one batch.

        Items that fail validation or hit a saturated queue are rejected
        individually; the rest of the batch still goes through.

        Raises:
            TooManyItemsError: If the request exceeds the cap; nothing is enqueued
        """
        now = self.clock.now()
        batch = NotificationBatch(
            total_count=min(len(requests), self.orchestrator.max_bulk_items),
            name=batch_name,
            scheduled_at=scheduled_at,
            created_at=now,
        )
        items = self.orchestrator.expand_bulk(requests, batch.id, now, scheduled_at)

        batch.start(now)
        results: list[SendResult] = []

        for item in items:
            if item.error is not None:
                batch.record_rejected(item.index, item.error.message, item.error.code)
                continue

            try:
                result = await self._enqueue(item.notification)
            except QueueSaturatedError as e:
                batch.record_rejected(item.index, e.message, e.code)
                continue

            batch.record_accepted(result.notification_id)
            results.append(result)

        batch.complete(self.clock.now())
        await self.batch_repository.save(batch)
        self._log_events(batch)

        logger.info(
            "Bulk send processed",
            batch_id=str(batch.id),
            batch_name=batch.name,
            accepted=batch.accepted_count,
            rejected=batch.rejected_count,
        )
        return BulkSendResult(
            batch_id=batch.id,
            batch_name=batch.name,
            results=results,
            rejections=list(batch.rejections),
        )

    async def _enqueue(self, notification: Notification) -> SendResult:
        now = self.clock.now()

        resolved = await self.preference_resolver.resolve(
            notification.user_id, notification.notification_type, notification.channels
        )
        channels = [c for c in notification.channels if c in resolved.channels]
        if not channels:
            return await self._suppress(notification, "all requested channels disabled")

        reason = await self.frequency_guard.check(notification, resolved.frequency, now)
        if reason:
            return await self._suppress(notification, reason)

        if notification.is_expired(now):
            return await self._expire(notification, channels, now)

        not_before = self._not_before(notification, resolved, now)
        units = []
        for channel in channels:
            content = await self.renderer.render(notification, channel)
            units.append(
                DeliveryUnit(
                    notification_id=notification.id,
                    user_id=notification.user_id,
                    channel=channel,
                    notification_type=notification.notification_type,
                    priority=notification.priority,
                    created_at=now,
                    not_before=not_before,
                    expires_at=notification.expires_at,
                    content=content,
                )
            )

        # All channels are checked before anything is pushed, so a saturated
        # queue leaves no partial fan-out behind.
        for unit in units:
            self.queues[unit.channel].ensure_capacity()
        for unit in units:
            self.queues[unit.channel].push(unit)

        for unit in units:
            await self.unit_repository.save(unit)

        notification.mark_queued()
        await self._save(notification)

        logger.info(
            "Notification queued",
            notification_id=str(notification.id),
            user_id=notification.user_id,
            notification_type=notification.notification_type.value,
            priority=notification.priority.value,
            channels=[c.value for c in channels],
            not_before=not_before.isoformat() if not_before else None,
            fail_open=resolved.fail_open,
        )
        return SendResult(
            notification_id=notification.id,
            status=notification.status,
            channels=channels,
            unit_ids=[unit.id for unit in units],
        )

    @staticmethod
    def _not_before(
        notification: Notification, resolved: ResolvedPreferences, now: datetime
    ) -> datetime | None:
        not_before = notification.scheduled_at if notification.is_scheduled_after(now) else None

        if resolved.quiet_hours is not None and notification.priority.respects_quiet_hours():
            deferral = resolved.quiet_hours.deferral_until(not_before or now)
            if deferral is not None:
                logger.info(
                    "Delivery deferred by quiet hours",
                    notification_id=str(notification.id),
                    user_id=notification.user_id,
                    until=deferral.isoformat(),
                )
                not_before = deferral

        return not_before

    async def _suppress(self, notification: Notification, reason: str) -> SendResult:
        notification.mark_suppressed(reason)
        await self._save(notification)
        logger.info(
            "Notification suppressed",
            notification_id=str(notification.id),
            user_id=notification.user_id,
            notification_type=notification.notification_type.value,
            reason=reason,
        )
        return SendResult(
            notification_id=notification.id, status=notification.status, reason=reason
        )

    async def _expire(
        self, notification: Notification, channels: list[NotificationChannel], now: datetime
    ) -> SendResult:
        units = []
        for channel in channels:
            unit = DeliveryUnit(
                notification_id=notification.id,
                user_id=notification.user_id,
                channel=channel,
                notification_type=notification.notification_type,
                priority=notification.priority,
                created_at=now,
                expires_at=notification.expires_at,
            )
            unit.expire(now)
            await self.unit_repository.save(unit)
            await self.tracker.record(unit, is_final=True, at=now)
            units.append(unit)

        notification.mark_expired()
        await self._save(notification)

        logger.info(
            "Notification expired before dispatch",
            notification_id=str(notification.id),
            expires_at=notification.expires_at.isoformat(),
        )
        return SendResult(
            notification_id=notification.id,
            status=notification.status,
            channels=channels,
            unit_ids=[unit.id for unit in units],
            reason=notification.status_reason,
        )

    async def _save(self, notification: Notification) -> None:
        await self.notification_repository.save(notification)
        self._log_events(notification)

    @staticmethod
    def _log_events(aggregate: AggregateRoot) -> None:
        for event in aggregate.clear_events():
            logger.debug(
                "Domain event",
                event_type=event.event_type,
                aggregate_id=str(event.aggregate_id),
                event=str(event),
            )

    async def send_test_notification(
        self, user_id: str, channel: NotificationChannel | str = NotificationChannel.IN_APP
    ) -> SendResult:
        """Send a fixed test message on one channel."""
        return await self.send(
            SendNotificationRequest(
                user_id=user_id,
                notification_type=NotificationType.SYSTEM_UPDATE,
                title="Test Notification",
                message="This is a test notification. If you received it, delivery works.",
                channels=[NotificationChannel(channel)],
                priority=NotificationPriority.HIGH,
                tags=["test"],
            )
        )

    # =================================================================================
    # CANCELLATION AND LOOKUP
    # =================================================================================

    async def cancel(self, notification_id: UUID) -> int:
        """Cancel a notification and every unit not yet in flight.

        Returns:
            Number of delivery units cancelled

        Raises:
            NotificationNotFoundError: If the notification does not exist
            InvalidStatusTransitionError: If the notification is already final
        """
        notification = await self.get_notification(notification_id)
        now = self.clock.now()
        cancelled = 0

        for unit in await self.unit_repository.find_by_notification(notification_id):
            if not unit.cancel(now):
                continue
            self.queues[unit.channel].discard(unit)
            await self.unit_repository.save(unit)
            await self.tracker.record(unit, is_final=True, at=now)
            cancelled += 1

        notification.cancel(cancelled)
        await self._save(notification)

        logger.info(
            "Notification cancelled",
            notification_id=str(notification_id),
            cancelled_units=cancelled,
        )
        return cancelled

    async def get_notification(self, notification_id: UUID) -> Notification:
        notification = await self.notification_repository.get_by_id(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    async def get_delivery_units(self, notification_id: UUID) -> list[DeliveryUnit]:
        await self.get_notification(notification_id)
        return await self.unit_repository.find_by_notification(notification_id)

    async def get_batch(self, batch_id: UUID) -> NotificationBatch:
        batch = await self.batch_repository.get_by_id(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    # =================================================================================
    # PREFERENCES AND STATS
    # =================================================================================

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        return await self.preference_resolver.get_preferences(user_id)

    async def update_preferences(
        self, user_id: str, changes: dict[str, Any]
    ) -> NotificationPreferences:
        """Partial update; fields not mentioned keep their values."""
        return await self.preference_resolver.update(user_id, changes, at=self.clock.now())

    async def get_stats(
        self,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        group_by: StatsGroupBy | str = StatsGroupBy.DAY,
        channel: NotificationChannel | str | None = None,
        notification_type: NotificationType | str | None = None,
    ) -> dict[str, Any]:
        return await self.tracker.aggregate(
            user_id=user_id,
            start=start,
            end=end,
            group_by=StatsGroupBy(group_by),
            channel=NotificationChannel(channel) if channel else None,
            notification_type=NotificationType(notification_type) if notification_type else None,
        )

    async def queue_stats(self) -> dict[str, Any]:
        return {
            "queues": {channel.value: queue.stats() for channel, queue in self.queues.items()},
            "dead_letters": await self.dead_letters.counts(),
            "workers_running": bool(self.worker_pool and self.worker_pool.is_running),
        }

    # =================================================================================
    # IN-APP INBOX
    # =================================================================================

    async def list_inbox(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_INBOX_PAGE_SIZE,
        unread_only: bool = False,
        notification_type: NotificationType | str | None = None,
    ) -> dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_INBOX_PAGE_SIZE)

        items = await self.inbox_repository.list_for_user(
            user_id,
            unread_only=unread_only,
            notification_type=NotificationType(notification_type) if notification_type else None,
        )
        offset = (page - 1) * limit

        return {
            "items": [item.to_dict() for item in items[offset : offset + limit]],
            "total": len(items),
            "page": page,
            "limit": limit,
            "unread_count": await self.unread_count(user_id),
        }

    async def unread_count(self, user_id: str) -> int:
        return len(await self.inbox_repository.list_for_user(user_id, unread_only=True))

    async def mark_read(self, user_id: str, item_id: UUID) -> InAppNotification:
        item = await self.inbox_repository.get(user_id, item_id)
        if item is None:
            raise InAppNotificationNotFoundError(item_id)
        if item.mark_read(self.clock.now()):
            await self.inbox_repository.save(item)
        return item

    async def mark_all_read(self, user_id: str) -> int:
        now = self.clock.now()
        marked = 0
        for item in await self.inbox_repository.list_for_user(user_id, unread_only=True):
            if item.mark_read(now):
                await self.inbox_repository.save(item)
                marked += 1
        return marked

    # =================================================================================
    # TEMPLATES
    # =================================================================================

    async def create_template(
        self,
        name: str,
        notification_type: NotificationType | str,
        channel: NotificationChannel | str,
        body: str,
        variables: list[str] | None = None,
        subject: str | None = None,
        description: str | None = None,
        preview_data: dict[str, Any] | None = None,
        created_by: str = "system",
        activate: bool = False,
    ) -> NotificationTemplate:
        """Create the next version of a (type, channel) template.

        Raises:
            ValidationError: If a field is invalid
            MalformedTemplateError: If a placeholder is unbalanced
        """
        notification_type = NotificationType(notification_type)
        channel = NotificationChannel(channel)
        versions = await self.template_repository.list_versions(notification_type, channel)

        template = NotificationTemplate(
            name=name,
            notification_type=notification_type,
            channel=channel,
            body=body,
            variables=variables,
            subject=subject,
            version=max((t.version_number for t in versions), default=0) + 1,
            created_by=created_by,
            description=description,
            preview_data=preview_data,
            created_at=self.clock.now(),
        )
        template.ensure_well_formed()
        await self.template_repository.save(template)

        logger.info(
            "Template version created",
            template_id=str(template.id),
            notification_type=notification_type.value,
            channel=channel.value,
            version=template.version_number,
        )

        if activate:
            return await self.activate_template(template.id)
        return template

    async def _get_template(self, template_id: UUID) -> NotificationTemplate:
        template = await self.template_repository.get_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    async def activate_template(self, template_id: UUID) -> NotificationTemplate:
        template = await self._get_template(template_id)
        previous = await self.template_repository.activate(template)

        self.renderer.invalidate(template)
        if previous is not None:
            self.renderer.invalidate(previous)
        self._log_events(template)

        logger.info(
            "Template activated",
            template_id=str(template.id),
            version=template.version_number,
            previous_id=str(previous.id) if previous else None,
        )
        return template

    async def list_template_versions(
        self, notification_type: NotificationType | str, channel: NotificationChannel | str
    ) -> list[NotificationTemplate]:
        return await self.template_repository.list_versions(
            NotificationType(notification_type), NotificationChannel(channel)
        )

    async def preview_template(
        self, template_id: UUID, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        template = await self._get_template(template_id)
        return self.renderer.preview(template, variables)

    # =================================================================================
    # CAMPAIGNS
    # =================================================================================

    async def create_campaign(
        self,
        name: str,
        notification_type: NotificationType | str,
        channels: list[NotificationChannel | str],
        audience: AudienceSpec,
        content: CampaignContent,
        schedule: CampaignSchedule | None = None,
        priority: NotificationPriority | str = NotificationPriority.LOW,
        description: str | None = None,
        created_by: str = "system",
    ) -> Campaign:
        campaign = Campaign(
            name=name,
            notification_type=NotificationType(notification_type),
            channels=[NotificationChannel(c) for c in channels],
            audience=audience,
            content=content,
            schedule=schedule,
            priority=NotificationPriority(priority),
            description=description,
            created_by=created_by,
            created_at=self.clock.now(),
        )
        await self.campaign_repository.save(campaign)
        logger.info("Campaign created", campaign_id=str(campaign.id), name=campaign.name)
        return campaign

    async def get_campaign(self, campaign_id: UUID) -> Campaign:
        campaign = await self.campaign_repository.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    async def launch_campaign(self, campaign_id: UUID) -> Campaign:
        """Schedule a draft campaign; an immediate one expands right away."""
        campaign = await self.get_campaign(campaign_id)
        now = self.clock.now()
        campaign.launch(now)
        await self.campaign_repository.save(campaign)

        logger.info(
            "Campaign launched",
            campaign_id=str(campaign.id),
            next_run_at=campaign.next_run_at.isoformat(),
        )

        if campaign.is_due(now):
            await self._run_campaign(campaign, now)
        return campaign

    async def cancel_campaign(self, campaign_id: UUID) -> Campaign:
        """Stop future expansions; notifications already enqueued still go out."""
        campaign = await self.get_campaign(campaign_id)
        campaign.cancel(self.clock.now())
        await self.campaign_repository.save(campaign)
        self._log_events(campaign)
        logger.info("Campaign cancelled", campaign_id=str(campaign.id))
        return campaign

    async def run_due_campaigns(self, now: datetime | None = None) -> list[CampaignRunResult]:
        """Expand every campaign whose next run is due."""
        now = now or self.clock.now()
        results = []
        for campaign in await self.campaign_repository.find_due(now):
            results.append(await self._run_campaign(campaign, now))
        return results

    async def _run_campaign(self, campaign: Campaign, now: datetime) -> CampaignRunResult:
        occurrence = campaign.begin_occurrence(now)
        await self.campaign_repository.save(campaign)

        recipients = enqueued = suppressed = rejected = 0

        async for notification in self.orchestrator.expand_campaign(campaign, now):
            if campaign.status == CampaignStatus.CANCELLED:
                break
            recipients += 1

            try:
                result = await self._enqueue(notification)
            except QueueSaturatedError:
                rejected += 1
                continue

            if result.status == NotificationStatus.QUEUED:
                enqueued += 1
            else:
                suppressed += 1

        campaign.finish_occurrence(self.clock.now(), recipients, enqueued, rejected)
        await self.campaign_repository.save(campaign)
        self._log_events(campaign)

        logger.info(
            "Campaign occurrence finished",
            campaign_id=str(campaign.id),
            occurrence=occurrence,
            recipients=recipients,
            enqueued=enqueued,
            suppressed=suppressed,
            rejected=rejected,
            status=campaign.status.value,
        )
        return CampaignRunResult(
            campaign_id=campaign.id,
            occurrence=occurrence,
            recipients=recipients,
            enqueued=enqueued,
            suppressed=suppressed,
            rejected=rejected,
        )
