"""Notification module dependency configuration.

Builds a fully wired ``NotificationDispatchService`` from settings. Every
collaborator can be replaced through keyword overrides, which is how tests
and embedding applications plug in their own stores, directory or clock.
"""

from herald.core.config import Settings, get_settings
from herald.core.logging import get_logger
from herald.modules.notification.application.services import (
    BatchOrchestrator,
    DeliveryTracker,
    DispatchScheduler,
    FrequencyGuard,
    NotificationDispatchService,
    PreferenceResolver,
    RetryController,
    TemplateRenderer,
)
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.interfaces.repositories import (
    ICampaignRepository,
    IDeadLetterStore,
    IDeliveryHistoryRepository,
    IDeliveryUnitRepository,
    IInAppNotificationRepository,
    INotificationBatchRepository,
    INotificationRepository,
    INotificationTemplateRepository,
    IPreferenceRepository,
)
from herald.modules.notification.domain.interfaces.services import (
    IChannelSender,
    IClock,
    ITemplateEngine,
    IUserDirectory,
)
from herald.modules.notification.domain.value_objects import QueueConfig, RetryPolicy
from herald.modules.notification.infrastructure.adapters import (
    EmailChannelSender,
    HttpRelayClient,
    InAppChannelSender,
    LoggingChannelSender,
    PushChannelSender,
    SmsChannelSender,
    WebhookChannelSender,
)
from herald.modules.notification.infrastructure.clock import SystemClock
from herald.modules.notification.infrastructure.engines import JinjaTemplateEngine
from herald.modules.notification.infrastructure.repositories import (
    InMemoryCampaignRepository,
    InMemoryDeadLetterStore,
    InMemoryDeliveryHistoryRepository,
    InMemoryDeliveryUnitRepository,
    InMemoryInAppNotificationRepository,
    InMemoryNotificationBatchRepository,
    InMemoryNotificationRepository,
    InMemoryNotificationTemplateRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
)
from herald.modules.notification.infrastructure.security import WebhookSigner
from herald.modules.notification.infrastructure.services import (
    CampaignTickScheduler,
    ChannelWorkerPool,
    build_queues,
)

logger = get_logger(__name__)


def build_queue_configs(settings: Settings) -> dict[NotificationChannel, QueueConfig]:
    """One QueueConfig per channel from the dispatch settings."""
    dispatch = settings.dispatch
    configs = {}
    for name, channel_settings in dispatch.channels.items():
        channel = NotificationChannel(name)
        configs[channel] = QueueConfig(
            channel=channel,
            max_concurrency=channel_settings.max_concurrency,
            retry_policy=RetryPolicy(
                max_retries=channel_settings.max_retries,
                initial_delay_seconds=channel_settings.initial_delay_seconds,
                backoff_multiplier=channel_settings.backoff_multiplier,
                max_delay_seconds=channel_settings.max_delay_seconds,
            ),
            send_timeout_seconds=channel_settings.send_timeout_seconds,
            dead_letter_queue=channel_settings.dead_letter_queue,
            max_depth=dispatch.queue_max_depth,
        )
    return configs


def build_senders(
    settings: Settings,
    user_directory: IUserDirectory,
    preference_repository: IPreferenceRepository,
    inbox_repository: IInAppNotificationRepository,
    clock: IClock,
) -> dict[NotificationChannel, IChannelSender]:
    """
    Channel senders for the configured providers.

    Email, SMS and push fall back to a logging sender when their relay URL is
    not configured; in-app and webhook delivery need no provider.
    """
    providers = settings.providers
    dispatch = settings.dispatch
    senders: dict[NotificationChannel, IChannelSender] = {}

    def timeout(channel: NotificationChannel) -> float:
        return dispatch.channels[channel.value].send_timeout_seconds

    if providers.email_api_url:
        senders[NotificationChannel.EMAIL] = EmailChannelSender(
            HttpRelayClient(
                "email",
                providers.email_api_url,
                providers.email_api_key,
                timeout=timeout(NotificationChannel.EMAIL),
            ),
            user_directory,
            from_address=providers.email_from_address,
        )
    else:
        senders[NotificationChannel.EMAIL] = LoggingChannelSender(
            NotificationChannel.EMAIL, user_directory
        )

    if providers.sms_api_url:
        senders[NotificationChannel.SMS] = SmsChannelSender(
            HttpRelayClient(
                "sms",
                providers.sms_api_url,
                providers.sms_api_key,
                timeout=timeout(NotificationChannel.SMS),
            ),
            user_directory,
            from_number=providers.sms_from_number,
        )
    else:
        senders[NotificationChannel.SMS] = LoggingChannelSender(
            NotificationChannel.SMS, user_directory
        )

    if providers.push_api_url:
        senders[NotificationChannel.PUSH] = PushChannelSender(
            HttpRelayClient(
                "push",
                providers.push_api_url,
                providers.push_api_key,
                timeout=timeout(NotificationChannel.PUSH),
            ),
            user_directory,
        )
    else:
        senders[NotificationChannel.PUSH] = LoggingChannelSender(
            NotificationChannel.PUSH, user_directory
        )

    senders[NotificationChannel.IN_APP] = InAppChannelSender(inbox_repository, clock)
    senders[NotificationChannel.WEBHOOK] = WebhookChannelSender(
        preference_repository,
        HttpRelayClient("webhook", timeout=dispatch.webhook_timeout_seconds),
        WebhookSigner(dispatch.webhook_signature_header),
    )

    logger.info(
        "Channel senders configured",
        senders={channel.value: type(sender).__name__ for channel, sender in senders.items()},
    )
    return senders


def build_dispatch_service(
    settings: Settings | None = None,
    *,
    clock: IClock | None = None,
    user_directory: IUserDirectory | None = None,
    notification_repository: INotificationRepository | None = None,
    unit_repository: IDeliveryUnitRepository | None = None,
    preference_repository: IPreferenceRepository | None = None,
    template_repository: INotificationTemplateRepository | None = None,
    history_repository: IDeliveryHistoryRepository | None = None,
    dead_letters: IDeadLetterStore | None = None,
    inbox_repository: IInAppNotificationRepository | None = None,
    campaign_repository: ICampaignRepository | None = None,
    batch_repository: INotificationBatchRepository | None = None,
    template_engine: ITemplateEngine | None = None,
    senders: dict[NotificationChannel, IChannelSender] | None = None,
    queue_configs: dict[NotificationChannel, QueueConfig] | None = None,
    retry_jitter_ratio: float = 0.2,
) -> NotificationDispatchService:
    """
    Wire the dispatch pipeline.

    Args:
        settings: Settings to read, ``get_settings()`` when omitted
        clock: Time source, system clock by default
        senders: Channel senders; entries given here replace the configured ones
        queue_configs: Per-channel policies; replaces those built from settings
        retry_jitter_ratio: Relative jitter applied to retry delays

    Returns:
        Service ready to accept sends; call ``start()`` to run the workers

    Raises:
        ConfigurationError: If the settings are invalid
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()
    if user_directory is None:
        user_directory = InMemoryUserDirectory()
    if notification_repository is None:
        notification_repository = InMemoryNotificationRepository()
    if unit_repository is None:
        unit_repository = InMemoryDeliveryUnitRepository()
    if preference_repository is None:
        preference_repository = InMemoryPreferenceRepository()
    if template_repository is None:
        template_repository = InMemoryNotificationTemplateRepository()
    if history_repository is None:
        history_repository = InMemoryDeliveryHistoryRepository()
    if dead_letters is None:
        dead_letters = InMemoryDeadLetterStore()
    if inbox_repository is None:
        inbox_repository = InMemoryInAppNotificationRepository()
    if campaign_repository is None:
        campaign_repository = InMemoryCampaignRepository()
    if batch_repository is None:
        batch_repository = InMemoryNotificationBatchRepository()
    if template_engine is None:
        template_engine = JinjaTemplateEngine()

    channel_senders = build_senders(
        settings, user_directory, preference_repository, inbox_repository, clock
    )
    channel_senders.update(senders or {})

    queues = build_queues(queue_configs or build_queue_configs(settings))
    tracker = DeliveryTracker(history_repository, clock)
    retry_controller = RetryController(
        tracker, dead_letters, clock, jitter_ratio=retry_jitter_ratio
    )
    scheduler = DispatchScheduler(
        queues,
        channel_senders,
        unit_repository,
        notification_repository,
        retry_controller,
        tracker,
        clock,
    )
    worker_pool = ChannelWorkerPool(
        queues,
        scheduler.process,
        clock,
        tick_interval_seconds=settings.dispatch.tick_interval_seconds,
    )

    service = NotificationDispatchService(
        notification_repository=notification_repository,
        unit_repository=unit_repository,
        template_repository=template_repository,
        inbox_repository=inbox_repository,
        campaign_repository=campaign_repository,
        batch_repository=batch_repository,
        dead_letters=dead_letters,
        preference_resolver=PreferenceResolver(preference_repository),
        frequency_guard=FrequencyGuard(notification_repository),
        renderer=TemplateRenderer(template_repository, template_engine),
        queues=queues,
        scheduler=scheduler,
        tracker=tracker,
        orchestrator=BatchOrchestrator(user_directory),
        clock=clock,
        worker_pool=worker_pool,
    )
    service.campaign_scheduler = CampaignTickScheduler(
        service.run_due_campaigns, interval_seconds=settings.dispatch.campaign_tick_seconds
    )

    logger.info(
        "Dispatch service wired",
        channels=[channel.value for channel in queues],
        queue_max_depth=settings.dispatch.queue_max_depth,
    )
    return service
