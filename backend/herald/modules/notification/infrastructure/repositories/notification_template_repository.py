"""In-memory template repository with the platform's default templates."""

from uuid import UUID

from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)
from herald.modules.notification.domain.enums import NotificationChannel, NotificationType
from herald.modules.notification.domain.interfaces.repositories import (
    INotificationTemplateRepository,
)

WELCOME_EMAIL_BODY = """\
<h1>Welcome {{ first_name }}!</h1>
<p>Thank you for joining our real estate platform. We're excited to help you find your dream property.</p>
<p>Get started by exploring our latest listings or setting up your property preferences.</p>
<a href="{{ platform_url }}/dashboard">Go to Dashboard</a>
"""

PROPERTY_INQUIRY_EMAIL_BODY = """\
<h2>New Property Inquiry</h2>
<p>You have received a new inquiry for your property: <strong>{{ property_title }}</strong></p>
<p><strong>From:</strong> {{ inquirer_name }} ({{ inquirer_email }})</p>
<p><strong>Phone:</strong> {{ inquirer_phone }}</p>
<p><strong>Message:</strong></p>
<p>{{ inquiry_message }}</p>
<a href="{{ property_url }}">View Property</a>
"""

ACCOUNT_VERIFICATION_EMAIL_BODY = """\
<h1>Verify Your Email Address</h1>
<p>Thank you for registering! Please verify your email address to complete your registration:</p>
<p><a href="{{ verification_url }}">Verify Email Address</a></p>
<p>If the link doesn't work, copy this address into your browser: {{ verification_url }}</p>
<p>This verification link expires in 24 hours.</p>
"""


def default_templates() -> list[NotificationTemplate]:
    """Active version 1 templates every installation starts with."""
    return [
        NotificationTemplate(
            name="welcome-email",
            notification_type=NotificationType.WELCOME,
            channel=NotificationChannel.EMAIL,
            subject="Welcome to {{ app_name }}!",
            body=WELCOME_EMAIL_BODY,
            variables=["app_name", "first_name", "platform_url"],
            is_active=True,
            preview_data={
                "app_name": "Herald",
                "first_name": "Ada",
                "platform_url": "https://example.com",
            },
        ),
        NotificationTemplate(
            name="property-inquiry-email",
            notification_type=NotificationType.PROPERTY_INQUIRY,
            channel=NotificationChannel.EMAIL,
            subject="New Inquiry for {{ property_title }}",
            body=PROPERTY_INQUIRY_EMAIL_BODY,
            variables=[
                "property_title",
                "inquirer_name",
                "inquirer_email",
                "inquirer_phone",
                "inquiry_message",
                "property_url",
            ],
            is_active=True,
        ),
        NotificationTemplate(
            name="account-verification-email",
            notification_type=NotificationType.ACCOUNT_VERIFICATION,
            channel=NotificationChannel.EMAIL,
            subject="Verify Your Email Address",
            body=ACCOUNT_VERIFICATION_EMAIL_BODY,
            variables=["verification_url"],
            is_active=True,
        ),
    ]


class InMemoryNotificationTemplateRepository(INotificationTemplateRepository):
    """Template versions kept in insertion order."""

    def __init__(self, seed_defaults: bool = True):
        self._items: dict[UUID, NotificationTemplate] = {}
        if seed_defaults:
            for template in default_templates():
                self._items[template.id] = template

    def _pair(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> list[NotificationTemplate]:
        return [t for t in self._items.values() if t.key == (notification_type, channel)]

    async def save(self, template: NotificationTemplate) -> None:
        self._items[template.id] = template

    async def get_by_id(self, template_id: UUID) -> NotificationTemplate | None:
        return self._items.get(template_id)

    async def get_active(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        for template in self._pair(notification_type, channel):
            if template.is_active:
                return template
        return None

    async def list_versions(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> list[NotificationTemplate]:
        return sorted(self._pair(notification_type, channel), key=lambda t: t.version_number)

    async def list_all(
        self,
        notification_type: NotificationType | None = None,
        channel: NotificationChannel | None = None,
        active_only: bool = False,
    ) -> list[NotificationTemplate]:
        return [
            t
            for t in self._items.values()
            if (notification_type is None or t.notification_type == notification_type)
            and (channel is None or t.channel == channel)
            and (not active_only or t.is_active)
        ]

    async def activate(self, template: NotificationTemplate) -> NotificationTemplate | None:
        previous = await self.get_active(template.notification_type, template.channel)
        if previous is not None and previous.id != template.id:
            previous.deactivate()
        else:
            previous = None
        template.activate()
        self._items[template.id] = template
        return previous
