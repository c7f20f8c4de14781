"""Template selection, rendering and per-channel content shaping."""

from typing import Any

from herald.core.logging import get_logger
from herald.modules.notification.domain.aggregates.notification_template import (
    NotificationTemplate,
)
from herald.modules.notification.domain.entities.notification import Notification
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.errors import TemplateError
from herald.modules.notification.domain.interfaces.repositories import (
    INotificationTemplateRepository,
)
from herald.modules.notification.domain.interfaces.services import ITemplateEngine
from herald.modules.notification.domain.value_objects import RenderedContent

logger = get_logger(__name__)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class TemplateRenderer:
    """
    Renders notification content for one channel.

    The active template of the (type, channel) pair is used when there is
    one. Only variables the template declares are passed to it, so any other
    placeholder stays literally in the output. Missing templates, malformed
    templates and render failures all degrade to plain text built from the
    notification's title and message.
    """

    def __init__(
        self,
        template_repository: INotificationTemplateRepository,
        engine: ITemplateEngine,
    ):
        self.template_repository = template_repository
        self.engine = engine

    async def render(
        self, notification: Notification, channel: NotificationChannel
    ) -> RenderedContent:
        template = await self.template_repository.get_active(
            notification.notification_type, channel
        )
        if template is None:
            return self.fallback(notification, channel)

        try:
            template.ensure_well_formed()
            return self._render_template(template, notification, channel)
        except TemplateError as e:
            logger.warning(
                "Template unusable, falling back to plain text",
                template_id=str(template.id),
                template_version=template.version_number,
                notification_id=str(notification.id),
                channel=channel.value,
                error=e.message,
            )
            return self.fallback(notification, channel)

    @staticmethod
    def whitelist(template: NotificationTemplate, variables: dict[str, Any]) -> dict[str, Any]:
        return {name: variables[name] for name in template.variables if name in variables}

    def _render_template(
        self,
        template: NotificationTemplate,
        notification: Notification,
        channel: NotificationChannel,
    ) -> RenderedContent:
        context = self.whitelist(template, notification.template_variables())
        subject, body = self._render_parts(template, context)

        return self._shape(
            notification,
            channel,
            subject=subject or notification.title,
            body=body,
            template=template,
        )

    def _render_parts(
        self, template: NotificationTemplate, context: dict[str, Any]
    ) -> tuple[str | None, str]:
        subject = None
        if template.subject:
            subject = self.engine.render(
                template.subject, context, cache_key=f"{template.cache_key}:subject"
            )
        body = self.engine.render(
            template.body,
            context,
            cache_key=f"{template.cache_key}:body",
            html=template.channel == NotificationChannel.EMAIL,
        )
        return subject, body

    def fallback(
        self, notification: Notification, channel: NotificationChannel
    ) -> RenderedContent:
        """Plain-text content from title and message."""
        body = notification.message
        if channel == NotificationChannel.SMS:
            body = f"{notification.title}: {notification.message}"
        return self._shape(notification, channel, subject=notification.title, body=body)

    def _shape(
        self,
        notification: Notification,
        channel: NotificationChannel,
        subject: str,
        body: str,
        template: NotificationTemplate | None = None,
    ) -> RenderedContent:
        is_fallback = template is None
        common = {
            "channel": channel,
            "template_id": template.id if template else None,
            "template_version": template.version_number if template else None,
            "is_fallback": is_fallback,
        }

        if channel == NotificationChannel.EMAIL:
            if is_fallback:
                return RenderedContent(subject=subject, body=body, text_body=body, **common)
            return RenderedContent(
                subject=subject,
                body=body,
                html_body=body,
                text_body=self.engine.to_plain_text(body),
                **common,
            )

        if channel == NotificationChannel.SMS:
            return RenderedContent(body=truncate(body, channel.max_content_length()), **common)

        if channel == NotificationChannel.PUSH:
            push_body = truncate(body, channel.max_content_length())
            payload = {
                "title": subject,
                "body": push_body,
                "data": notification.data,
                "badge": notification.badge,
                "sound": notification.sound or "default",
                "image_url": notification.image_url,
                "action_url": notification.action_url,
            }
            return RenderedContent(subject=subject, body=push_body, payload=payload, **common)

        if channel == NotificationChannel.IN_APP:
            payload = {
                "title": subject,
                "message": body,
                "data": notification.data,
                "action_url": notification.action_url,
                "image_url": notification.image_url,
                "category": notification.category,
                "tags": notification.tags,
            }
            return RenderedContent(subject=subject, body=body, payload=payload, **common)

        payload = {
            "id": str(notification.id),
            "type": notification.notification_type.value,
            "userId": notification.user_id,
            "title": subject,
            "message": body,
            "data": notification.data,
            "timestamp": notification.created_at.isoformat(),
        }
        return RenderedContent(subject=subject, body=body, payload=payload, **common)

    def preview(
        self, template: NotificationTemplate, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Render a template with sample data.

        Raises:
            MalformedTemplateError: If the template is malformed
            TemplateError: If rendering fails
        """
        template.ensure_well_formed()
        sample = template.sample_variables()
        sample.update(variables or {})
        subject, body = self._render_parts(template, self.whitelist(template, sample))

        preview = {
            "template_id": str(template.id),
            "version": template.version_number,
            "channel": template.channel.value,
            "subject": subject,
            "body": body,
        }
        if template.channel == NotificationChannel.EMAIL:
            preview["text_body"] = self.engine.to_plain_text(body)
        return preview

    def invalidate(self, template: NotificationTemplate) -> None:
        self.engine.invalidate(str(template.id))
