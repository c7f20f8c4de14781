"""Platform event handlers.

Translate business events raised elsewhere on the platform into
notifications. Event payloads are plain dictionaries with snake_case keys;
the whole payload is attached as notification data so templates can use it.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from herald.core.errors import ValidationError
from herald.core.logging import get_logger
from herald.modules.notification.application.dto import SendNotificationRequest, SendResult
from herald.modules.notification.application.services.dispatch_service import (
    NotificationDispatchService,
)
from herald.modules.notification.domain.enums import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)

logger = get_logger(__name__)

EMAIL = NotificationChannel.EMAIL
SMS = NotificationChannel.SMS
PUSH = NotificationChannel.PUSH
IN_APP = NotificationChannel.IN_APP

PROPERTY_INQUIRY = "property.inquiry"
PROPERTY_APPROVED = "property.approved"
PROPERTY_REJECTED = "property.rejected"
USER_REGISTERED = "user.registered"
USER_VERIFIED = "user.verified"
APPOINTMENT_SCHEDULED = "appointment.scheduled"
APPOINTMENT_REMINDER = "appointment.reminder"


def _require(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value in (None, ""):
        raise ValidationError(f"Event payload is missing '{key}'", field=key)
    return value


class NotificationEventHandlers:
    """Maps platform events to notifications."""

    def __init__(self, service: NotificationDispatchService):
        self.service = service
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[list[SendResult]]]] = {
            PROPERTY_INQUIRY: self.handle_property_inquiry,
            PROPERTY_APPROVED: self.handle_property_approved,
            PROPERTY_REJECTED: self.handle_property_rejected,
            USER_REGISTERED: self.handle_user_registered,
            USER_VERIFIED: self.handle_user_verified,
            APPOINTMENT_SCHEDULED: self.handle_appointment_scheduled,
            APPOINTMENT_REMINDER: self.handle_appointment_reminder,
        }

    @property
    def event_names(self) -> list[str]:
        return list(self._handlers)

    async def handle(self, event_name: str, data: dict[str, Any]) -> list[SendResult]:
        """
        Dispatch an event to its handler.

        Args:
            event_name: Dotted event name, e.g. ``property.inquiry``
            data: Event payload

        Returns:
            One result per notification sent; empty for unknown events
        """
        handler = self._handlers.get(event_name)
        if handler is None:
            logger.debug("No notification handler for event", event_name=event_name)
            return []

        results = await handler(data)
        logger.info(
            "Platform event handled",
            event_name=event_name,
            notifications=[str(r.notification_id) for r in results],
        )
        return results

    async def _send(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any],
        channels: list[NotificationChannel],
        priority: NotificationPriority,
    ) -> SendResult:
        return await self.service.send(
            SendNotificationRequest(
                user_id=str(user_id),
                notification_type=notification_type,
                title=title,
                message=message,
                channels=channels,
                priority=priority,
                data=dict(data),
            )
        )

    async def handle_property_inquiry(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "agent_id"),
                NotificationType.PROPERTY_INQUIRY,
                "New Property Inquiry",
                f"You have a new inquiry for {_require(data, 'property_title')}",
                data,
                [EMAIL, IN_APP, PUSH],
                NotificationPriority.HIGH,
            )
        ]

    async def handle_user_registered(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "user_id"),
                NotificationType.WELCOME,
                "Welcome to the platform!",
                "Thank you for joining us. Start exploring properties now!",
                data,
                [EMAIL, IN_APP],
                NotificationPriority.NORMAL,
            )
        ]

    async def handle_appointment_scheduled(self, data: dict[str, Any]) -> list[SendResult]:
        """Notify the agent and confirm to the client."""
        property_title = _require(data, "property_title")
        appointment_date = _require(data, "appointment_date")

        agent = await self._send(
            _require(data, "agent_id"),
            NotificationType.APPOINTMENT_SCHEDULED,
            "New Appointment Scheduled",
            f"Appointment scheduled for {property_title} on {appointment_date}",
            data,
            [EMAIL, SMS, IN_APP],
            NotificationPriority.HIGH,
        )
        client = await self._send(
            _require(data, "client_id"),
            NotificationType.APPOINTMENT_SCHEDULED,
            "Appointment Confirmed",
            f"Your appointment for {property_title} is confirmed for {appointment_date}",
            data,
            [EMAIL, IN_APP],
            NotificationPriority.NORMAL,
        )
        return [agent, client]

    async def handle_property_approved(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "agent_id"),
                NotificationType.PROPERTY_APPROVED,
                "Property Approved",
                f'Your property "{_require(data, "property_title")}" has been approved '
                "and is now live!",
                data,
                [EMAIL, IN_APP, PUSH],
                NotificationPriority.NORMAL,
            )
        ]

    async def handle_property_rejected(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "agent_id"),
                NotificationType.PROPERTY_REJECTED,
                "Property Needs Review",
                f'Your property "{_require(data, "property_title")}" needs some updates '
                "before approval.",
                data,
                [EMAIL, IN_APP],
                NotificationPriority.NORMAL,
            )
        ]

    async def handle_appointment_reminder(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "user_id"),
                NotificationType.APPOINTMENT_REMINDER,
                "Appointment Reminder",
                f"Reminder: You have an appointment for {_require(data, 'property_title')} "
                f"in {_require(data, 'time_until')}",
                data,
                [SMS, PUSH],
                NotificationPriority.HIGH,
            )
        ]

    async def handle_user_verified(self, data: dict[str, Any]) -> list[SendResult]:
        return [
            await self._send(
                _require(data, "user_id"),
                NotificationType.ACCOUNT_VERIFIED,
                "Account Verified",
                "Your account has been successfully verified. You can now access all features!",
                data,
                [EMAIL, IN_APP],
                NotificationPriority.NORMAL,
            )
        ]
