"""Notification domain errors.

This module contains domain-specific exceptions for the notification module.
Only validation, saturation and lookup errors surface to callers; transport
and template errors are contained by the dispatch pipeline and turned into
recorded outcomes or fallbacks.
"""

from typing import Any
from uuid import UUID

from herald.core.errors import (
    DomainError,
    InfrastructureError,
    NotFoundError,
    ResourceExhaustedError,
    ValidationError,
)


class NotificationError(DomainError):
    """Base error for notification domain."""

    default_code = "NOTIFICATION_ERROR"


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found."""

    def __init__(self, notification_id: UUID, **kwargs):
        super().__init__(resource="Notification", identifier=notification_id, **kwargs)


class TemplateNotFoundError(NotFoundError):
    """Raised when a notification template is not found."""

    def __init__(self, template_id: Any, **kwargs):
        super().__init__(
            resource="NotificationTemplate", identifier=template_id, **kwargs
        )


class CampaignNotFoundError(NotFoundError):
    """Raised when a campaign is not found."""

    def __init__(self, campaign_id: UUID, **kwargs):
        super().__init__(resource="Campaign", identifier=campaign_id, **kwargs)


class BatchNotFoundError(NotFoundError):
    def __init__(self, batch_id: UUID, **kwargs):
        super().__init__(resource="NotificationBatch", identifier=batch_id, **kwargs)


class InAppNotificationNotFoundError(NotFoundError):
    def __init__(self, item_id: UUID, **kwargs):
        super().__init__(resource="InAppNotification", identifier=item_id, **kwargs)


class InvalidStatusTransitionError(NotificationError):
    """Raised when a lifecycle transition is not allowed."""

    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: Any, requested: Any, **kwargs):
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        super().__init__(
            message=f"{entity} cannot transition from {current_value} to {requested_value}",
            details={
                "entity": entity,
                "current_status": current_value,
                "requested_status": requested_value,
            },
            **kwargs,
        )


class PreferenceLookupError(NotificationError):
    """Raised by a preference store that cannot be read.

    The resolver treats it as non-fatal and falls back to the requested channels.
    """

    default_code = "PREFERENCE_LOOKUP_FAILED"

    def __init__(self, user_id: str, reason: str, **kwargs):
        super().__init__(
            message=f"Could not load preferences for user {user_id}: {reason}",
            details={"user_id": user_id, "reason": reason},
            **kwargs,
        )


class TemplateError(NotificationError):
    """Base error for template authoring and rendering problems."""

    default_code = "TEMPLATE_ERROR"


class MalformedTemplateError(TemplateError):
    """Raised when a template body is structurally invalid."""

    default_code = "MALFORMED_TEMPLATE"

    def __init__(
        self,
        reason: str,
        template_id: UUID | None = None,
        template_name: str | None = None,
        **kwargs,
    ):
        message = "Malformed template"
        if template_name:
            message += f" '{template_name}'"
        elif template_id:
            message += f" {template_id}"
        message += f": {reason}"

        super().__init__(
            message=message,
            details={
                "template_id": str(template_id) if template_id else None,
                "template_name": template_name,
                "reason": reason,
            },
            **kwargs,
        )


class TransportError(InfrastructureError):
    """Raised by a transport client when an outbound send attempt fails.

    ``is_retryable`` tells the sender how to classify the outcome; the sender
    never raises it further.
    """

    default_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        channel: str,
        reason: str,
        is_retryable: bool = True,
        status_code: int | None = None,
        **kwargs,
    ):
        super().__init__(
            message=f"{channel} transport failed: {reason}",
            details={
                "channel": channel,
                "reason": reason,
                "response_status": status_code,
            },
            **kwargs,
        )
        self.channel = channel
        self.reason = reason
        self.is_retryable = is_retryable
        self.retryable = is_retryable
        self.response_status = status_code

    @classmethod
    def from_status(cls, channel: str, status_code: int, body: str = "") -> "TransportError":
        """Classify an HTTP response status: 429 and 5xx are retryable, other 4xx are not."""
        retryable = status_code == 429 or status_code >= 500
        reason = f"HTTP {status_code}"
        if body:
            reason += f": {body[:200]}"
        return cls(channel, reason, is_retryable=retryable, status_code=status_code)


class QueueSaturatedError(ResourceExhaustedError):
    """Raised when a channel queue is at its depth bound."""

    default_code = "QUEUE_SATURATED"

    def __init__(self, channel: str, depth: int, max_depth: int, **kwargs):
        super().__init__(
            resource=f"{channel} dispatch queue",
            message=f"Queue for channel {channel} is saturated ({depth}/{max_depth})",
            **kwargs,
        )
        self.channel = channel
        self.details.update({"channel": channel, "depth": depth, "max_depth": max_depth})


class TooManyItemsError(ValidationError):
    """Raised when a bulk request exceeds the item cap."""

    def __init__(self, count: int, limit: int, **kwargs):
        super().__init__(
            f"Bulk request contains {count} items, limit is {limit}",
            field="notifications",
            **kwargs,
        )
        self.code = "TOO_MANY_ITEMS"
        self.details.update({"count": count, "limit": limit})


__all__ = [
    "BatchNotFoundError",
    "CampaignNotFoundError",
    "InAppNotificationNotFoundError",
    "InvalidStatusTransitionError",
    "MalformedTemplateError",
    "NotificationError",
    "NotificationNotFoundError",
    "PreferenceLookupError",
    "QueueSaturatedError",
    "TemplateError",
    "TemplateNotFoundError",
    "TooManyItemsError",
    "TransportError",
]
