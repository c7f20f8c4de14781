"""Per-user notification preferences.

A channel is enabled for a notification type only when none of the global
toggle, the category override or the type override explicitly disables it.
Channels missing from every level are enabled.
"""

from datetime import datetime
from typing import Any

from herald.core.domain.base import Entity
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import (
    DigestFrequency,
    MarketingFrequency,
    NotificationCategory,
    NotificationChannel,
    NotificationType,
)
from herald.modules.notification.domain.value_objects import FrequencySettings, QuietHours

ChannelToggles = dict[NotificationChannel, bool]

UPDATABLE_FIELDS = frozenset(
    {
        "channels",
        "types",
        "categories",
        "quiet_hours",
        "frequency",
        "language",
        "webhook_url",
        "webhook_secret",
    }
)


def _parse_toggles(raw: dict[Any, Any], field_name: str) -> ChannelToggles:
    toggles: ChannelToggles = {}
    for key, value in raw.items():
        try:
            channel = NotificationChannel(key)
        except ValueError as e:
            raise ValidationError(f"Unknown channel: {key}", field=field_name) from e
        if value is not None:
            toggles[channel] = bool(value)
    return toggles


class NotificationPreferences(Entity):
    """Delivery preferences document of one user."""

    def __init__(
        self,
        user_id: str,
        channels: ChannelToggles | None = None,
        type_overrides: dict[NotificationType, ChannelToggles] | None = None,
        category_overrides: dict[NotificationCategory, ChannelToggles] | None = None,
        quiet_hours: QuietHours | None = None,
        frequency: FrequencySettings | None = None,
        language: str = "en",
        webhook_url: str | None = None,
        webhook_secret: str | None = None,
        created_at: datetime | None = None,
    ):
        super().__init__(created_at=created_at)
        if not user_id:
            raise ValidationError("user_id is required", field="user_id")

        self.user_id = user_id
        self.channels: ChannelToggles = dict(channels or {})
        self.type_overrides = {k: dict(v) for k, v in (type_overrides or {}).items()}
        self.category_overrides = {
            k: dict(v) for k, v in (category_overrides or {}).items()
        }
        self.quiet_hours = quiet_hours
        self.frequency = frequency or FrequencySettings()
        self.language = language
        self.webhook_url = webhook_url
        self.webhook_secret = webhook_secret

    @classmethod
    def default(cls, user_id: str) -> "NotificationPreferences":
        """Preferences of a user who never saved any: everything enabled."""
        return cls(user_id=user_id, channels={channel: True for channel in NotificationChannel})

    def is_channel_enabled(
        self, channel: NotificationChannel, notification_type: NotificationType
    ) -> bool:
        if self.channels.get(channel) is False:
            return False
        category = self.category_overrides.get(notification_type.category, {})
        if category.get(channel) is False:
            return False
        type_override = self.type_overrides.get(notification_type, {})
        return type_override.get(channel) is not False

    def enabled_channels(
        self,
        notification_type: NotificationType,
        requested: list[NotificationChannel] | frozenset[NotificationChannel],
    ) -> frozenset[NotificationChannel]:
        return frozenset(
            channel for channel in requested if self.is_channel_enabled(channel, notification_type)
        )

    def apply_update(self, changes: dict[str, Any], at: datetime | None = None) -> None:
        """Merge a partial update; fields not mentioned keep their values.

        Raises:
            ValidationError: On unknown fields or invalid values
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown preference fields: {', '.join(sorted(unknown))}",
                field="preferences",
            )

        if changes.get("channels") is not None:
            self.channels.update(_parse_toggles(changes["channels"], "channels"))

        for key, raw in (changes.get("types") or {}).items():
            try:
                notification_type = NotificationType(key)
            except ValueError as e:
                raise ValidationError(f"Unknown notification type: {key}", field="types") from e
            merged = self.type_overrides.setdefault(notification_type, {})
            merged.update(_parse_toggles(raw, "types"))

        for key, raw in (changes.get("categories") or {}).items():
            try:
                category = NotificationCategory(key)
            except ValueError as e:
                raise ValidationError(f"Unknown category: {key}", field="categories") from e
            merged = self.category_overrides.setdefault(category, {})
            merged.update(_parse_toggles(raw, "categories"))

        if changes.get("quiet_hours") is not None:
            self.quiet_hours = self._merge_quiet_hours(changes["quiet_hours"])

        if changes.get("frequency") is not None:
            self.frequency = self._merge_frequency(changes["frequency"])

        for scalar in ("language", "webhook_url", "webhook_secret"):
            if changes.get(scalar) is not None:
                setattr(self, scalar, changes[scalar])

        self.mark_modified(at)

    def _merge_quiet_hours(self, raw: dict[str, Any]) -> QuietHours:
        current = self.quiet_hours.to_dict() if self.quiet_hours else {
            "enabled": True,
            "start": "22:00",
            "end": "08:00",
            "timezone": "UTC",
            "days": list(range(7)),
        }
        current.update({k: v for k, v in raw.items() if v is not None})
        return QuietHours(
            start=current["start"],
            end=current["end"],
            timezone=current["timezone"],
            days=current["days"],
            enabled=current["enabled"],
        )

    def _merge_frequency(self, raw: dict[str, Any]) -> FrequencySettings:
        try:
            return FrequencySettings(
                digest=DigestFrequency(raw.get("digest") or self.frequency.digest),
                marketing=MarketingFrequency(raw.get("marketing") or self.frequency.marketing),
                reminders=self.frequency.reminders
                if raw.get("reminders") is None
                else raw["reminders"],
            )
        except ValueError as e:
            raise ValidationError(str(e), field="frequency") from e

    def to_dict(self, include_secret: bool = False) -> dict[str, Any]:
        data = {
            "user_id": self.user_id,
            "channels": {c.value: v for c, v in self.channels.items()},
            "types": {
                t.value: {c.value: v for c, v in toggles.items()}
                for t, toggles in self.type_overrides.items()
            },
            "categories": {
                cat.value: {c.value: v for c, v in toggles.items()}
                for cat, toggles in self.category_overrides.items()
            },
            "quiet_hours": self.quiet_hours.to_dict() if self.quiet_hours else None,
            "frequency": self.frequency.to_dict(),
            "language": self.language,
            "webhook_url": self.webhook_url,
            "has_webhook_secret": bool(self.webhook_secret),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_secret:
            data["webhook_secret"] = self.webhook_secret
        return data

    def __str__(self) -> str:
        return f"NotificationPreferences({self.user_id})"
