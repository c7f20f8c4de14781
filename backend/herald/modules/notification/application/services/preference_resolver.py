"""Preference resolution with a read-through cache."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from herald.core.logging import get_logger
from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)
from herald.modules.notification.domain.enums import NotificationChannel, NotificationType
from herald.modules.notification.domain.errors import PreferenceLookupError
from herald.modules.notification.domain.interfaces.repositories import IPreferenceRepository
from herald.modules.notification.domain.value_objects import ResolvedPreferences

logger = get_logger(__name__)


class PreferenceResolver:
    """
    Intersects requested channels with what a user allows.

    Resolution fails open: an unknown user or an unreadable preference store
    yields the full requested channel set and a warning, never an error.
    Preferences are cached per user and invalidated on update.
    """

    def __init__(self, preference_repository: IPreferenceRepository):
        self.preference_repository = preference_repository
        self._cache: dict[str, NotificationPreferences] = {}

    async def _load(self, user_id: str) -> NotificationPreferences | None:
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        preferences = await self.preference_repository.get(user_id)
        if preferences is not None:
            self._cache[user_id] = preferences
        return preferences

    async def resolve(
        self,
        user_id: str,
        notification_type: NotificationType,
        requested: Iterable[NotificationChannel],
    ) -> ResolvedPreferences:
        """Resolve the channels, quiet hours and frequency caps to apply.

        Args:
            user_id: Target user
            notification_type: Business event type
            requested: Channels asked for by the caller

        Returns:
            Resolved preferences; ``fail_open`` is set when no record was used
        """
        requested_set = frozenset(requested)

        try:
            preferences = await self._load(user_id)
        except PreferenceLookupError as e:
            logger.warning(
                "Preference lookup failed, delivering on requested channels",
                user_id=user_id,
                error=e.message,
            )
            return ResolvedPreferences(requested_set, fail_open=True)

        if preferences is None:
            logger.warning(
                "No preferences for user, delivering on requested channels",
                user_id=user_id,
                notification_type=notification_type.value,
            )
            return ResolvedPreferences(requested_set, fail_open=True)

        channels = preferences.enabled_channels(notification_type, requested_set)
        if channels != requested_set:
            logger.debug(
                "Channels disabled by preferences",
                user_id=user_id,
                notification_type=notification_type.value,
                disabled=sorted(c.value for c in requested_set - channels),
            )

        return ResolvedPreferences(
            channels=channels,
            quiet_hours=preferences.quiet_hours,
            frequency=preferences.frequency,
        )

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Stored preferences, or the all-enabled default for a user without any."""
        preferences = await self._load(user_id)
        return preferences or NotificationPreferences.default(user_id)

    async def update(
        self, user_id: str, changes: dict[str, Any], at: datetime | None = None
    ) -> NotificationPreferences:
        """Apply a partial update and invalidate the cached copy.

        Raises:
            ValidationError: On unknown fields or invalid values
        """
        preferences = await self.preference_repository.get(user_id)
        if preferences is None:
            preferences = NotificationPreferences.default(user_id)

        preferences.apply_update(changes, at)
        await self.preference_repository.save(preferences)
        self.invalidate(user_id)

        logger.info("Preferences updated", user_id=user_id, fields=sorted(changes))
        return preferences

    def invalidate(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._cache.clear()
        else:
            self._cache.pop(user_id, None)
