"""Preference Repository Interface."""

from abc import ABC, abstractmethod

from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)


class IPreferenceRepository(ABC):
    """Repository interface for user notification preferences."""

    @abstractmethod
    async def get(self, user_id: str) -> NotificationPreferences | None:
        """
        Load a user's preferences.

        Returns:
            None when the user never stored preferences

        Raises:
            PreferenceLookupError: If the backing store cannot be read
        """

    @abstractmethod
    async def save(self, preferences: NotificationPreferences) -> None:
        """Insert or replace a user's preferences."""
