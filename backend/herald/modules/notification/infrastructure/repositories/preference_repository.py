"""In-memory preference storage."""

from herald.modules.notification.domain.entities.notification_preferences import (
    NotificationPreferences,
)
from herald.modules.notification.domain.interfaces.repositories import IPreferenceRepository


class InMemoryPreferenceRepository(IPreferenceRepository):
    """Preferences keyed by user id."""

    def __init__(self, preferences: list[NotificationPreferences] | None = None):
        self._items: dict[str, NotificationPreferences] = {
            p.user_id: p for p in preferences or []
        }

    async def get(self, user_id: str) -> NotificationPreferences | None:
        return self._items.get(user_id)

    async def save(self, preferences: NotificationPreferences) -> None:
        self._items[preferences.user_id] = preferences
