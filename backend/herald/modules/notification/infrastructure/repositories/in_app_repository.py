"""In-memory in-app inbox."""

from collections import defaultdict, deque
from uuid import UUID

from herald.modules.notification.domain.entities.in_app_notification import (
    InAppNotification,
)
from herald.modules.notification.domain.enums import NotificationType
from herald.modules.notification.domain.interfaces.repositories import (
    IInAppNotificationRepository,
)

DEFAULT_INBOX_SIZE = 100


class InMemoryInAppNotificationRepository(IInAppNotificationRepository):
    """Inbox per user holding the newest ``max_per_user`` entries."""

    def __init__(self, max_per_user: int = DEFAULT_INBOX_SIZE):
        self.max_per_user = max_per_user
        self._inboxes: dict[str, deque[InAppNotification]] = defaultdict(
            lambda: deque(maxlen=self.max_per_user)
        )

    async def add(self, item: InAppNotification) -> None:
        # Newest first; the deque drops the oldest entry once full
        self._inboxes[item.user_id].appendleft(item)

    async def get(self, user_id: str, item_id: UUID) -> InAppNotification | None:
        for item in self._inboxes.get(user_id, ()):
            if item.id == item_id:
                return item
        return None

    async def save(self, item: InAppNotification) -> None:
        # Entries are held by reference; nothing to write back.
        return None

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> list[InAppNotification]:
        return [
            item
            for item in self._inboxes.get(user_id, ())
            if (not unread_only or not item.is_read)
            and (notification_type is None or item.notification_type == notification_type)
        ]
