"""Dispatch queue port."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from herald.modules.notification.domain.entities.delivery_unit import DeliveryUnit
from herald.modules.notification.domain.enums import NotificationChannel
from herald.modules.notification.domain.value_objects import QueueConfig


class IDispatchQueue(ABC):
    """Bounded queue of delivery units for one channel.

    ``pop_due`` hands out each unit to exactly one caller and performs the
    PENDING -> SENDING claim itself.
    """

    config: QueueConfig
    channel: NotificationChannel
    max_depth: int
    wakeup: asyncio.Event

    @property
    @abstractmethod
    def depth(self) -> int:
        """Units queued and not yet taken."""

    @abstractmethod
    def ensure_capacity(self, additional: int = 1) -> None:
        """
        Raises:
            QueueSaturatedError: If ``additional`` units do not fit
        """

    @abstractmethod
    def push(self, unit: DeliveryUnit, force: bool = False) -> None:
        """
        Queue a unit until its due time.

        Raises:
            QueueSaturatedError: If full and ``force`` is not set
        """

    @abstractmethod
    def discard(self, unit: DeliveryUnit) -> bool:
        """Remove a unit that will no longer be sent."""

    @abstractmethod
    def pop_due(self, now: datetime) -> DeliveryUnit | None:
        """Highest priority due unit, claimed, or EXPIRED if its expiry passed."""

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Depth and configuration summary."""
