"""Clock port."""

from abc import ABC, abstractmethod
from datetime import datetime


class IClock(ABC):
    """Source of the current time as a timezone-aware UTC datetime."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time."""
