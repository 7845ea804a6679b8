from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IncompleteBookingNotifierPort(ABC):
    @abstractmethod
    async def send_incomplete(self, payload: dict[str, Any]) -> bool:
        """Report an abandoned draft. Returns True if the backend accepted it."""
        raise NotImplementedError
