from __future__ import annotations

from abc import ABC, abstractmethod


class SlotAvailabilityPort(ABC):
    @abstractmethod
    async def booked_slots(self, date: str, theater_name: str) -> list[str]:
        """Return time slots already booked for the theater on that date."""
        raise NotImplementedError
