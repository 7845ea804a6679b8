from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from theater_booking.domain.entities.payment import SubmissionResult


class BookingSubmissionPort(ABC):
    @abstractmethod
    async def create_booking(self, payload: dict[str, Any]) -> SubmissionResult:
        raise NotImplementedError

    @abstractmethod
    async def update_booking(self, booking_id: str, payload: dict[str, Any]) -> SubmissionResult:
        raise NotImplementedError
