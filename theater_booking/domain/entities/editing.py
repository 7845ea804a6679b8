from __future__ import annotations

from dataclasses import dataclass

from theater_booking.domain.entities.booking_draft import BookingDraft


@dataclass(frozen=True)
class EditingSnapshot:
    booking_id: str | None
    draft: BookingDraft
    theater_name: str | None = None
    date: str | None = None
    time_slot: str | None = None
