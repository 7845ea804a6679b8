from __future__ import annotations

from dataclasses import dataclass

from theater_booking.domain.entities.catalog import TheaterInfo


@dataclass(frozen=True)
class SessionContext:
    theater: TheaterInfo | None = None
    date: str | None = None  # YYYY-MM-DD
    time_slot: str | None = None  # e.g. "6:00 PM - 9:00 PM"
