from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DraftHandoff:
    """Data carried from another page into a freshly opened wizard."""

    origin: str  # "theater" | "movies" | "admin_edit" ...
    created_at: float
    editing_booking: dict[str, Any] | None = None
    movie_title: str | None = None
    theater_name: str | None = None
    date: str | None = None
    time_slot: str | None = None

    def is_expired(self, now_ts: float, ttl_seconds: float) -> bool:
        return now_ts - self.created_at > ttl_seconds
