from __future__ import annotations

from abc import ABC, abstractmethod

from theater_booking.domain.entities.handoff import DraftHandoff


class HandoffStorePort(ABC):
    @abstractmethod
    def put(self, handoff: DraftHandoff, now_ts: float | None = None) -> str:
        """Store a hand-off and return its token. Expired entries are dropped first."""
        raise NotImplementedError

    @abstractmethod
    def take(self, token: str, now_ts: float | None = None) -> DraftHandoff | None:
        """
        Consume a hand-off. A token can be taken once; expired or unknown
        tokens return None.
        """
        raise NotImplementedError
