from __future__ import annotations

import secrets
import time

from theater_booking.application.ports.handoff_store import HandoffStorePort
from theater_booking.application.ports.wizard_store import WizardStorePort
from theater_booking.application.use_cases.wizard import BookingWizard
from theater_booking.core.config import settings
from theater_booking.domain.entities.handoff import DraftHandoff


class MemoryWizardStore(WizardStorePort):
    def __init__(self) -> None:
        self._wizards: dict[str, BookingWizard] = {}

    def add(self, wizard: BookingWizard) -> str:
        self._wizards[wizard.id] = wizard
        return wizard.id

    def get(self, wizard_id: str) -> BookingWizard | None:
        return self._wizards.get(wizard_id)

    def remove(self, wizard_id: str) -> None:
        self._wizards.pop(wizard_id, None)


class MemoryHandoffStore(HandoffStorePort):
    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._ttl = settings.HANDOFF_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._handoffs: dict[str, DraftHandoff] = {}

    def put(self, handoff: DraftHandoff, now_ts: float | None = None) -> str:
        self._purge(time.time() if now_ts is None else now_ts)
        token = secrets.token_urlsafe(16)
        self._handoffs[token] = handoff
        return token

    def take(self, token: str, now_ts: float | None = None) -> DraftHandoff | None:
        handoff = self._handoffs.pop(token, None)
        if handoff is None:
            return None
        now_ts = time.time() if now_ts is None else now_ts
        if handoff.is_expired(now_ts, self._ttl):
            return None
        return handoff

    def _purge(self, now_ts: float) -> None:
        expired = [token for token, handoff in self._handoffs.items() if handoff.is_expired(now_ts, self._ttl)]
        for token in expired:
            del self._handoffs[token]
