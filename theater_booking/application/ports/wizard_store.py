from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from theater_booking.application.use_cases.wizard import BookingWizard


class WizardStorePort(ABC):
    @abstractmethod
    def add(self, wizard: "BookingWizard") -> str:
        raise NotImplementedError

    @abstractmethod
    def get(self, wizard_id: str) -> "BookingWizard | None":
        raise NotImplementedError

    @abstractmethod
    def remove(self, wizard_id: str) -> None:
        raise NotImplementedError
