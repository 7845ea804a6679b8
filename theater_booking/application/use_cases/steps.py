from __future__ import annotations

import logging

from theater_booking.domain.entities.booking_draft import BookingDraft
from theater_booking.domain.entities.catalog import Catalog

OVERVIEW_STEP = "Overview"
OCCASION_STEP = "Occasion"
TERMS_STEP = "Terms & Conditions"


def visible_steps(draft: BookingDraft, catalog: Catalog) -> list[str]:
    """
    Ordered wizard steps for the current selections.

    Overview first and Terms last. The Occasion step is always present unless
    every occasion is decoration-only, in which case it follows the decoration
    choice. Each enabled service adds its own step in catalog order.
    """
    steps = [OVERVIEW_STEP]

    if not catalog.all_occasions_decoration_only() or draft.decoration_enabled:
        steps.append(OCCASION_STEP)

    for service in catalog.services:
        if draft.is_service_enabled(service.name):
            steps.append(service.name)

    steps.append(TERMS_STEP)
    return steps


class StepNavigator:
    def __init__(self) -> None:
        self._active = OVERVIEW_STEP
        self._logger = logging.getLogger(__name__)

    @property
    def active(self) -> str:
        return self._active

    def reconcile(self, steps: list[str]) -> bool:
        """Fall back to Overview when the active step disappeared. Returns True if it moved."""
        if self._active in steps:
            return False
        self._logger.info("Active step no longer visible", extra={"step": self._active})
        self._active = OVERVIEW_STEP
        return True

    def is_last(self, steps: list[str]) -> bool:
        return bool(steps) and self._active == steps[-1]

    def advance(self, steps: list[str]) -> str | None:
        """Move to the next step. Returns None when already on the last step."""
        index = self._index(steps)
        if index >= len(steps) - 1:
            return None
        self._active = steps[index + 1]
        return self._active

    def go_back(self, steps: list[str]) -> bool:
        """Move to the previous step. Returns False on the first step."""
        index = self._index(steps)
        if index <= 0:
            return False
        self._active = steps[index - 1]
        return True

    def jump_to(self, step: str, steps: list[str]) -> None:
        if step not in steps:
            raise ValueError(f"Step {step!r} is not visible")
        self._active = step

    def reset(self) -> None:
        self._active = OVERVIEW_STEP

    def _index(self, steps: list[str]) -> int:
        try:
            return steps.index(self._active)
        except ValueError:
            return 0
