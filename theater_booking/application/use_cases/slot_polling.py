from __future__ import annotations

import asyncio
import logging

from theater_booking.application.exceptions import NetworkFetchError
from theater_booking.application.ports.slot_availability import SlotAvailabilityPort
from theater_booking.core.config import settings

SlotKey = tuple[str, str]  # (date, theater name)


class SlotAvailabilityPoller:
    """
    Keeps the booked-slot list fresh while a wizard is open.

    Polls for the same date and theater may overlap; the last one to land
    wins. Switching to another date or theater cancels everything pending for
    the previous one, and a response for a key that is no longer watched is
    dropped.
    """

    def __init__(self, availability: SlotAvailabilityPort, interval_seconds: float | None = None) -> None:
        self._availability = availability
        self._interval = interval_seconds or settings.SLOT_POLL_INTERVAL_SECONDS
        self._booked: list[str] = []
        self._key: SlotKey | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[list[str]]] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def booked_slots(self) -> list[str]:
        return list(self._booked)

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def is_booked(self, time_slot: str | None) -> bool:
        return bool(time_slot) and time_slot in self._booked

    async def refresh(self, date: str, theater_name: str) -> list[str]:
        self._watch((date, theater_name))
        return await self._poll((date, theater_name))

    def start(self, date: str, theater_name: str) -> None:
        key = (date, theater_name)
        self._cancel_pending()
        self._key = key
        self._loop_task = asyncio.create_task(self._run(key))

    async def stop(self) -> None:
        self._cancel_pending()
        self._key = None

    def clear(self) -> None:
        self._booked = []

    def _watch(self, key: SlotKey) -> None:
        if key != self._key:
            self._cancel_pending()
            self._key = key

    async def _poll(self, key: SlotKey) -> list[str]:
        date, theater_name = key
        try:
            slots = await self._availability.booked_slots(date, theater_name)
        except NetworkFetchError as e:
            self._logger.warning("Booked slot refresh failed", extra={"error": e.message})
            slots = []
        if key != self._key:
            self._logger.info("Stale booked slot response dropped", extra={"reason": f"{date} {theater_name}"})
            return self.booked_slots
        self._booked = list(slots)
        return self.booked_slots

    async def _run(self, key: SlotKey) -> None:
        while True:
            # polls may overlap; each one overwrites the list when it lands
            task = asyncio.create_task(self._poll(key))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await asyncio.sleep(self._interval)

    def _cancel_pending(self) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None
        for task in list(self._inflight):
            task.cancel()
        self._inflight.clear()
