from __future__ import annotations

import asyncio

from conftest import BOOKING_DATE, COUPLES_THEATER, EVENING_SLOT
from theater_booking.application.exceptions import NetworkFetchError
from theater_booking.application.ports.slot_availability import SlotAvailabilityPort
from theater_booking.application.use_cases.slot_polling import SlotAvailabilityPoller
from theater_booking.domain.entities.catalog import TheaterInfo
from theater_booking.domain.entities.session_context import SessionContext
from theater_booking.infrastructure.backend.mock_backend import MockSlotAvailability

NEXT_DATE = "2026-01-11"
LATE_SLOT = "9:30 PM - 12:30 AM"


class ControlledSlots(SlotAvailabilityPort):
    """Each lookup waits until the test answers it."""

    def __init__(self) -> None:
        self.calls: list[tuple[tuple[str, str], asyncio.Future]] = []

    async def booked_slots(self, date: str, theater_name: str) -> list[str]:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(((date, theater_name), future))
        return await future

    def answer(self, index: int, slots: list[str]) -> None:
        future = self.calls[index][1]
        if not future.done():
            future.set_result(slots)

    def fail(self, index: int, error: Exception) -> None:
        future = self.calls[index][1]
        if not future.done():
            future.set_exception(error)


class CountingSlots(MockSlotAvailability):
    def __init__(self, booked=None) -> None:
        super().__init__(booked)
        self.count = 0

    async def booked_slots(self, date: str, theater_name: str) -> list[str]:
        self.count += 1
        return await super().booked_slots(date, theater_name)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_overlapping_refreshes_keep_last_landed():
    slots = ControlledSlots()
    poller = SlotAvailabilityPoller(slots, interval_seconds=60)

    async def scenario():
        first = asyncio.create_task(poller.refresh(BOOKING_DATE, COUPLES_THEATER))
        second = asyncio.create_task(poller.refresh(BOOKING_DATE, COUPLES_THEATER))
        await _settle()
        assert len(slots.calls) == 2

        slots.answer(1, [LATE_SLOT])
        await _settle()
        assert poller.booked_slots == [LATE_SLOT]

        slots.answer(0, [EVENING_SLOT])
        await asyncio.gather(first, second)
        return poller.booked_slots

    assert asyncio.run(scenario()) == [EVENING_SLOT]


def test_response_for_previous_date_is_dropped():
    slots = ControlledSlots()
    poller = SlotAvailabilityPoller(slots, interval_seconds=60)

    async def scenario():
        old = asyncio.create_task(poller.refresh(BOOKING_DATE, COUPLES_THEATER))
        await _settle()
        new = asyncio.create_task(poller.refresh(NEXT_DATE, COUPLES_THEATER))
        await _settle()

        slots.answer(1, [])
        await new
        slots.answer(0, [EVENING_SLOT])
        return await old

    returned = asyncio.run(scenario())

    assert returned == []
    assert poller.booked_slots == []
    assert not poller.is_booked(EVENING_SLOT)


def test_switching_date_cancels_running_poll():
    slots = ControlledSlots()
    poller = SlotAvailabilityPoller(slots, interval_seconds=60)

    async def scenario():
        poller.start(BOOKING_DATE, COUPLES_THEATER)
        await _settle()
        assert [key for key, _ in slots.calls] == [(BOOKING_DATE, COUPLES_THEATER)]

        refreshing = asyncio.create_task(poller.refresh(NEXT_DATE, COUPLES_THEATER))
        await _settle()
        old_future = slots.calls[0][1]
        slots.answer(1, [])
        await refreshing

        poller.start(NEXT_DATE, COUPLES_THEATER)
        await _settle()
        slots.answer(0, [EVENING_SLOT])
        slots.answer(2, [])
        await _settle()
        booked = poller.booked_slots
        running = poller.running
        await poller.stop()
        return old_future, booked, running

    old_future, booked, running = asyncio.run(scenario())

    assert old_future.cancelled()
    assert booked == []
    assert running
    assert [key for key, _ in slots.calls][1:] == [(NEXT_DATE, COUPLES_THEATER)] * 2


def test_stop_cancels_pending_poll():
    slots = ControlledSlots()
    poller = SlotAvailabilityPoller(slots, interval_seconds=60)

    async def scenario():
        poller.start(BOOKING_DATE, COUPLES_THEATER)
        await _settle()
        assert poller.running
        await poller.stop()
        await _settle()
        return slots.calls[0][1]

    pending = asyncio.run(scenario())

    assert pending.cancelled()
    assert not poller.running
    assert poller.booked_slots == []


def test_failed_refresh_reports_no_booked_slots():
    slots = ControlledSlots()
    poller = SlotAvailabilityPoller(slots, interval_seconds=60)

    async def scenario():
        first = asyncio.create_task(poller.refresh(BOOKING_DATE, COUPLES_THEATER))
        await _settle()
        slots.answer(0, [EVENING_SLOT])
        assert await first == [EVENING_SLOT]

        second = asyncio.create_task(poller.refresh(BOOKING_DATE, COUPLES_THEATER))
        await _settle()
        slots.fail(1, NetworkFetchError("Connection Error", "Could not reach /booked-slots."))
        return await second

    assert asyncio.run(scenario()) == []
    assert poller.booked_slots == []


def test_interval_polling_repeats_until_stopped():
    slots = CountingSlots({(BOOKING_DATE, COUPLES_THEATER): [EVENING_SLOT]})
    poller = SlotAvailabilityPoller(slots, interval_seconds=0.01)

    async def scenario():
        poller.start(BOOKING_DATE, COUPLES_THEATER)
        await asyncio.sleep(0.05)
        await poller.stop()
        polled = slots.count
        await asyncio.sleep(0.03)
        return polled

    polled = asyncio.run(scenario())

    assert polled >= 2
    assert slots.count == polled
    assert poller.booked_slots == [EVENING_SLOT]


def test_wizard_close_stops_polling(make_kit):
    kit = make_kit(slots=MockSlotAvailability({(BOOKING_DATE, COUPLES_THEATER): [LATE_SLOT]}))
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=SessionContext(theater=TheaterInfo(name=COUPLES_THEATER), date=BOOKING_DATE))
        assert kit.poller.running
        assert wizard.booked_slots == [LATE_SLOT]

        await wizard.select_date(NEXT_DATE)
        assert wizard.booked_slots == []
        assert kit.poller.running

        await wizard.close()

    asyncio.run(scenario())

    assert not kit.poller.running
    assert kit.poller.booked_slots == []
