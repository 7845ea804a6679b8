from __future__ import annotations

import asyncio
import time

import pytest

from conftest import BOOKING_DATE, COUPLES_THEATER, EVENING_SLOT, FRIENDS_THEATER, LOVE_THEATER
from theater_booking.application.exceptions import ConflictError, FormValidationError, InvalidTransitionError
from theater_booking.application.use_cases.payment import ONLINE_SUCCESS_MESSAGE
from theater_booking.application.use_cases.wizard import CLOSE_CONFIRMATION, NO_DECORATION_CONFIRMATION
from theater_booking.domain.entities.catalog import TheaterInfo
from theater_booking.domain.entities.handoff import DraftHandoff
from theater_booking.domain.entities.payment import CreatorInfo, PaymentMethod, PaymentPhase
from theater_booking.domain.entities.session_context import SessionContext
from theater_booking.infrastructure.backend.mock_backend import MockSlotAvailability


def _session(theater: str = COUPLES_THEATER, time_slot: str | None = EVENING_SLOT) -> SessionContext:
    return SessionContext(theater=TheaterInfo(name=theater), date=BOOKING_DATE, time_slot=time_slot)


def _edit_record(**overrides) -> dict:
    record = {
        "bookingId": "FMT-EDIT1",
        "name": "Asha",
        "phone": "9876543210",
        "email": "asha@example.com",
        "theaterName": COUPLES_THEATER,
        "date": BOOKING_DATE,
        "time": EVENING_SLOT,
        "numberOfPeople": 2,
        "occasion": "Movie Night",
        "wantDecorItems": "No",
        "selectedFood": ["Popcorn"],
    }
    record.update(overrides)
    return record


def _walk_to_terms(wizard) -> None:
    wizard.update_customer(name="Asha", phone="9876543210", email="asha@example.com")
    wizard.set_decoration(False)
    assert wizard.continue_step().confirmation == NO_DECORATION_CONFIRMATION
    assert wizard.continue_step(confirmed=True).step == "Occasion"
    wizard.select_occasion("Movie Night")
    assert wizard.continue_step().step == "Food"
    wizard.toggle_item("Food", "Popcorn")
    assert wizard.continue_step().step == "Terms & Conditions"


def test_online_booking_end_to_end(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=_session())
        assert wizard.steps == ["Overview", "Occasion", "Food", "Terms & Conditions"]
        _walk_to_terms(wizard)

        with pytest.raises(FormValidationError) as exc:
            wizard.continue_step()
        assert exc.value.title == "Terms & Conditions Required"

        wizard.set_agree_to_terms(True)
        assert wizard.continue_step().final
        outcome = await wizard.checkout()
        await wizard.close()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.message == ONLINE_SUCCESS_MESSAGE
    payload = kit.bookings.created[0]
    assert payload["totalAmount"] == 1548
    assert payload["advancePayment"] == 1000
    assert payload["venuePayment"] == 548
    assert payload["selectedFood"][0]["name"] == "Popcorn"
    assert kit.gateway.requests[0].amount_minor == 100000
    assert kit.notifier.sent == []


def test_toggle_item_reports_running_total(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        added = kit.wizard.toggle_item("Food", "Popcorn")
        second = kit.wizard.toggle_item("Food", "Nachos")
        notices = kit.wizard.drain_notices()
        await kit.wizard.close()
        return added, second, notices

    added, second, notices = asyncio.run(scenario())

    assert added.message == "Added Popcorn • Total ₹1548"
    assert second.message == "Added Nachos • Total ₹1747"
    assert len(notices) == 2


def test_checkout_requires_last_step(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        try:
            await kit.wizard.checkout()
        finally:
            await kit.wizard.close()

    with pytest.raises(InvalidTransitionError) as exc:
        asyncio.run(scenario())
    assert exc.value.title == "Checkout Unavailable"


def test_manual_booking_with_staff_discount(make_kit):
    kit = make_kit()
    wizard = kit.wizard
    creator = CreatorInfo(type="staff", staff_name="Ravi", staff_id="S-7")

    async def scenario():
        await wizard.open(session=_session(), manual_mode=True, creator=creator)
        _walk_to_terms(wizard)
        wizard.set_agree_to_terms(True)
        assert wizard.set_manual_discount("₹48") == 48
        assert await wizard.checkout() is None
        assert wizard.payment_phase is PaymentPhase.MANUAL_METHOD_CHOICE
        outcome = await wizard.choose_manual_method(PaymentMethod.CASH)
        await wizard.close()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.payment_method is PaymentMethod.CASH
    payload = kit.bookings.created[0]
    assert payload["totalAmount"] == 1500
    assert payload["discount"] == 48
    assert payload["staffName"] == "Ravi"
    assert payload["createdBy"]["staffId"] == "S-7"
    assert kit.gateway.requests == []


def test_manual_discount_unavailable_for_customers(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        try:
            kit.wizard.set_manual_discount(100)
        finally:
            await kit.wizard.close()

    with pytest.raises(InvalidTransitionError):
        asyncio.run(scenario())


def test_editing_without_changes_sends_no_incomplete_report(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(editing_booking=_edit_record())
        assert kit.wizard.is_editing
        assert kit.wizard.editing_booking_id == "FMT-EDIT1"
        assert not kit.wizard.has_unsaved_changes()
        await kit.wizard.close()

    asyncio.run(scenario())

    assert kit.notifier.sent == []


def test_editing_with_changes_sends_one_incomplete_report(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(editing_booking=_edit_record())
        kit.wizard.update_customer(name="Asha Rao")
        assert kit.wizard.has_unsaved_changes()
        await kit.wizard.close()

    asyncio.run(scenario())

    assert len(kit.notifier.sent) == 1
    assert kit.notifier.sent[0]["name"] == "Asha Rao"
    assert kit.notifier.sent[0]["theaterName"] == COUPLES_THEATER


def test_editing_submits_update_for_own_booked_slot(make_kit):
    slots = MockSlotAvailability({(BOOKING_DATE, COUPLES_THEATER): [EVENING_SLOT]})
    kit = make_kit(slots=slots)
    wizard = kit.wizard

    async def scenario():
        await wizard.open(editing_booking=_edit_record())
        assert wizard.booked_slots == [EVENING_SLOT]
        wizard.select_time_slot(EVENING_SLOT)
        wizard.jump_to("Terms & Conditions")
        outcome = await wizard.checkout()
        await wizard.close()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.was_editing
    assert kit.bookings.updated[0][0] == "FMT-EDIT1"
    assert kit.bookings.created == []


def test_new_draft_with_email_reports_incomplete_on_close(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        kit.wizard.update_customer(email="asha@example.com")
        await kit.wizard.close()

    asyncio.run(scenario())

    assert len(kit.notifier.sent) == 1
    assert kit.notifier.sent[0]["email"] == "asha@example.com"
    assert "discountAmount" not in kit.notifier.sent[0]


def test_new_draft_without_email_is_not_reported(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        kit.wizard.update_customer(name="Asha")
        await kit.wizard.close()

    asyncio.run(scenario())

    assert kit.notifier.sent == []


def test_opened_context_closes_wizard(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        async with wizard.opened(session=_session()) as open_wizard:
            open_wizard.update_customer(email="asha@example.com")
            assert open_wizard.is_open

    asyncio.run(scenario())

    assert not wizard.is_open
    assert len(kit.notifier.sent) == 1
    with pytest.raises(InvalidTransitionError):
        wizard.update_customer(name="late")


def test_theater_change_resets_headcount(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=_session(theater=FRIENDS_THEATER))
        assert wizard.draft.headcount == 4
        assert wizard.change_headcount("increment") == 5
        await wizard.select_theater(COUPLES_THEATER)
        couples = wizard.draft.headcount
        await wizard.select_theater(FRIENDS_THEATER)
        friends = wizard.draft.headcount
        await wizard.close()
        return couples, friends

    assert asyncio.run(scenario()) == (2, 4)


def test_compulsory_decoration_theater(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=_session(theater=LOVE_THEATER))
        try:
            assert wizard.draft.decoration_enabled is True
            assert "Decor Items" in wizard.steps
            assert wizard.price_breakdown().slot_booking_fee == 1500
            wizard.set_decoration(False)
        finally:
            await wizard.close()

    with pytest.raises(FormValidationError) as exc:
        asyncio.run(scenario())
    assert exc.value.title == "Decoration Required"


def test_back_on_first_step_asks_to_close(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        move = kit.wizard.back()
        await kit.wizard.close()
        return move

    move = asyncio.run(scenario())

    assert not move.moved
    assert move.step == "Overview"
    assert move.confirmation == CLOSE_CONFIRMATION


def test_skip_service_step(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=_session())
        with pytest.raises(InvalidTransitionError):
            wizard.skip()
        wizard.jump_to("Food")
        move = wizard.skip()
        skipped = wizard.draft.skipped_services
        await wizard.close()
        return move, skipped

    move, skipped = asyncio.run(scenario())

    assert move.step == "Terms & Conditions"
    assert "Food" in skipped


def test_handoff_token_is_consumed_once(make_kit):
    kit = make_kit()
    wizard = kit.wizard
    token = kit.handoffs.put(
        DraftHandoff(origin="movies", created_at=time.time(), movie_title="Interstellar", theater_name=COUPLES_THEATER)
    )

    async def scenario():
        await wizard.open(handoff_token=token)
        first = (wizard.draft.movie, wizard.session.theater)
        await wizard.close()
        await wizard.open(handoff_token=token)
        second = wizard.draft.movie
        await wizard.close()
        return first, second

    (movie, theater), second = asyncio.run(scenario())

    assert movie.name == "Interstellar"
    assert theater.theater_id == "FMT-Hall-1"
    assert second is None


def test_booked_and_late_slots_are_refused(make_kit):
    slots = MockSlotAvailability({(BOOKING_DATE, COUPLES_THEATER): [EVENING_SLOT]})
    kit = make_kit(slots=slots)
    wizard = kit.wizard
    errors = []

    async def scenario():
        await wizard.open(session=_session(time_slot=None))
        for slot in (EVENING_SLOT, "10:00 AM - 1:00 PM"):
            try:
                wizard.select_time_slot(slot)
            except (ConflictError, FormValidationError) as e:
                errors.append(e)
        wizard.select_time_slot("2:00 PM - 5:00 PM")
        chosen = wizard.session.time_slot
        await wizard.close()
        return chosen

    assert asyncio.run(scenario()) == "2:00 PM - 5:00 PM"
    assert isinstance(errors[0], ConflictError)
    assert errors[1].title == "Booking Not Allowed"


def test_coupon_dropped_when_decoration_turned_off(make_kit):
    kit = make_kit()
    wizard = kit.wizard

    async def scenario():
        await wizard.open(session=_session())
        wizard.set_decoration(True)
        outcome = await wizard.apply_coupon("welcome10")
        applied = wizard.coupon
        wizard.set_decoration(False)
        notices = wizard.drain_notices()
        state = (wizard.coupon, wizard.draft.coupon_code)
        await wizard.close()
        return outcome, applied, notices, state

    outcome, applied, notices, (coupon, code) = asyncio.run(scenario())

    assert outcome.notice.message == "Coupon applied: WELCOME10"
    assert applied.discount_amount == pytest.approx(139.9)
    assert notices[-1].message == "Coupon removed: coupons apply only to bookings with decoration or gifts"
    assert coupon.code is None
    assert code == ""


def test_coupon_refused_without_decoration_or_gifts(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        outcome = await kit.wizard.apply_coupon("WELCOME10")
        await kit.wizard.close()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.rejected
    assert kit.coupons.calls == []


def test_unknown_occasion_is_refused(make_kit):
    kit = make_kit()

    async def scenario():
        await kit.wizard.open(session=_session())
        try:
            kit.wizard.select_occasion("Graduation")
        finally:
            await kit.wizard.close()

    with pytest.raises(FormValidationError) as exc:
        asyncio.run(scenario())
    assert exc.value.title == "Unknown Occasion"
