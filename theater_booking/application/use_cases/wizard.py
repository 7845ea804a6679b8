from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable

from theater_booking.application.exceptions import (
    ConflictError,
    FormValidationError,
    InvalidTransitionError,
    WizardError,
)
from theater_booking.application.ports.handoff_store import HandoffStorePort
from theater_booking.application.ports.notifications import IncompleteBookingNotifierPort
from theater_booking.application.use_cases.catalog_loader import CatalogLoader
from theater_booking.application.use_cases.coupon import CouponOutcome, CouponUseCase
from theater_booking.application.use_cases.form_state import FormStateStore
from theater_booking.application.use_cases.payment import PaymentOrchestrator
from theater_booking.application.use_cases.pricing import (
    compute_price_breakdown,
    default_pricing,
    is_coupon_eligible,
    resolve_capacity,
)
from theater_booking.application.use_cases.slot_polling import SlotAvailabilityPoller
from theater_booking.application.use_cases.steps import OVERVIEW_STEP, StepNavigator, visible_steps
from theater_booking.application.use_cases.validation import ValidationInput, validate_step
from theater_booking.application.utils.booking_payload import build_incomplete_payload
from theater_booking.application.utils.money import format_amount, parse_amount_input
from theater_booking.application.utils.schedule import business_now, is_within_cutoff
from theater_booking.core.config import settings
from theater_booking.domain.entities.booking_draft import BookingDraft
from theater_booking.domain.entities.catalog import Catalog, TheaterInfo
from theater_booking.domain.entities.checkout import CheckoutContext
from theater_booking.domain.entities.coupon import CouponState
from theater_booking.domain.entities.editing import EditingSnapshot
from theater_booking.domain.entities.notice import Notice
from theater_booking.domain.entities.payment import (
    BookingOutcome,
    CreatorInfo,
    GatewayRequest,
    PartialPaymentForm,
    PaymentMethod,
    PaymentPhase,
)
from theater_booking.domain.entities.pricing import PriceBreakdown, PricingConfig, TheaterCapacity
from theater_booking.domain.entities.session_context import SessionContext

EditImporter = Callable[[dict[str, Any], Catalog], EditingSnapshot]

NO_DECORATION_CONFIRMATION = (
    'You selected "No" for decoration. You will continue with food and basic booking only. '
    "Continue without decoration?"
)
CLOSE_CONFIRMATION = "Are you sure you want to close? Your booking details will not be saved."


@dataclass(frozen=True)
class StepMove:
    """Result of a navigation request."""

    step: str
    moved: bool
    confirmation: str | None = None  # ask the user, then repeat the request confirmed
    final: bool = False  # already on the last step; checkout is next


class BookingWizard:
    """
    One booking wizard session, from open to close.

    Holds the draft, the active step, the session context (theater, date and
    slot picked outside the wizard) and the collaborators that own coupons,
    slot polling and checkout. Every draft change re-derives the visible
    steps and coupon eligibility.
    """

    def __init__(
        self,
        loader: CatalogLoader,
        coupons: CouponUseCase,
        poller: SlotAvailabilityPoller,
        payment: PaymentOrchestrator,
        notifier: IncompleteBookingNotifierPort,
        handoffs: HandoffStorePort | None = None,
        edit_importer: EditImporter | None = None,
        clock: Callable[[], datetime] = business_now,
    ) -> None:
        self.id = uuid.uuid4().hex
        self._loader = loader
        self._coupons = coupons
        self._poller = poller
        self._payment = payment
        self._notifier = notifier
        self._handoffs = handoffs
        self._edit_importer = edit_importer
        self._clock = clock

        self._form = FormStateStore(Catalog())
        self._navigator = StepNavigator()
        self._session = SessionContext()
        self._pricing: PricingConfig = default_pricing()
        self._manual_mode = False
        self._creator: CreatorInfo | None = None
        self._manual_discount = 0.0
        self._editing: EditingSnapshot | None = None
        self._original_draft: BookingDraft | None = None
        self._no_decoration_confirmed = False
        self._notices: list[Notice] = []
        self._is_open = False
        self._logger = logging.getLogger(__name__)

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(
        self,
        session: SessionContext | None = None,
        handoff_token: str | None = None,
        editing_booking: dict[str, Any] | None = None,
        manual_mode: bool = False,
        creator: CreatorInfo | None = None,
    ) -> None:
        if self._is_open:
            raise InvalidTransitionError("Wizard Already Open", "Close the current booking before starting a new one.")

        catalog, pricing = await self._loader.load()
        self._form.replace_catalog(catalog)
        self._pricing = pricing
        self._manual_mode = manual_mode
        self._creator = creator
        session = session or SessionContext()
        movie_title: str | None = None

        handoff = self._handoffs.take(handoff_token) if self._handoffs and handoff_token else None
        if handoff is not None:
            self._logger.info("Hand-off applied", extra={"wizard_id": self.id, "reason": handoff.origin})
            session = SessionContext(
                theater=TheaterInfo(name=handoff.theater_name) if handoff.theater_name else session.theater,
                date=handoff.date or session.date,
                time_slot=handoff.time_slot or session.time_slot,
            )
            movie_title = handoff.movie_title
            editing_booking = handoff.editing_booking or editing_booking
        elif handoff_token:
            self._logger.info("Hand-off token expired or unknown", extra={"wizard_id": self.id})

        if editing_booking:
            if self._edit_importer is None:
                raise InvalidTransitionError("Editing Unavailable", "This wizard cannot edit existing bookings.")
            snapshot = self._edit_importer(editing_booking, catalog)
            self._editing = snapshot
            self._form.load(snapshot.draft)
            session = SessionContext(
                theater=TheaterInfo(name=snapshot.theater_name) if snapshot.theater_name else session.theater,
                date=snapshot.date or session.date,
                time_slot=snapshot.time_slot or session.time_slot,
            )

        self._session = SessionContext(
            theater=self._resolve_theater(session.theater),
            date=session.date,
            time_slot=session.time_slot,
        )

        if self._editing is None:
            self._form.reset(headcount=self.capacity.min)
            if self._session.theater and self._session.theater.decoration_compulsory:
                self._form.set_decoration(True)
        self._form.initialize_services()
        if movie_title:
            self._form.select_movie(movie_title)
        if self._editing is not None:
            self._original_draft = self._form.draft

        self._navigator.reset()
        self._is_open = True
        await self._restart_polling()
        self._logger.info(
            "Wizard opened",
            extra={"wizard_id": self.id, "booking_id": self.editing_booking_id},
        )

    async def close(self) -> None:
        """Report an abandoned draft if needed, stop background work and forget everything."""
        if not self._is_open:
            return

        if self._should_report_incomplete():
            await self._send_incomplete()

        self._payment.abandon()
        await self._poller.stop()
        self._poller.clear()
        self._coupons.reset()
        self._form.reset()
        self._navigator.reset()
        self._session = SessionContext()
        self._editing = None
        self._original_draft = None
        self._manual_discount = 0.0
        self._no_decoration_confirmed = False
        self._notices.clear()
        self._is_open = False
        self._logger.info("Wizard closed", extra={"wizard_id": self.id})

    @asynccontextmanager
    async def opened(self, **kwargs: Any) -> AsyncIterator["BookingWizard"]:
        await self.open(**kwargs)
        try:
            yield self
        finally:
            await self.close()

    @property
    def draft(self) -> BookingDraft:
        return self._form.draft

    @property
    def catalog(self) -> Catalog:
        return self._form.catalog

    @property
    def pricing(self) -> PricingConfig:
        return self._pricing

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def steps(self) -> list[str]:
        return visible_steps(self._form.draft, self._form.catalog)

    @property
    def active_step(self) -> str:
        return self._navigator.active

    @property
    def capacity(self) -> TheaterCapacity:
        return resolve_capacity(self._session.theater, self._form.catalog)

    @property
    def coupon(self) -> CouponState:
        return self._coupons.state

    @property
    def coupon_applying(self) -> bool:
        return self._coupons.applying

    @property
    def manual_mode(self) -> bool:
        return self._manual_mode

    @property
    def manual_discount(self) -> float:
        return self._manual_discount

    @property
    def is_editing(self) -> bool:
        return self._editing is not None

    @property
    def editing_booking_id(self) -> str | None:
        return self._editing.booking_id if self._editing else None

    @property
    def booked_slots(self) -> list[str]:
        return self._poller.booked_slots

    @property
    def payment_phase(self) -> PaymentPhase:
        return self._payment.phase

    @property
    def outcome(self) -> BookingOutcome | None:
        return self._payment.outcome

    @property
    def partial_form(self) -> PartialPaymentForm | None:
        return self._payment.partial_form

    @property
    def pending_payment(self) -> GatewayRequest | None:
        return self._payment.pending_request

    @property
    def last_error(self) -> WizardError | None:
        return self._payment.last_error

    def has_unsaved_changes(self) -> bool:
        if self._original_draft is None:
            return self._form.draft.has_identity_data()
        return self._form.draft != self._original_draft

    def drain_notices(self) -> list[Notice]:
        notices, self._notices = self._notices, []
        return notices

    def price_breakdown(self) -> PriceBreakdown:
        return compute_price_breakdown(
            self._form.draft,
            self._session.theater,
            self._form.catalog,
            self._pricing,
            coupon_discount=self._coupons.state.discount_amount,
            manual_discount=self._manual_discount if self._manual_mode else 0.0,
        )

    async def select_theater(self, theater: TheaterInfo | str) -> None:
        self._require_open()
        info = TheaterInfo(name=theater) if isinstance(theater, str) else theater
        resolved = self._resolve_theater(info)
        self._session = SessionContext(theater=resolved, date=self._session.date, time_slot=self._session.time_slot)

        capacity = self.capacity
        if self._editing is None:
            self._form.set_headcount(capacity.min, capacity)
        else:
            self._form.set_headcount(self._form.draft.headcount, capacity)
        if resolved and resolved.decoration_compulsory:
            self._form.set_decoration(True)

        self._after_draft_change()
        await self._restart_polling()

    async def select_date(self, date: str) -> None:
        self._require_open()
        self._session = SessionContext(theater=self._session.theater, date=date, time_slot=self._session.time_slot)
        await self._restart_polling()

    def select_time_slot(self, time_slot: str) -> None:
        self._require_open()
        if self._poller.is_booked(time_slot) and not self._is_own_slot(self._session.date, time_slot):
            raise ConflictError(
                "Time Slot Already Booked",
                "This time slot is already booked. Please select a different time slot.",
            )
        if is_within_cutoff(self._session.date, time_slot, self._clock(), settings.BOOKING_CUTOFF_MINUTES):
            raise FormValidationError(
                "Booking Not Allowed",
                "Booking is not allowed within 1 hour of the selected time slot. Please select a different time.",
            )
        self._session = SessionContext(theater=self._session.theater, date=self._session.date, time_slot=time_slot)

    def continue_step(self, confirmed: bool = False) -> StepMove:
        """Validate the active step and move forward."""
        self._require_open()
        steps = self.steps
        self._navigator.reconcile(steps)
        active = self._navigator.active

        issue = validate_step(active, self._validation_input())
        if issue is not None:
            raise issue.to_error()

        if active == OVERVIEW_STEP and self._form.draft.decoration_enabled is False and not self._no_decoration_confirmed:
            if not confirmed:
                return StepMove(step=active, moved=False, confirmation=NO_DECORATION_CONFIRMATION)
            self._no_decoration_confirmed = True

        next_step = self._navigator.advance(steps)
        if next_step is None:
            return StepMove(step=active, moved=False, final=True)
        self._logger.info("Step advanced", extra={"wizard_id": self.id, "step": next_step})
        return StepMove(step=next_step, moved=True)

    def back(self) -> StepMove:
        self._require_open()
        steps = self.steps
        self._navigator.reconcile(steps)
        if self._navigator.go_back(steps):
            return StepMove(step=self._navigator.active, moved=True)
        return StepMove(step=self._navigator.active, moved=False, confirmation=CLOSE_CONFIRMATION)

    def skip(self) -> StepMove:
        """Skip the active service step: its selections are cleared and the wizard moves on."""
        self._require_open()
        active = self._navigator.active
        if self._form.catalog.service(active) is None:
            raise InvalidTransitionError("Cannot Skip", f"The {active} step cannot be skipped.")
        self._form.skip_service(active)
        self._after_draft_change()
        steps = self.steps
        next_step = self._navigator.advance(steps)
        if next_step is None:
            return StepMove(step=active, moved=False, final=True)
        return StepMove(step=next_step, moved=True)

    def jump_to(self, step: str) -> None:
        self._require_open()
        try:
            self._navigator.jump_to(step, self.steps)
        except ValueError as e:
            raise InvalidTransitionError("Step Unavailable", f"{step} is not part of this booking.") from e

    def update_customer(self, name: str | None = None, phone: str | None = None, email: str | None = None) -> None:
        self._require_open()
        self._form.update_customer(name=name, phone=phone, email=email)

    def set_headcount(self, headcount: int) -> int:
        self._require_open()
        return self._form.set_headcount(headcount, self.capacity)

    def change_headcount(self, action: str) -> int:
        self._require_open()
        return self._form.change_headcount(action, self.capacity)

    def set_decoration(self, enabled: bool) -> None:
        self._require_open()
        theater = self._session.theater
        if not enabled and theater is not None and theater.decoration_compulsory:
            raise FormValidationError("Decoration Required", f"Decoration is compulsory for {theater.name}.")
        if self._form.draft.decoration_enabled != enabled:
            self._no_decoration_confirmed = False
        self._form.set_decoration(enabled)
        self._after_draft_change()

    def set_service(self, service_name: str, enabled: bool) -> None:
        self._require_open()
        service = self._form.catalog.service(service_name)
        if service is not None and service.include_in_decoration:
            self.set_decoration(enabled)
            return
        self._form.set_service_flag(service_name, enabled)
        self._after_draft_change()

    def toggle_item(self, service_name: str, item_name: str) -> Notice | None:
        self._require_open()
        added = self._form.toggle_item(service_name, item_name)
        if added is None:
            return None
        self._after_draft_change()
        total = format_amount(self.price_breakdown().final_total)
        verb = "Added" if added else "Removed"
        notice = Notice("success", f"{verb} {item_name} • Total ₹{total}", settings.NOTICE_DURATION_MS)
        self._notices.append(notice)
        return notice

    def set_want_movies(self, wanted: bool) -> None:
        self._require_open()
        self._form.set_want_movies(wanted)

    def select_movie(self, title: str) -> None:
        self._require_open()
        self._form.select_movie(title)

    def select_occasion(self, occasion_name: str) -> None:
        self._require_open()
        if occasion_name and self._form.catalog.occasion(occasion_name) is None:
            raise FormValidationError("Unknown Occasion", f"{occasion_name} is not an available occasion.")
        self._form.select_occasion(occasion_name)

    def update_occasion_field(self, field_key: str, value: str) -> None:
        self._require_open()
        self._form.update_occasion_field(field_key, value)

    def set_agree_to_terms(self, agreed: bool) -> None:
        self._require_open()
        self._form.set_agree_to_terms(agreed)

    def set_manual_discount(self, amount: str | float | None) -> float:
        self._require_open()
        if not self._manual_mode:
            raise InvalidTransitionError("Discount Unavailable", "Manual discounts are only available to staff.")
        parsed = parse_amount_input(amount)
        self._manual_discount = max(parsed or 0.0, 0.0)
        return self._manual_discount

    async def apply_coupon(self, code: str | None = None) -> CouponOutcome:
        self._require_open()
        if code is not None:
            self._form.set_coupon_code(code)
        draft = self._form.draft
        outcome = await self._coupons.apply(
            draft.coupon_code,
            self.price_breakdown().subtotal,
            is_coupon_eligible(draft, self._form.catalog),
        )
        if outcome.notice is not None:
            self._notices.append(outcome.notice)
        return outcome

    def remove_coupon(self) -> CouponState:
        self._require_open()
        self._form.set_coupon_code("")
        return self._coupons.remove()

    def checkout_context(self) -> CheckoutContext:
        editing = self._editing
        return CheckoutContext(
            draft=self._form.draft,
            session=self._session,
            catalog=self._form.catalog,
            pricing=self._pricing,
            capacity=self.capacity,
            breakdown=self.price_breakdown(),
            coupon=self._coupons.state,
            manual_mode=self._manual_mode,
            manual_discount=self._manual_discount,
            creator=self._creator,
            editing_booking_id=editing.booking_id if editing else None,
            editing_slot=(editing.date, editing.time_slot) if editing else None,
            booked_slots=tuple(self._poller.booked_slots),
        )

    async def checkout(self) -> BookingOutcome | None:
        """Run the final step button. Only available on the last visible step."""
        self._require_open()
        steps = self.steps
        self._navigator.reconcile(steps)
        if not self._navigator.is_last(steps):
            raise InvalidTransitionError("Checkout Unavailable", "Please complete every step before booking.")
        return await self._payment.start(self.checkout_context())

    async def choose_manual_method(self, method: PaymentMethod) -> BookingOutcome | None:
        self._require_open()
        return await self._payment.choose_manual_method(method)

    def open_partial_payment(self, method: PaymentMethod = PaymentMethod.UPI) -> PartialPaymentForm:
        self._require_open()
        return self._payment.open_partial_payment(method)

    async def confirm_partial_payment(
        self,
        amount_received: str | float | None,
        slot_booking_fee: str | float | None = None,
        method: PaymentMethod | None = None,
    ) -> BookingOutcome | None:
        self._require_open()
        return await self._payment.confirm_partial_payment(amount_received, slot_booking_fee, method)

    def cancel_payment(self) -> None:
        self._payment.cancel()

    def _require_open(self) -> None:
        if not self._is_open:
            raise InvalidTransitionError("Wizard Closed", "This booking wizard is no longer open.")

    def _resolve_theater(self, theater: TheaterInfo | None) -> TheaterInfo | None:
        if theater is None:
            return None
        return self._form.catalog.find_theater(theater) or theater

    def _validation_input(self) -> ValidationInput:
        return ValidationInput(
            draft=self._form.draft,
            catalog=self._form.catalog,
            time_slot=self._session.time_slot,
            capacity=self.capacity,
        )

    def _after_draft_change(self) -> None:
        self._navigator.reconcile(self.steps)
        eligible = is_coupon_eligible(self._form.draft, self._form.catalog)
        if self._coupons.on_eligibility_changed(eligible):
            self._form.set_coupon_code("")
            self._notices.append(
                Notice(
                    "error",
                    "Coupon removed: coupons apply only to bookings with decoration or gifts",
                    settings.NOTICE_DURATION_MS,
                )
            )

    def _is_own_slot(self, date: str | None, time_slot: str | None) -> bool:
        editing = self._editing
        return editing is not None and (editing.date, editing.time_slot) == (date, time_slot)

    async def _restart_polling(self) -> None:
        theater = self._session.theater
        if not self._is_open or not theater or not self._session.date:
            await self._poller.stop()
            self._poller.clear()
            return
        await self._poller.refresh(self._session.date, theater.name)
        self._poller.start(self._session.date, theater.name)

    def _should_report_incomplete(self) -> bool:
        outcome = self._payment.outcome
        if outcome is not None:
            return False
        draft = self._form.draft
        if not draft.email.strip():
            return False
        return self.has_unsaved_changes()

    async def _send_incomplete(self) -> None:
        breakdown = self.price_breakdown()
        payload = build_incomplete_payload(
            self._form.draft,
            self._session,
            self._pricing,
            breakdown,
            include_discounts=self._coupons.state.is_applied,
        )
        try:
            accepted = await self._notifier.send_incomplete(payload)
        except WizardError as e:
            self._logger.warning("Incomplete booking report failed", extra={"wizard_id": self.id, "error": e.message})
            return
        self._logger.info(
            "Incomplete booking reported",
            extra={"wizard_id": self.id, "reason": "accepted" if accepted else "rejected"},
        )
