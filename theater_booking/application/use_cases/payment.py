from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from theater_booking.application.exceptions import (
    ConflictError,
    FormValidationError,
    InvalidTransitionError,
    NetworkFetchError,
    PaymentGatewayError,
    SubmissionError,
    WizardError,
)
from theater_booking.application.ports.booking_gateway import BookingSubmissionPort
from theater_booking.application.ports.payment_gateway import PaymentGatewayPort
from theater_booking.application.use_cases.pricing import split_payment
from theater_booking.application.use_cases.validation import ValidationInput, validate_final
from theater_booking.application.utils.booking_payload import build_booking_payload
from theater_booking.application.utils.money import format_amount, parse_amount_input
from theater_booking.application.utils.schedule import business_now, is_within_cutoff
from theater_booking.core.config import settings
from theater_booking.domain.entities.checkout import CheckoutContext
from theater_booking.domain.entities.payment import (
    BookingOutcome,
    GatewayRequest,
    PartialPaymentForm,
    PaymentMethod,
    PaymentPhase,
    SubmissionResult,
)

EDIT_SUCCESS_MESSAGE = "Booking updated successfully! Changes have been saved to our system."
OFFLINE_SUCCESS_MESSAGE = "Booking confirmed successfully! Our team will contact you to collect payment at the venue."
ONLINE_SUCCESS_MESSAGE = "Payment completed and booking confirmed successfully!"


class PaymentOrchestrator:
    """
    Drives checkout from the final step button to a persisted booking.

    Idle -> Validating -> one of OnlineGatewayPending, ManualMethodChoice,
    PartialPaymentEntry or DirectUpdate -> Submitting -> Success, or back to
    Idle with the error recorded. A single in-flight flag blocks a second
    submission while a gateway payment or a submission is outstanding.
    """

    def __init__(
        self,
        submission: BookingSubmissionPort,
        gateway: PaymentGatewayPort,
        clock: Callable[[], datetime] = business_now,
        cutoff_minutes: int | None = None,
    ) -> None:
        self._submission = submission
        self._gateway = gateway
        self._clock = clock
        self._cutoff_minutes = settings.BOOKING_CUTOFF_MINUTES if cutoff_minutes is None else cutoff_minutes
        self._phase = PaymentPhase.IDLE
        self._in_flight = False
        self._context: CheckoutContext | None = None
        self._partial_form: PartialPaymentForm | None = None
        self._pending_request: GatewayRequest | None = None
        self._generation = 0
        self._outcome: BookingOutcome | None = None
        self._last_error: WizardError | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def phase(self) -> PaymentPhase:
        return self._phase

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def outcome(self) -> BookingOutcome | None:
        return self._outcome

    @property
    def last_error(self) -> WizardError | None:
        return self._last_error

    @property
    def partial_form(self) -> PartialPaymentForm | None:
        return self._partial_form

    @property
    def pending_request(self) -> GatewayRequest | None:
        """The gateway request awaiting a callback, if any."""
        return self._pending_request

    async def start(self, context: CheckoutContext) -> BookingOutcome | None:
        """
        Handle the final step button.
        Returns the outcome when the flow completes on its own (edit or online),
        or None when an operator still has to pick a manual payment method.
        """
        if self._in_flight or self._phase is not PaymentPhase.IDLE:
            self._logger.info("Checkout already in progress, ignoring", extra={"phase": self._phase.value})
            return None

        self._set_phase(PaymentPhase.VALIDATING)
        self._last_error = None
        try:
            self._validate(context)
        except WizardError as e:
            self._fail(e)
            raise

        self._context = context
        if context.is_editing:
            self._set_phase(PaymentPhase.DIRECT_UPDATE)
            method = PaymentMethod.CASH if context.manual_mode else PaymentMethod.ONLINE
            advance, venue = split_payment(context.breakdown.final_total, context.breakdown.slot_booking_fee)
            return await self._submit(
                advance=advance,
                venue=venue,
                slot_fee=context.breakdown.slot_booking_fee,
                method=method,
            )

        if context.manual_mode:
            self._set_phase(PaymentPhase.MANUAL_METHOD_CHOICE)
            return None

        self._set_phase(PaymentPhase.ONLINE_GATEWAY_PENDING)
        return await self._collect_online(context)

    async def choose_manual_method(self, method: PaymentMethod) -> BookingOutcome | None:
        self._require_phase(PaymentPhase.MANUAL_METHOD_CHOICE)
        if method is PaymentMethod.ONLINE:
            raise InvalidTransitionError("Invalid Payment Method", "Choose cash or UPI for a manual booking.")
        context = self._require_context()
        advance, venue = split_payment(context.breakdown.final_total, context.breakdown.slot_booking_fee)
        return await self._submit(
            advance=advance,
            venue=venue,
            slot_fee=context.breakdown.slot_booking_fee,
            method=method,
        )

    def open_partial_payment(self, method: PaymentMethod = PaymentMethod.UPI) -> PartialPaymentForm:
        self._require_phase(PaymentPhase.MANUAL_METHOD_CHOICE)
        context = self._require_context()
        default_fee = context.breakdown.slot_booking_fee or context.pricing.slot_booking_fee
        self._partial_form = PartialPaymentForm(
            method=method,
            slot_booking_fee=format_amount(default_fee) if default_fee else "",
        )
        self._set_phase(PaymentPhase.PARTIAL_PAYMENT_ENTRY)
        return self._partial_form

    async def confirm_partial_payment(
        self,
        amount_received: str | float | None,
        slot_booking_fee: str | float | None = None,
        method: PaymentMethod | None = None,
    ) -> BookingOutcome | None:
        self._require_phase(PaymentPhase.PARTIAL_PAYMENT_ENTRY)
        context = self._require_context()
        total = context.breakdown.final_total

        entered_fee = parse_amount_input(slot_booking_fee)
        slot_fee = entered_fee if entered_fee is not None and entered_fee > 0 else context.breakdown.slot_booking_fee
        if not slot_fee or slot_fee <= 0:
            raise FormValidationError("Invalid Slot Booking Fee", "Please enter a valid Slot Booking Fee.")
        if total > 0 and slot_fee > total:
            raise FormValidationError(
                "Invalid Slot Booking Fee",
                f"Slot Booking Fee cannot be more than Total Amount (₹{format_amount(total)}).",
            )

        received = parse_amount_input(amount_received)
        if received is None or received <= 0:
            raise FormValidationError("Invalid Partial Payment", "Please enter a valid amount received.")
        if received > slot_fee:
            raise FormValidationError(
                "Invalid Partial Payment",
                f"Partial payment cannot be more than Slot Booking Fee (₹{format_amount(slot_fee)}).",
            )

        chosen = method or (self._partial_form.method if self._partial_form else PaymentMethod.UPI)
        return await self._submit(
            advance=received,
            venue=total - received,
            slot_fee=slot_fee,
            method=chosen,
            payment_status="partial",
        )

    def cancel(self) -> None:
        """Back out of the manual method or partial payment dialogs."""
        if self._phase in (PaymentPhase.MANUAL_METHOD_CHOICE, PaymentPhase.PARTIAL_PAYMENT_ENTRY):
            self._partial_form = None
            self._context = None
            self._set_phase(PaymentPhase.IDLE)

    def abandon(self) -> None:
        """Forget any pending gateway or submission result; used when the wizard closes."""
        self._generation += 1
        self._in_flight = False
        self._context = None
        self._partial_form = None
        self._pending_request = None
        self._outcome = None
        self._last_error = None
        self._phase = PaymentPhase.IDLE

    def _validate(self, context: CheckoutContext) -> None:
        session = context.session
        if is_within_cutoff(session.date, session.time_slot, self._clock(), self._cutoff_minutes):
            raise FormValidationError(
                "Booking Not Allowed",
                "Booking is not allowed within 1 hour of the selected time slot. Please select a different time.",
            )

        issue = validate_final(
            ValidationInput(
                draft=context.draft,
                catalog=context.catalog,
                time_slot=session.time_slot,
                capacity=context.capacity,
            )
        )
        if issue is not None:
            raise issue.to_error()

        if session.time_slot and session.time_slot in context.booked_slots:
            own_slot = context.is_editing and context.editing_slot == (session.date, session.time_slot)
            if not own_slot:
                raise ConflictError(
                    "Time Slot Already Booked",
                    "This time slot was just booked by another user. Please select a different time slot.",
                )

    async def _collect_online(self, context: CheckoutContext) -> BookingOutcome | None:
        advance, venue = split_payment(context.breakdown.final_total, context.breakdown.slot_booking_fee)
        draft = context.draft
        request = GatewayRequest(
            reference=uuid.uuid4().hex,
            amount_minor=round(advance * 100),
            currency=settings.PAYMENT_CURRENCY,
            description="Slot Booking Fee",
            prefill={"name": draft.name, "email": draft.email, "contact": draft.phone},
            notes={
                "theater": context.session.theater.name if context.session.theater else "",
                "date": context.session.date or "",
                "time": context.session.time_slot or "",
                "occasion": draft.occasion,
            },
        )

        generation = self._generation
        self._in_flight = True
        self._pending_request = request
        try:
            result = await self._gateway.collect(request)
        except PaymentGatewayError as e:
            if generation == self._generation:
                self._fail(e)
            raise
        finally:
            if self._pending_request is request:
                self._pending_request = None

        if generation != self._generation:
            self._logger.info("Gateway result discarded after close", extra={"reason": "abandoned"})
            return None

        if not result.succeeded:
            if result.status == "dismissed":
                error = PaymentGatewayError(
                    "Payment Cancelled",
                    "Payment was cancelled before completion. You can try again whenever you are ready.",
                )
            else:
                error = PaymentGatewayError(
                    "Payment Failed",
                    result.error or "Payment failed or was cancelled. Please try again.",
                )
            self._fail(error)
            raise error

        self._logger.info("Gateway payment captured", extra={"phase": self._phase.value})
        return await self._submit(
            advance=advance,
            venue=venue,
            slot_fee=context.breakdown.slot_booking_fee,
            method=PaymentMethod.ONLINE,
            extra={
                "gatewayPaymentId": result.payment_id,
                "gatewayOrderId": result.order_id,
                "gatewaySignature": result.signature,
            },
            failure_title="Booking Confirmation Failed",
            failure_message=(
                "Payment was successful, but we could not confirm your booking. "
                "Please contact support with your payment details."
            ),
        )

    async def _submit(
        self,
        advance: float,
        venue: float,
        slot_fee: float,
        method: PaymentMethod,
        payment_status: str | None = None,
        extra: dict[str, Any] | None = None,
        failure_title: str | None = None,
        failure_message: str | None = None,
    ) -> BookingOutcome | None:
        context = self._require_context()
        editing = context.is_editing
        self._set_phase(PaymentPhase.SUBMITTING)
        self._in_flight = True
        generation = self._generation

        payload = build_booking_payload(
            context,
            advance_payment=advance,
            venue_payment=venue,
            slot_booking_fee=slot_fee,
            method=method,
            payment_status=payment_status,
            paid_at=self._clock(),
            extra=extra,
        )

        try:
            if editing:
                result = await self._submission.update_booking(context.editing_booking_id or "", payload)
            else:
                result = await self._submission.create_booking(payload)
        except NetworkFetchError as e:
            if generation != self._generation:
                return None
            verb = "updating" if editing else "saving"
            error = SubmissionError(
                failure_title or ("Booking Update Error" if editing else "Booking Save Error"),
                f"Something went wrong while {verb} your booking. Please try again.",
            )
            self._logger.error("Booking submission error", extra={"error": e.message})
            self._fail(error)
            raise error from e

        if generation != self._generation:
            self._logger.info("Submission result discarded after close", extra={"reason": "abandoned"})
            return None

        return self._finish(result, context, method, failure_title, failure_message)

    def _finish(
        self,
        result: SubmissionResult,
        context: CheckoutContext,
        method: PaymentMethod,
        failure_title: str | None,
        failure_message: str | None,
    ) -> BookingOutcome:
        editing = context.is_editing
        if result.success:
            if editing:
                message = EDIT_SUCCESS_MESSAGE
            elif method is PaymentMethod.ONLINE:
                message = ONLINE_SUCCESS_MESSAGE
            else:
                message = OFFLINE_SUCCESS_MESSAGE
            self._outcome = BookingOutcome(
                booking_id=result.booking_id or context.editing_booking_id,
                message=message,
                was_editing=editing,
                payment_method=method,
            )
            self._in_flight = False
            self._set_phase(PaymentPhase.SUCCESS)
            self._logger.info("Booking submitted", extra={"booking_id": self._outcome.booking_id})
            return self._outcome

        error: WizardError
        if result.conflict:
            error = ConflictError(
                "Time Slot Already Booked",
                result.error or "This time slot was just booked by another user. Please select a different time slot.",
            )
        else:
            error = SubmissionError(
                failure_title or ("Booking Update Failed" if editing else "Booking Save Failed"),
                result.error or failure_message or "Unable to save booking. Please try again.",
            )
        self._logger.error("Booking rejected", extra={"error": result.error, "reason": error.kind})
        self._fail(error)
        raise error

    def _fail(self, error: WizardError) -> None:
        self._last_error = error
        self._set_phase(PaymentPhase.FAILED)
        self._in_flight = False
        self._context = None
        self._partial_form = None
        self._set_phase(PaymentPhase.IDLE)

    def _require_phase(self, phase: PaymentPhase) -> None:
        if self._in_flight or self._phase is not phase:
            raise InvalidTransitionError(
                "Payment Step Unavailable",
                f"This action is not available while checkout is {self._phase.value.replace('_', ' ')}.",
            )

    def _require_context(self) -> CheckoutContext:
        if self._context is None:
            raise InvalidTransitionError("Payment Step Unavailable", "Checkout has not been started.")
        return self._context

    def _set_phase(self, phase: PaymentPhase) -> None:
        if phase is not self._phase:
            self._logger.info("Checkout phase changed", extra={"phase": phase.value})
        self._phase = phase
