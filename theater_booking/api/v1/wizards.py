from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Response

from theater_booking.api.v1.schemas import (
    CapacitySchema,
    ContinueRequest,
    CouponRequest,
    CouponSchema,
    CustomerRequest,
    DateRequest,
    DraftSchema,
    ErrorSchema,
    GatewayCallbackRequest,
    GatewayRequestSchema,
    HandoffRequest,
    HandoffResponse,
    HeadcountRequest,
    ManualDiscountRequest,
    ManualMethodRequest,
    MoviesRequest,
    NoticeSchema,
    OccasionFieldRequest,
    OccasionRequest,
    OpenWizardRequest,
    OutcomeSchema,
    PartialFormSchema,
    PartialPaymentConfirmRequest,
    PartialPaymentOpenRequest,
    PaymentSchema,
    PriceSchema,
    SelectedItemSchema,
    SessionSchema,
    StepMoveSchema,
    StepRequest,
    StepResponse,
    TermsRequest,
    TheaterRequest,
    TimeSlotRequest,
    ToggleItemResponse,
    ToggleRequest,
    WizardView,
)
from theater_booking.application.use_cases.wizard import BookingWizard, StepMove
from theater_booking.core.config import settings
from theater_booking.domain.entities.booking_draft import SelectedItem
from theater_booking.domain.entities.catalog import TheaterInfo
from theater_booking.domain.entities.handoff import DraftHandoff
from theater_booking.domain.entities.notice import Notice
from theater_booking.domain.entities.payment import CreatorInfo, GatewayResult, PaymentMethod
from theater_booking.domain.entities.session_context import SessionContext
from theater_booking.infrastructure.payments.callback_gateway import CallbackPaymentGateway
from theater_booking.infrastructure.store.memory_store import MemoryHandoffStore, MemoryWizardStore
from theater_booking.wiring.dependencies import (
    build_wizard,
    get_catalog_loader,
    get_handoff_store,
    get_payment_gateway,
    get_wizard_store,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_checkout_tasks: dict[str, asyncio.Task] = {}


def get_wizard(wizard_id: str, store: MemoryWizardStore = Depends(get_wizard_store)) -> BookingWizard:
    wizard = store.get(wizard_id)
    if wizard is None or not wizard.is_open:
        raise HTTPException(status_code=404, detail="Wizard not found")
    return wizard


def _item(item: SelectedItem) -> SelectedItemSchema:
    return SelectedItemSchema(id=item.item_id, name=item.name, price=item.price, quantity=item.quantity)


def _notice(notice: Notice) -> NoticeSchema:
    return NoticeSchema(kind=notice.kind, message=notice.message, duration_ms=notice.duration_ms)


def _payment(wizard: BookingWizard) -> PaymentSchema:
    outcome = wizard.outcome
    form = wizard.partial_form
    pending = wizard.pending_payment
    error = wizard.last_error
    return PaymentSchema(
        phase=wizard.payment_phase.value,
        outcome=(
            OutcomeSchema(
                booking_id=outcome.booking_id,
                message=outcome.message,
                was_editing=outcome.was_editing,
                payment_method=outcome.payment_method.value,
            )
            if outcome
            else None
        ),
        partial_form=(
            PartialFormSchema(
                method=form.method.value,
                slot_booking_fee=form.slot_booking_fee,
                amount_received=form.amount_received,
            )
            if form
            else None
        ),
        pending=(
            GatewayRequestSchema(
                reference=pending.reference,
                amount_minor=pending.amount_minor,
                currency=pending.currency,
                description=pending.description,
                key_id=settings.PAYMENT_GATEWAY_KEY,
                prefill=pending.prefill,
                notes=pending.notes,
            )
            if pending
            else None
        ),
        last_error=ErrorSchema(title=error.title, message=error.message, kind=error.kind) if error else None,
    )


def _view(wizard: BookingWizard) -> WizardView:
    draft = wizard.draft
    breakdown = wizard.price_breakdown()
    capacity = wizard.capacity
    coupon = wizard.coupon
    session = wizard.session
    return WizardView(
        id=wizard.id,
        active_step=wizard.active_step,
        steps=wizard.steps,
        draft=DraftSchema(
            name=draft.name,
            phone=draft.phone,
            email=draft.email,
            headcount=draft.headcount,
            occasion=draft.occasion,
            occasion_fields=dict(draft.occasion_fields),
            want_movies=draft.want_movies,
            movie=_item(draft.movie) if draft.movie else None,
            decoration_enabled=draft.decoration_enabled,
            service_flags=dict(draft.service_flags),
            selected_items={name: [_item(i) for i in items] for name, items in draft.selected_items.items()},
            skipped_services=sorted(draft.skipped_services),
            coupon_code=draft.coupon_code,
            agree_to_terms=draft.agree_to_terms,
        ),
        session=SessionSchema(
            theater_name=session.theater.name if session.theater else None,
            date=session.date,
            time_slot=session.time_slot,
        ),
        capacity=CapacitySchema(min=capacity.min, max=capacity.max),
        price=PriceSchema(
            base_price=breakdown.base_price,
            extra_guests=breakdown.extra_guests,
            extra_guest_charges=breakdown.extra_guest_charges,
            decoration_fee=breakdown.decoration_fee,
            items_total=breakdown.items_total,
            subtotal=breakdown.subtotal,
            coupon_discount=breakdown.coupon_discount,
            manual_discount=breakdown.manual_discount,
            final_total=breakdown.final_total,
            slot_booking_fee=breakdown.slot_booking_fee,
            venue_payment=breakdown.venue_payment,
            advance_payment=breakdown.advance_payment,
        ),
        coupon=CouponSchema(
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            discount_amount=coupon.discount_amount,
            applying=wizard.coupon_applying,
        ),
        booked_slots=wizard.booked_slots,
        payment=_payment(wizard),
        notices=[_notice(n) for n in wizard.drain_notices()],
        manual_mode=wizard.manual_mode,
        manual_discount=wizard.manual_discount,
        editing_booking_id=wizard.editing_booking_id,
        has_unsaved_changes=wizard.has_unsaved_changes(),
    )


def _step_response(move: StepMove, wizard: BookingWizard) -> StepResponse:
    return StepResponse(
        move=StepMoveSchema(step=move.step, moved=move.moved, confirmation=move.confirmation, final=move.final),
        wizard=_view(wizard),
    )


@router.post("/catalog/preload", status_code=204)
async def preload_catalog() -> Response:
    await get_catalog_loader().preload()
    return Response(status_code=204)


@router.post("/handoffs", response_model=HandoffResponse, status_code=201)
async def create_handoff(
    req: HandoffRequest,
    store: MemoryHandoffStore = Depends(get_handoff_store),
):
    token = store.put(
        DraftHandoff(
            origin=req.origin,
            created_at=time.time(),
            editing_booking=req.editing_booking,
            movie_title=req.movie_title,
            theater_name=req.theater_name,
            date=req.date,
            time_slot=req.time_slot,
        )
    )
    return HandoffResponse(token=token, expires_in_seconds=settings.HANDOFF_TTL_SECONDS)


@router.post("/wizards", response_model=WizardView, status_code=201)
async def open_wizard(
    req: OpenWizardRequest,
    store: MemoryWizardStore = Depends(get_wizard_store),
):
    wizard = build_wizard()
    creator = CreatorInfo(**req.creator.model_dump()) if req.creator else None
    await wizard.open(
        session=SessionContext(
            theater=TheaterInfo(name=req.theater_name) if req.theater_name else None,
            date=req.date,
            time_slot=req.time_slot,
        ),
        handoff_token=req.handoff_token,
        editing_booking=req.editing_booking,
        manual_mode=req.manual_mode,
        creator=creator,
    )
    store.add(wizard)
    return _view(wizard)


@router.get("/wizards/{wizard_id}", response_model=WizardView)
async def read_wizard(wizard: BookingWizard = Depends(get_wizard)):
    return _view(wizard)


@router.delete("/wizards/{wizard_id}", status_code=204)
async def close_wizard(
    wizard: BookingWizard = Depends(get_wizard),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> Response:
    task = _checkout_tasks.pop(wizard.id, None)
    await wizard.close()
    if task is not None and not task.done():
        task.cancel()
    store.remove(wizard.id)
    return Response(status_code=204)


@router.patch("/wizards/{wizard_id}/customer", response_model=WizardView)
async def update_customer(req: CustomerRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.update_customer(name=req.name, phone=req.phone, email=req.email)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/theater", response_model=WizardView)
async def select_theater(req: TheaterRequest, wizard: BookingWizard = Depends(get_wizard)):
    await wizard.select_theater(req.name)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/date", response_model=WizardView)
async def select_date(req: DateRequest, wizard: BookingWizard = Depends(get_wizard)):
    await wizard.select_date(req.date)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/time-slot", response_model=WizardView)
async def select_time_slot(req: TimeSlotRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.select_time_slot(req.time_slot)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/headcount", response_model=WizardView)
async def set_headcount(req: HeadcountRequest, wizard: BookingWizard = Depends(get_wizard)):
    if req.action is not None:
        wizard.change_headcount(req.action.value)
    elif req.headcount is not None:
        wizard.set_headcount(req.headcount)
    else:
        raise HTTPException(status_code=400, detail="Provide headcount or action")
    return _view(wizard)


@router.put("/wizards/{wizard_id}/decoration", response_model=WizardView)
async def set_decoration(req: ToggleRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.set_decoration(req.enabled)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/services/{service_name}", response_model=WizardView)
async def set_service(service_name: str, req: ToggleRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.set_service(service_name, req.enabled)
    return _view(wizard)


@router.post("/wizards/{wizard_id}/services/{service_name}/items/{item_name}/toggle", response_model=ToggleItemResponse)
async def toggle_item(service_name: str, item_name: str, wizard: BookingWizard = Depends(get_wizard)):
    notice = wizard.toggle_item(service_name, item_name)
    view = _view(wizard)
    return ToggleItemResponse(notice=_notice(notice) if notice else None, wizard=view)


@router.put("/wizards/{wizard_id}/movies", response_model=WizardView)
async def set_movies(req: MoviesRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.set_want_movies(req.want_movies)
    if req.want_movies and req.title:
        wizard.select_movie(req.title)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/occasion", response_model=WizardView)
async def select_occasion(req: OccasionRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.select_occasion(req.name)
    for key, value in req.fields.items():
        wizard.update_occasion_field(key, value)
    return _view(wizard)


@router.patch("/wizards/{wizard_id}/occasion/fields", response_model=WizardView)
async def update_occasion_field(req: OccasionFieldRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.update_occasion_field(req.key, req.value)
    return _view(wizard)


@router.put("/wizards/{wizard_id}/terms", response_model=WizardView)
async def set_terms(req: TermsRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.set_agree_to_terms(req.agreed)
    return _view(wizard)


@router.post("/wizards/{wizard_id}/coupon", response_model=WizardView)
async def apply_coupon(req: CouponRequest, wizard: BookingWizard = Depends(get_wizard)):
    await wizard.apply_coupon(req.code)
    return _view(wizard)


@router.delete("/wizards/{wizard_id}/coupon", response_model=WizardView)
async def remove_coupon(wizard: BookingWizard = Depends(get_wizard)):
    wizard.remove_coupon()
    return _view(wizard)


@router.put("/wizards/{wizard_id}/manual-discount", response_model=WizardView)
async def set_manual_discount(req: ManualDiscountRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.set_manual_discount(req.amount)
    return _view(wizard)


@router.post("/wizards/{wizard_id}/steps/continue", response_model=StepResponse)
async def continue_step(req: ContinueRequest, wizard: BookingWizard = Depends(get_wizard)):
    return _step_response(wizard.continue_step(confirmed=req.confirmed), wizard)


@router.post("/wizards/{wizard_id}/steps/back", response_model=StepResponse)
async def back(wizard: BookingWizard = Depends(get_wizard)):
    return _step_response(wizard.back(), wizard)


@router.post("/wizards/{wizard_id}/steps/skip", response_model=StepResponse)
async def skip(wizard: BookingWizard = Depends(get_wizard)):
    return _step_response(wizard.skip(), wizard)


@router.put("/wizards/{wizard_id}/steps/active", response_model=WizardView)
async def jump_to(req: StepRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.jump_to(req.step)
    return _view(wizard)


@router.post("/wizards/{wizard_id}/checkout", response_model=WizardView)
async def checkout(response: Response, wizard: BookingWizard = Depends(get_wizard)):
    """
    Start checkout. Returns 200 once the flow settles (booked, waiting for a
    manual method, or failed) and 202 while a gateway payment is outstanding.
    """
    running = _checkout_tasks.get(wizard.id)
    if running is not None and not running.done():
        response.status_code = 202
        return _view(wizard)

    task = asyncio.create_task(wizard.checkout())
    _checkout_tasks[wizard.id] = task
    done, _ = await asyncio.wait({task}, timeout=settings.CHECKOUT_RESPONSE_WAIT_SECONDS)
    if task in done:
        _checkout_tasks.pop(wizard.id, None)
        task.result()
    else:
        task.add_done_callback(lambda t, wid=wizard.id: _settle_background_checkout(wid, t))
        response.status_code = 202
    return _view(wizard)


def _settle_background_checkout(wizard_id: str, task: asyncio.Task) -> None:
    if _checkout_tasks.get(wizard_id) is task:
        _checkout_tasks.pop(wizard_id, None)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        # surfaced through payment.last_error on the next read
        logger.info("Background checkout ended with error", extra={"wizard_id": wizard_id, "error": str(error)})


@router.post("/wizards/{wizard_id}/checkout/manual-method", response_model=WizardView)
async def choose_manual_method(req: ManualMethodRequest, wizard: BookingWizard = Depends(get_wizard)):
    await wizard.choose_manual_method(PaymentMethod(req.method.value))
    return _view(wizard)


@router.post("/wizards/{wizard_id}/checkout/partial", response_model=WizardView)
async def open_partial_payment(req: PartialPaymentOpenRequest, wizard: BookingWizard = Depends(get_wizard)):
    wizard.open_partial_payment(PaymentMethod(req.method.value))
    return _view(wizard)


@router.post("/wizards/{wizard_id}/checkout/partial/confirm", response_model=WizardView)
async def confirm_partial_payment(req: PartialPaymentConfirmRequest, wizard: BookingWizard = Depends(get_wizard)):
    await wizard.confirm_partial_payment(
        req.amount_received,
        req.slot_booking_fee,
        PaymentMethod(req.method.value) if req.method else None,
    )
    return _view(wizard)


@router.post("/wizards/{wizard_id}/checkout/cancel", response_model=WizardView)
async def cancel_payment(wizard: BookingWizard = Depends(get_wizard)):
    wizard.cancel_payment()
    return _view(wizard)


@router.post("/payments/{reference}/callback", status_code=204)
async def payment_callback(reference: str, req: GatewayCallbackRequest) -> Response:
    gateway = get_payment_gateway()
    if not isinstance(gateway, CallbackPaymentGateway):
        raise HTTPException(status_code=404, detail="No pending payment")
    delivered = gateway.resolve(
        reference,
        GatewayResult(
            status=req.status.value,
            payment_id=req.payment_id,
            order_id=req.order_id,
            signature=req.signature,
            error=req.error,
        ),
    )
    if not delivered:
        raise HTTPException(status_code=404, detail="No pending payment")
    logger.info("Gateway callback delivered", extra={"reason": reference})
    return Response(status_code=204)
