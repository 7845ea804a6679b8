from __future__ import annotations

from datetime import date, datetime
from typing import Any

from theater_booking.application.use_cases.pricing import resolve_item_price
from theater_booking.application.utils.money import format_amount
from theater_booking.core.config import settings
from theater_booking.domain.entities.booking_draft import BookingDraft, SelectedItem
from theater_booking.domain.entities.catalog import Catalog, ServiceCatalogEntry, service_field_name, slugify_item
from theater_booking.domain.entities.checkout import CheckoutContext
from theater_booking.domain.entities.payment import PaymentMethod
from theater_booking.domain.entities.pricing import PriceBreakdown, PricingConfig
from theater_booking.domain.entities.session_context import SessionContext

MOVIES_FIELD = "selectedMovies"


def normalize_item(item: SelectedItem, service: ServiceCatalogEntry | None) -> dict[str, Any]:
    return {
        "id": item.item_id or slugify_item(item.name),
        "name": item.name,
        "price": resolve_item_price(service, item),
        "quantity": item.quantity if item.quantity > 0 else 1,
    }


def normalize_movie(movie: SelectedItem) -> dict[str, Any]:
    return {
        "id": movie.item_id or slugify_item(movie.name, "_"),
        "name": movie.name,
        "price": 0,
        "quantity": 1,
    }


def service_item_fields(draft: BookingDraft, catalog: Catalog) -> dict[str, list[dict[str, Any]]]:
    """Every service item list keyed by its payload field, e.g. "selectedCakes"."""
    fields: dict[str, list[dict[str, Any]]] = {}
    for service_name, items in draft.selected_items.items():
        service = catalog.service(service_name)
        fields[service_field_name(service_name)] = [normalize_item(item, service) for item in items]
    fields[MOVIES_FIELD] = [normalize_movie(draft.movie)] if draft.movie else []
    return fields


def _pricing_snapshot(
    pricing: PricingConfig,
    breakdown: PriceBreakdown,
    slot_fee: float,
    manual_discount: float,
) -> dict[str, Any]:
    snapshot: dict[str, Any] = pricing.as_payload()
    snapshot.update(
        {
            "slotBookingFee": slot_fee,
            "theaterBasePrice": breakdown.base_price,
            "discountByCoupon": breakdown.coupon_discount,
            "discount": manual_discount,
        }
    )
    return snapshot


def _schedule_fields(session: SessionContext) -> dict[str, Any]:
    return {
        "theaterName": session.theater.name if session.theater else "",
        "date": session.date or date.today().isoformat(),
        "time": session.time_slot or "",
    }


def build_booking_payload(
    context: CheckoutContext,
    advance_payment: float,
    venue_payment: float,
    slot_booking_fee: float,
    method: PaymentMethod,
    payment_status: str | None = None,
    paid_at: datetime | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    draft = context.draft
    breakdown = context.breakdown
    coupon = context.coupon
    manual = context.manual_mode
    manual_discount = context.manual_discount if manual else 0.0
    decoration_fee = context.pricing.decoration_fees if draft.decoration_enabled else 0

    payload: dict[str, Any] = {
        "name": draft.name,
        "email": draft.email,
        "phone": draft.phone,
        **_schedule_fields(context.session),
        "occasion": draft.occasion,
        "occasionData": dict(draft.occasion_fields),
        "wantDecorItems": "Yes" if draft.decoration_enabled else "No",
        "numberOfPeople": draft.headcount,
        **service_item_fields(draft, context.catalog),
        "totalAmount": breakdown.final_total,
        "totalAmountBeforeDiscount": breakdown.subtotal,
        "totalAmountAfterDiscount": breakdown.final_total,
        "discountAmount": coupon.discount_amount,
        "discountSummary": coupon.summary(),
        "DiscountByCoupon": coupon.discount_amount,
        "advancePayment": advance_payment,
        "venuePayment": venue_payment,
        "slotBookingFee": slot_booking_fee,
        "appliedCouponCode": coupon.code,
        "couponDiscount": coupon.discount_amount,
        "couponDiscountType": coupon.discount_type,
        "couponDiscountValue": coupon.discount_value,
        "status": "manual" if manual else "confirmed",
        "bookingType": "manual" if manual else "online",
        "isManualBooking": manual,
        "paymentMode": method.value,
        "venuePaymentMethod": method.value,
        "advancePaymentMethod": method.value,
        "pricingData": _pricing_snapshot(context.pricing, breakdown, slot_booking_fee, manual_discount),
        "decorationDropdownFee": context.pricing.decoration_fees or 0,
        "decorationFee": decoration_fee,
        "decorationAppliedFee": decoration_fee,
        "extraGuestCharges": breakdown.extra_guest_charges,
        "extraGuestsCount": breakdown.extra_guests,
    }
    if payment_status:
        payload["paymentStatus"] = payment_status

    if manual:
        payload["discount"] = manual_discount
        payload["Discount"] = manual_discount
        creator = context.creator
        if creator is not None:
            payload["createdBy"] = creator.as_metadata()
            if creator.staff_id:
                payload["staffId"] = creator.staff_id
            if creator.staff_name:
                payload["staffName"] = creator.staff_name
            if creator.admin_name:
                payload["adminName"] = creator.admin_name

        if payment_status == "partial":
            actor = creator.actor_label if creator else "Admin"
            method_label = "UPI" if method is PaymentMethod.UPI else "Cash"
            payload["paymentReceived"] = f"Partial ₹{format_amount(round(advance_payment))} ({method_label}) - {actor}"
            payload["paidBy"] = actor
            payload["paidAt"] = (paid_at or datetime.now()).isoformat()

    if extra:
        payload.update(extra)
    return payload


def build_incomplete_payload(
    draft: BookingDraft,
    session: SessionContext,
    pricing: PricingConfig,
    breakdown: PriceBreakdown,
    include_discounts: bool,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": draft.name,
        "email": draft.email,
        "phone": draft.phone,
        "theaterName": session.theater.name if session.theater else "",
        "date": session.date or "",
        "time": session.time_slot or "",
        "occasion": draft.occasion,
        "pricingData": pricing.as_payload(),
        "advancePayment": breakdown.advance_payment,
        "venuePayment": breakdown.venue_payment,
        "totalAmount": breakdown.final_total,
        "businessName": settings.BUSINESS_NAME,
    }
    if include_discounts:
        payload["totalAmountBeforeDiscount"] = breakdown.subtotal
        payload["totalAmountAfterDiscount"] = breakdown.final_total
        payload["discountAmount"] = breakdown.coupon_discount
    return payload
