from __future__ import annotations

from dataclasses import dataclass

from theater_booking.domain.entities.booking_draft import BookingDraft
from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.coupon import CouponState
from theater_booking.domain.entities.payment import CreatorInfo
from theater_booking.domain.entities.pricing import PriceBreakdown, PricingConfig, TheaterCapacity
from theater_booking.domain.entities.session_context import SessionContext


@dataclass(frozen=True)
class CheckoutContext:
    """Everything the payment flow needs, frozen at the moment checkout starts."""

    draft: BookingDraft
    session: SessionContext
    catalog: Catalog
    pricing: PricingConfig
    capacity: TheaterCapacity
    breakdown: PriceBreakdown
    coupon: CouponState
    manual_mode: bool = False
    manual_discount: float = 0.0
    creator: CreatorInfo | None = None
    editing_booking_id: str | None = None
    editing_slot: tuple[str | None, str | None] | None = None  # (date, time_slot) of the booking being edited
    booked_slots: tuple[str, ...] = ()

    @property
    def is_editing(self) -> bool:
        return self.editing_booking_id is not None
