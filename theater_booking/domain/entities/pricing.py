from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TheaterCapacity:
    min: int
    max: int

    @property
    def is_fixed(self) -> bool:
        return self.min == self.max

    def clamp(self, headcount: int) -> int:
        return max(self.min, min(headcount, self.max))


@dataclass(frozen=True)
class PricingConfig:
    slot_booking_fee: float
    extra_guest_fee: float
    convenience_fee: float
    decoration_fees: float

    def as_payload(self) -> dict[str, float]:
        return {
            "slotBookingFee": self.slot_booking_fee,
            "extraGuestFee": self.extra_guest_fee,
            "convenienceFee": self.convenience_fee,
            "decorationFees": self.decoration_fees,
        }


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: float
    extra_guests: int
    extra_guest_charges: float
    decoration_fee: float
    items_total: float
    subtotal: float  # before any discount
    coupon_discount: float
    manual_discount: float
    final_total: float
    slot_booking_fee: float
    advance_payment: float  # slot fee capped at the final total
    venue_payment: float  # final_total - advance_payment
