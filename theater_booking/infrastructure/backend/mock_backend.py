from __future__ import annotations

import logging
import uuid
from typing import Any

from theater_booking.application.exceptions import CouponError
from theater_booking.application.ports.booking_gateway import BookingSubmissionPort
from theater_booking.application.ports.catalog import CatalogPort
from theater_booking.application.ports.coupon import CouponValidatorPort
from theater_booking.application.ports.notifications import IncompleteBookingNotifierPort
from theater_booking.application.ports.slot_availability import SlotAvailabilityPort
from theater_booking.application.use_cases.pricing import default_pricing
from theater_booking.domain.entities.catalog import (
    Catalog,
    OccasionDefinition,
    ServiceCatalogEntry,
    ServiceItem,
    TheaterInfo,
)
from theater_booking.domain.entities.coupon import CouponValidation
from theater_booking.domain.entities.payment import SubmissionResult
from theater_booking.domain.entities.pricing import PricingConfig, TheaterCapacity


def sample_catalog() -> Catalog:
    return Catalog(
        theaters=(
            TheaterInfo(
                name="EROS (COUPLES) (FMT-Hall-1)",
                theater_id="FMT-Hall-1",
                price="₹1,399",
                capacity=TheaterCapacity(min=2, max=2),
            ),
            TheaterInfo(
                name="PHILIA (FRIENDS) (FMT-Hall-2)",
                theater_id="FMT-Hall-2",
                price=1999,
                capacity=TheaterCapacity(min=4, max=12),
            ),
            TheaterInfo(
                name="PRAGMA (LOVE) (FMT-Hall-3)",
                theater_id="FMT-Hall-3",
                price=2999,
                capacity=TheaterCapacity(min=2, max=8),
                slot_booking_fee=1500,
                decoration_compulsory=True,
            ),
        ),
        services=(
            ServiceCatalogEntry(
                name="Decor Items",
                items=(
                    ServiceItem("rose-petals", "Rose Petals", 299),
                    ServiceItem("led-letters", "LED Letters", 499),
                ),
                include_in_decoration=True,
            ),
            ServiceCatalogEntry(
                name="Cakes",
                items=(
                    ServiceItem("chocolate-truffle", "Chocolate Truffle", 599),
                    ServiceItem("red-velvet", "Red Velvet", 699),
                ),
            ),
            ServiceCatalogEntry(
                name="Gifts",
                items=(ServiceItem("photo-frame", "Photo Frame", 399),),
            ),
            ServiceCatalogEntry(
                name="Food",
                items=(
                    ServiceItem("popcorn", "Popcorn", 149),
                    ServiceItem("nachos", "Nachos", 199),
                ),
                compulsory=True,
            ),
        ),
        occasions=(
            OccasionDefinition(
                name="Birthday Party",
                icon="🎂",
                popular=True,
                include_in_decoration=True,
                required_fields=("birthdayName",),
                field_labels={"birthdayName": "Birthday Person Name"},
            ),
            OccasionDefinition(
                name="Bride to be",
                icon="👰",
                include_in_decoration=True,
                required_fields=("nicknameOfBrideToBe",),
                field_labels={"nicknameOfBrideToBe": "Nickname of Bride to be"},
            ),
            OccasionDefinition(name="Movie Night", icon="🎬"),
        ),
    )


class MockCatalog(CatalogPort):
    def __init__(self, catalog: Catalog | None = None, pricing: PricingConfig | None = None) -> None:
        self._catalog = catalog or sample_catalog()
        self._pricing = pricing or default_pricing()

    async def fetch_catalog(self) -> Catalog:
        return self._catalog

    async def fetch_pricing(self) -> PricingConfig:
        return self._pricing


class MockCouponValidator(CouponValidatorPort):
    """Knows a fixed set of codes. Percentage codes are capped at the amount."""

    def __init__(self, coupons: dict[str, tuple[str, float]] | None = None, fail: bool = False) -> None:
        self._coupons = coupons if coupons is not None else {"WELCOME10": ("percentage", 10), "FLAT200": ("fixed", 200)}
        self._fail = fail
        self.calls: list[tuple[str, float]] = []

    async def validate(self, code: str, amount: float) -> CouponValidation:
        self.calls.append((code, amount))
        if self._fail:
            raise CouponError("Coupon Error", "Unable to validate coupon")
        found = self._coupons.get(code)
        if found is None:
            return CouponValidation(success=False, error="Invalid or expired coupon")
        discount_type, value = found
        discount = amount * value / 100 if discount_type == "percentage" else value
        return CouponValidation(
            success=True,
            discount_amount=round(min(discount, amount), 2),
            discount_type=discount_type,
            discount_value=value,
            coupon_code=code,
        )


class MockBookingGateway(BookingSubmissionPort):
    def __init__(self, reject_with: str | None = None, conflict: bool = False) -> None:
        self._reject_with = reject_with
        self._conflict = conflict
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self._logger = logging.getLogger(__name__)

    async def create_booking(self, payload: dict[str, Any]) -> SubmissionResult:
        if self._conflict or self._reject_with:
            return SubmissionResult(success=False, error=self._reject_with, conflict=self._conflict)
        self.created.append(payload)
        booking_id = f"FMT-{uuid.uuid4().hex[:8].upper()}"
        self._logger.info("Mock booking created", extra={"booking_id": booking_id})
        return SubmissionResult(success=True, booking_id=booking_id)

    async def update_booking(self, booking_id: str, payload: dict[str, Any]) -> SubmissionResult:
        if self._conflict or self._reject_with:
            return SubmissionResult(success=False, error=self._reject_with, conflict=self._conflict)
        self.updated.append((booking_id, payload))
        return SubmissionResult(success=True, booking_id=booking_id)


class MockSlotAvailability(SlotAvailabilityPort):
    def __init__(self, booked: dict[tuple[str, str], list[str]] | None = None) -> None:
        self.booked = booked or {}

    async def booked_slots(self, date: str, theater_name: str) -> list[str]:
        return list(self.booked.get((date, theater_name), []))


class MockIncompleteNotifier(IncompleteBookingNotifierPort):
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send_incomplete(self, payload: dict[str, Any]) -> bool:
        self.sent.append(payload)
        return True
