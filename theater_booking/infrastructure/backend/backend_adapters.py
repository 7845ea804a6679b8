from __future__ import annotations

import asyncio
import logging
from typing import Any

from theater_booking.application.exceptions import CouponError, NetworkFetchError
from theater_booking.application.ports.booking_gateway import BookingSubmissionPort
from theater_booking.application.ports.catalog import CatalogPort
from theater_booking.application.ports.coupon import CouponValidatorPort
from theater_booking.application.ports.notifications import IncompleteBookingNotifierPort
from theater_booking.application.ports.slot_availability import SlotAvailabilityPort
from theater_booking.application.use_cases.pricing import default_pricing
from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.coupon import CouponValidation
from theater_booking.domain.entities.payment import SubmissionResult
from theater_booking.domain.entities.pricing import PricingConfig
from theater_booking.infrastructure.backend.backend_client import BackendClient, BackendResponse
from theater_booking.infrastructure.backend.catalog_mapper import map_catalog, map_pricing


def _list_field(response: BackendResponse, key: str) -> list[dict[str, Any]]:
    value = response.body.get(key)
    if not response.ok or not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


class HttpCatalog(CatalogPort):
    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._logger = logging.getLogger(__name__)

    async def fetch_catalog(self) -> Catalog:
        theaters, services, occasions = await asyncio.gather(
            self._client.get("/api/admin/theaters"),
            self._client.get("/api/admin/services"),
            self._client.get("/api/occasions"),
        )
        return map_catalog(
            _list_field(theaters, "theaters"),
            _list_field(services, "services"),
            _list_field(occasions, "occasions"),
        )

    async def fetch_pricing(self) -> PricingConfig:
        response = await self._client.get("/api/pricing")
        pricing = response.body.get("pricing")
        if not response.ok or not isinstance(pricing, dict):
            raise NetworkFetchError("Pricing Unavailable", str(response.body.get("error") or "No pricing returned."))
        return map_pricing(pricing, default_pricing())


class HttpCouponValidator(CouponValidatorPort):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def validate(self, code: str, amount: float) -> CouponValidation:
        try:
            response = await self._client.post("/api/coupons/validate", {"code": code, "amount": amount})
        except NetworkFetchError as e:
            raise CouponError("Coupon Error", "Unable to validate coupon") from e

        body = response.body
        coupon = body.get("coupon") if isinstance(body.get("coupon"), dict) else {}
        discount_value = coupon.get("discountValue")
        return CouponValidation(
            success=bool(body.get("success")),
            discount_amount=float(body.get("discountAmount") or 0),
            discount_type=coupon.get("discountType"),
            discount_value=float(discount_value) if isinstance(discount_value, (int, float)) else None,
            coupon_code=coupon.get("couponCode"),
            error=body.get("error"),
        )


class HttpBookingGateway(BookingSubmissionPort):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def create_booking(self, payload: dict[str, Any]) -> SubmissionResult:
        return self._to_result(await self._client.post("/api/new-booking", payload))

    async def update_booking(self, booking_id: str, payload: dict[str, Any]) -> SubmissionResult:
        response = await self._client.post("/api/admin/edit-booking", {"bookingId": booking_id, "data": payload})
        return self._to_result(response)

    def _to_result(self, response: BackendResponse) -> SubmissionResult:
        body = response.body
        if response.ok:
            booking_id = body.get("bookingId")
            return SubmissionResult(success=True, booking_id=str(booking_id) if booking_id else None)
        return SubmissionResult(
            success=False,
            error=body.get("error"),
            conflict=response.status_code == 409,
        )


class HttpSlotAvailability(SlotAvailabilityPort):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def booked_slots(self, date: str, theater_name: str) -> list[str]:
        response = await self._client.get("/api/booked-slots", params={"date": date, "theater": theater_name})
        slots = response.body.get("bookedTimeSlots")
        if not response.ok or not isinstance(slots, list):
            return []
        return [str(slot) for slot in slots]


class HttpIncompleteNotifier(IncompleteBookingNotifierPort):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def send_incomplete(self, payload: dict[str, Any]) -> bool:
        response = await self._client.post("/api/email/incomplete", payload)
        return response.ok
