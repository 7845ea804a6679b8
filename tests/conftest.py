from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from theater_booking.application.use_cases.catalog_loader import CatalogLoader
from theater_booking.application.use_cases.coupon import CouponUseCase
from theater_booking.application.use_cases.payment import PaymentOrchestrator
from theater_booking.application.use_cases.slot_polling import SlotAvailabilityPoller
from theater_booking.application.use_cases.wizard import BookingWizard
from theater_booking.domain.entities.pricing import PricingConfig
from theater_booking.infrastructure.backend.mock_backend import (
    MockBookingGateway,
    MockCatalog,
    MockCouponValidator,
    MockIncompleteNotifier,
    MockSlotAvailability,
    sample_catalog,
)
from theater_booking.infrastructure.importers.legacy_booking import import_editing_booking
from theater_booking.infrastructure.payments.mock_gateway import MockPaymentGateway
from theater_booking.infrastructure.store.memory_store import MemoryHandoffStore

BOOKING_DATE = "2026-01-10"
EVENING_SLOT = "6:00 PM - 9:00 PM"
COUPLES_THEATER = "EROS (COUPLES) (FMT-Hall-1)"
FRIENDS_THEATER = "PHILIA (FRIENDS) (FMT-Hall-2)"
LOVE_THEATER = "PRAGMA (LOVE) (FMT-Hall-3)"


def fixed_now() -> datetime:
    return datetime(2026, 1, 10, 10, 0, tzinfo=ZoneInfo("Asia/Kolkata"))


@pytest.fixture
def catalog():
    return sample_catalog()


@pytest.fixture
def pricing():
    return PricingConfig(slot_booking_fee=1000, extra_guest_fee=400, convenience_fee=50, decoration_fees=0)


@dataclass
class WizardKit:
    wizard: BookingWizard
    bookings: MockBookingGateway
    gateway: MockPaymentGateway
    notifier: MockIncompleteNotifier
    coupons: MockCouponValidator
    slots: MockSlotAvailability
    handoffs: MemoryHandoffStore
    poller: SlotAvailabilityPoller


@pytest.fixture
def make_kit(catalog, pricing):
    def _make(
        bookings: MockBookingGateway | None = None,
        gateway: MockPaymentGateway | None = None,
        coupons: MockCouponValidator | None = None,
        slots: MockSlotAvailability | None = None,
    ) -> WizardKit:
        bookings = bookings or MockBookingGateway()
        gateway = gateway or MockPaymentGateway()
        coupons = coupons or MockCouponValidator()
        slots = slots or MockSlotAvailability()
        notifier = MockIncompleteNotifier()
        handoffs = MemoryHandoffStore()
        poller = SlotAvailabilityPoller(slots, interval_seconds=60)
        wizard = BookingWizard(
            loader=CatalogLoader(MockCatalog(catalog, pricing)),
            coupons=CouponUseCase(coupons),
            poller=poller,
            payment=PaymentOrchestrator(bookings, gateway, clock=fixed_now),
            notifier=notifier,
            handoffs=handoffs,
            edit_importer=import_editing_booking,
            clock=fixed_now,
        )
        return WizardKit(wizard, bookings, gateway, notifier, coupons, slots, handoffs, poller)

    return _make
