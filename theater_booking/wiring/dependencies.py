from functools import lru_cache
import logging

from theater_booking.core.config import settings
from theater_booking.application.ports.booking_gateway import BookingSubmissionPort
from theater_booking.application.ports.catalog import CatalogPort
from theater_booking.application.ports.coupon import CouponValidatorPort
from theater_booking.application.ports.notifications import IncompleteBookingNotifierPort
from theater_booking.application.ports.payment_gateway import PaymentGatewayPort
from theater_booking.application.ports.slot_availability import SlotAvailabilityPort
from theater_booking.application.use_cases.catalog_loader import CatalogLoader
from theater_booking.application.use_cases.coupon import CouponUseCase
from theater_booking.application.use_cases.payment import PaymentOrchestrator
from theater_booking.application.use_cases.slot_polling import SlotAvailabilityPoller
from theater_booking.application.use_cases.wizard import BookingWizard
from theater_booking.infrastructure.backend.backend_adapters import (
    HttpBookingGateway,
    HttpCatalog,
    HttpCouponValidator,
    HttpIncompleteNotifier,
    HttpSlotAvailability,
)
from theater_booking.infrastructure.backend.backend_client import BackendClient
from theater_booking.infrastructure.backend.mock_backend import (
    MockBookingGateway,
    MockCatalog,
    MockCouponValidator,
    MockIncompleteNotifier,
    MockSlotAvailability,
)
from theater_booking.infrastructure.importers.legacy_booking import import_editing_booking
from theater_booking.infrastructure.payments.callback_gateway import CallbackPaymentGateway
from theater_booking.infrastructure.payments.mock_gateway import MockPaymentGateway
from theater_booking.infrastructure.store.memory_store import MemoryHandoffStore, MemoryWizardStore


def _use_mocks() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


@lru_cache
def get_backend_client() -> BackendClient:
    return BackendClient()


@lru_cache
def get_catalog_port() -> CatalogPort:
    if _use_mocks():
        return MockCatalog()
    return HttpCatalog(get_backend_client())


@lru_cache
def get_coupon_validator() -> CouponValidatorPort:
    if _use_mocks():
        return MockCouponValidator()
    return HttpCouponValidator(get_backend_client())


@lru_cache
def get_booking_gateway() -> BookingSubmissionPort:
    if _use_mocks():
        return MockBookingGateway()
    return HttpBookingGateway(get_backend_client())


@lru_cache
def get_slot_availability() -> SlotAvailabilityPort:
    if _use_mocks():
        return MockSlotAvailability()
    return HttpSlotAvailability(get_backend_client())


@lru_cache
def get_incomplete_notifier() -> IncompleteBookingNotifierPort:
    if _use_mocks():
        return MockIncompleteNotifier()
    return HttpIncompleteNotifier(get_backend_client())


@lru_cache
def get_payment_gateway() -> PaymentGatewayPort:
    logger = logging.getLogger(__name__)
    if not settings.PAYMENT_GATEWAY_KEY:
        if _use_mocks():
            logger.info("Using MockPaymentGateway (key missing, ENV=dev/local)")
            return MockPaymentGateway()
        logger.warning("PAYMENT_GATEWAY_KEY missing; online payments will fail to initialize")
    return CallbackPaymentGateway()


@lru_cache
def get_catalog_loader() -> CatalogLoader:
    return CatalogLoader(get_catalog_port())


@lru_cache
def get_wizard_store() -> MemoryWizardStore:
    return MemoryWizardStore()


@lru_cache
def get_handoff_store() -> MemoryHandoffStore:
    return MemoryHandoffStore()


def build_wizard() -> BookingWizard:
    return BookingWizard(
        loader=get_catalog_loader(),
        coupons=CouponUseCase(get_coupon_validator()),
        poller=SlotAvailabilityPoller(get_slot_availability()),
        payment=PaymentOrchestrator(get_booking_gateway(), get_payment_gateway()),
        notifier=get_incomplete_notifier(),
        handoffs=get_handoff_store(),
        edit_importer=import_editing_booking,
    )
