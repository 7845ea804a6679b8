from __future__ import annotations

import asyncio

import pytest

from theater_booking.application.exceptions import NetworkFetchError, PaymentGatewayError
from theater_booking.application.ports.catalog import CatalogPort
from theater_booking.application.use_cases.catalog_loader import CatalogLoader
from theater_booking.core.config import settings
from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.handoff import DraftHandoff
from theater_booking.domain.entities.payment import GatewayRequest, GatewayResult
from theater_booking.infrastructure.backend.mock_backend import sample_catalog
from theater_booking.infrastructure.payments.callback_gateway import CallbackPaymentGateway
from theater_booking.infrastructure.store.memory_store import MemoryHandoffStore


class CountingCatalog(CatalogPort):
    def __init__(self, catalog, pricing) -> None:
        self.catalog = catalog
        self.pricing = pricing
        self.catalog_calls = 0
        self.down = False

    async def fetch_catalog(self) -> Catalog:
        self.catalog_calls += 1
        if self.down:
            raise NetworkFetchError("Connection Error", "offline")
        return self.catalog

    async def fetch_pricing(self):
        if self.down:
            raise NetworkFetchError("Connection Error", "offline")
        return self.pricing


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_preloaded_catalog_is_reused_within_ttl(catalog, pricing):
    port = CountingCatalog(catalog, pricing)
    clock = FakeClock()
    loader = CatalogLoader(port, ttl_seconds=300, clock=clock)

    asyncio.run(loader.preload())
    clock.now = 120
    loaded, loaded_pricing = asyncio.run(loader.load())

    assert port.catalog_calls == 1
    assert loaded is catalog
    assert loaded_pricing == pricing

    clock.now = 400
    asyncio.run(loader.load())
    assert port.catalog_calls == 2


def test_outage_falls_back_to_last_known_values(catalog, pricing):
    port = CountingCatalog(catalog, pricing)
    clock = FakeClock()
    loader = CatalogLoader(port, ttl_seconds=0, clock=clock)

    asyncio.run(loader.load())
    port.down = True
    loaded, loaded_pricing = asyncio.run(loader.load())

    assert loaded is catalog
    assert loaded_pricing == pricing


def test_outage_without_history_gives_empty_catalog_and_defaults():
    port = CountingCatalog(sample_catalog(), None)
    port.down = True

    loaded, loaded_pricing = asyncio.run(CatalogLoader(port).load())

    assert loaded == Catalog()
    assert loaded_pricing.slot_booking_fee == 1000


def test_handoff_expires_and_is_single_use():
    store = MemoryHandoffStore(ttl_seconds=60)
    stale = store.put(DraftHandoff(origin="theater", created_at=1000.0, theater_name="EROS"))
    fresh = store.put(DraftHandoff(origin="theater", created_at=1000.0, theater_name="EROS"))

    assert store.take(stale, now_ts=1100.0) is None
    assert store.take(fresh, now_ts=1010.0).theater_name == "EROS"
    assert store.take(fresh, now_ts=1010.0) is None


def test_handoff_put_drops_unredeemed_expired_tokens():
    store = MemoryHandoffStore(ttl_seconds=60)
    stale = store.put(DraftHandoff(origin="theater", created_at=1000.0, theater_name="EROS"), now_ts=1000.0)
    store.put(DraftHandoff(origin="movies", created_at=1100.0, movie_title="Dune"), now_ts=1100.0)

    # still within its ttl at 1000, so only a purge could have removed it
    assert store.take(stale, now_ts=1000.0) is None


def _request(reference: str = "ref-1") -> GatewayRequest:
    return GatewayRequest(reference=reference, amount_minor=100000, currency="INR", description="Slot Booking Fee")


def test_callback_gateway_waits_for_resolution():
    gateway = CallbackPaymentGateway(key_id="rzp_test", timeout_seconds=5)

    async def scenario():
        collecting = asyncio.create_task(gateway.collect(_request()))
        await asyncio.sleep(0)
        assert gateway.pending("ref-1") is not None
        assert gateway.resolve("ref-1", GatewayResult(status="success", payment_id="pay_1"))
        assert not gateway.resolve("ref-1", GatewayResult(status="failed"))
        return await collecting

    result = asyncio.run(scenario())

    assert result.succeeded
    assert result.payment_id == "pay_1"
    assert gateway.pending("ref-1") is None


def test_callback_gateway_times_out_as_failure():
    gateway = CallbackPaymentGateway(key_id="rzp_test", timeout_seconds=0.01)

    result = asyncio.run(gateway.collect(_request()))

    assert result.status == "failed"
    assert result.error == "Payment window expired. Please try again."


def test_callback_gateway_without_key_cannot_start(monkeypatch):
    monkeypatch.setattr(settings, "PAYMENT_GATEWAY_KEY", None)
    gateway = CallbackPaymentGateway(timeout_seconds=1)

    with pytest.raises(PaymentGatewayError) as exc:
        asyncio.run(gateway.collect(_request()))
    assert exc.value.title == "Payment Gateway Unavailable"


def test_unknown_reference_is_not_delivered():
    gateway = CallbackPaymentGateway(key_id="rzp_test")
    assert not gateway.resolve("missing", GatewayResult(status="success"))
