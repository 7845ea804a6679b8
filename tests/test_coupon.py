from __future__ import annotations

import asyncio

from theater_booking.application.ports.coupon import CouponValidatorPort
from theater_booking.application.use_cases.coupon import CouponUseCase
from theater_booking.domain.entities.coupon import CouponState, CouponValidation
from theater_booking.infrastructure.backend.mock_backend import MockCouponValidator


class StalledValidator(CouponValidatorPort):
    def __init__(self) -> None:
        self.release = asyncio.Event()

    async def validate(self, code: str, amount: float) -> CouponValidation:
        await self.release.wait()
        return CouponValidation(success=True, discount_amount=100, discount_type="fixed", discount_value=100, coupon_code=code)


def test_apply_then_remove_clears_every_coupon_field():
    coupons = CouponUseCase(MockCouponValidator())

    outcome = asyncio.run(coupons.apply(" welcome10 ", 2000, eligible=True))

    assert outcome.state == CouponState(code="WELCOME10", discount_type="percentage", discount_value=10, discount_amount=200)
    assert outcome.notice.kind == "success"
    assert outcome.notice.message == "Coupon applied: WELCOME10"
    assert outcome.notice.duration_ms == 1000

    cleared = coupons.remove()
    assert cleared == CouponState()
    assert cleared.code is None and cleared.discount_type is None
    assert cleared.discount_value is None and cleared.discount_amount == 0


def test_ineligible_draft_never_calls_validator():
    validator = MockCouponValidator()
    coupons = CouponUseCase(validator)
    outcome = asyncio.run(coupons.apply("WELCOME10", 2000, eligible=False))
    assert outcome.rejected
    assert validator.calls == []


def test_empty_code_shows_prompt():
    outcome = asyncio.run(CouponUseCase(MockCouponValidator()).apply("  ", 2000, eligible=True))
    assert outcome.notice.message == "Please enter a coupon code"
    assert not outcome.state.is_applied


def test_unknown_code_clears_state():
    coupons = CouponUseCase(MockCouponValidator())
    asyncio.run(coupons.apply("FLAT200", 2000, eligible=True))
    outcome = asyncio.run(coupons.apply("NOPE", 2000, eligible=True))
    assert outcome.notice.kind == "error"
    assert outcome.notice.message == "Invalid or expired coupon"
    assert outcome.state == CouponState()


def test_validator_outage_is_reported_as_notice():
    outcome = asyncio.run(CouponUseCase(MockCouponValidator(fail=True)).apply("FLAT200", 2000, eligible=True))
    assert outcome.notice.message == "Unable to validate coupon"
    assert outcome.state == CouponState()


def test_eligibility_loss_cancels_pending_validation():
    async def scenario():
        coupons = CouponUseCase(StalledValidator())
        pending = asyncio.create_task(coupons.apply("FLAT100", 2000, eligible=True))
        await asyncio.sleep(0)
        assert coupons.applying
        second = await coupons.apply("FLAT100", 2000, eligible=True)
        coupons.on_eligibility_changed(False)
        return coupons, second, await pending

    coupons, second, outcome = asyncio.run(scenario())

    assert second.rejected
    assert outcome.notice is None
    assert outcome.state == CouponState()
    assert not coupons.applying


def test_eligibility_loss_drops_applied_discount():
    coupons = CouponUseCase(MockCouponValidator())
    asyncio.run(coupons.apply("FLAT200", 2000, eligible=True))
    assert coupons.on_eligibility_changed(False) is True
    assert coupons.state == CouponState()
    assert coupons.on_eligibility_changed(True) is False
