from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from theater_booking.application.exceptions import CouponError
from theater_booking.application.ports.coupon import CouponValidatorPort
from theater_booking.core.config import settings
from theater_booking.domain.entities.coupon import CouponState, CouponValidation
from theater_booking.domain.entities.notice import Notice


@dataclass(frozen=True)
class CouponOutcome:
    state: CouponState
    notice: Notice | None = None
    rejected: bool = False  # refused before any network call


class CouponUseCase:
    """Applies and removes coupons. Code, type, value and amount always change together."""

    def __init__(self, validator: CouponValidatorPort, notice_duration_ms: int | None = None) -> None:
        self._validator = validator
        self._state = CouponState()
        self._pending: asyncio.Task[CouponValidation] | None = None
        self._notice_duration_ms = notice_duration_ms or settings.NOTICE_DURATION_MS
        self._logger = logging.getLogger(__name__)

    @property
    def state(self) -> CouponState:
        return self._state

    @property
    def applying(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def apply(self, code: str, subtotal: float, eligible: bool) -> CouponOutcome:
        if not eligible:
            self._logger.info("Coupon rejected: draft not eligible")
            return CouponOutcome(state=self._state, rejected=True)
        if self.applying:
            return CouponOutcome(state=self._state, rejected=True)

        normalized = (code or "").strip().upper()
        if not normalized:
            self._state = CouponState()
            return CouponOutcome(state=self._state, notice=self._error("Please enter a coupon code"))

        task = asyncio.create_task(self._validator.validate(normalized, subtotal))
        self._pending = task
        try:
            result = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            self._logger.info("Coupon validation discarded", extra={"reason": "eligibility_changed"})
            return CouponOutcome(state=self._state)
        except CouponError as e:
            self._logger.warning("Coupon validation failed", extra={"error": e.message})
            self._state = CouponState()
            return CouponOutcome(state=self._state, notice=self._error("Unable to validate coupon"))
        finally:
            if self._pending is task:
                self._pending = None

        if result.success and result.discount_amount > 0:
            self._state = CouponState(
                code=normalized,
                discount_type=result.discount_type,
                discount_value=result.discount_value,
                discount_amount=float(result.discount_amount),
            )
            label = f"Coupon applied: {result.coupon_code}" if result.coupon_code else "Coupon code applied"
            return CouponOutcome(state=self._state, notice=Notice("success", label, self._notice_duration_ms))

        self._state = CouponState()
        return CouponOutcome(state=self._state, notice=self._error(result.error or "Invalid or expired coupon"))

    def remove(self) -> CouponState:
        self._state = CouponState()
        return self._state

    def on_eligibility_changed(self, eligible: bool) -> bool:
        """Drop in-flight validation and any applied discount once the draft stops qualifying."""
        if eligible:
            return False
        if self.applying and self._pending is not None:
            self._pending.cancel()
        if self._state.discount_amount > 0 or self._state.code is not None:
            self._state = CouponState()
            return True
        return False

    def reset(self) -> None:
        if self.applying and self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._state = CouponState()

    def _error(self, message: str) -> Notice:
        return Notice("error", message, self._notice_duration_ms)
