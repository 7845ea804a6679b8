from __future__ import annotations

from abc import ABC, abstractmethod

from theater_booking.domain.entities.coupon import CouponValidation


class CouponValidatorPort(ABC):
    @abstractmethod
    async def validate(self, code: str, amount: float) -> CouponValidation:
        """
        Validate a normalized coupon code against the pre-discount subtotal.
        Returns a failed CouponValidation for unknown/expired codes.
        Raises CouponError when the validator cannot be reached.
        """
        raise NotImplementedError
