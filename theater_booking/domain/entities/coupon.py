from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CouponState:
    code: str | None = None
    discount_type: str | None = None  # "percentage" | "fixed"
    discount_value: float | None = None
    discount_amount: float = 0.0

    @property
    def is_applied(self) -> bool:
        return self.code is not None and self.discount_amount > 0

    def summary(self) -> dict[str, object] | None:
        if not self.is_applied:
            return None
        return {
            "code": self.code,
            "type": self.discount_type,
            "value": self.discount_value,
            "amount": self.discount_amount,
        }


@dataclass(frozen=True)
class CouponValidation:
    success: bool
    discount_amount: float = 0.0
    discount_type: str | None = None
    discount_value: float | None = None
    coupon_code: str | None = None
    error: str | None = None
