from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PaymentPhase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ONLINE_GATEWAY_PENDING = "online_gateway_pending"
    MANUAL_METHOD_CHOICE = "manual_method_choice"
    PARTIAL_PAYMENT_ENTRY = "partial_payment_entry"
    DIRECT_UPDATE = "direct_update"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    ONLINE = "online"
    CASH = "cash"
    UPI = "upi"


@dataclass(frozen=True)
class CreatorInfo:
    type: str  # "staff" | "admin"
    staff_name: str | None = None
    staff_id: str | None = None
    admin_name: str | None = None
    profile_photo: str | None = None

    @property
    def actor_label(self) -> str:
        if self.type == "staff":
            return self.staff_name or "Staff"
        return self.admin_name or "Admin"

    def as_metadata(self) -> dict[str, Any]:
        if self.type == "staff":
            return {
                "type": "staff",
                "staffName": self.staff_name or "Staff Member",
                "staffId": self.staff_id,
                "profilePhoto": self.profile_photo,
            }
        return {
            "type": "admin",
            "adminName": self.admin_name or "Administrator",
            "profilePhoto": self.profile_photo,
        }


@dataclass(frozen=True)
class GatewayRequest:
    reference: str
    amount_minor: int  # smallest currency unit
    currency: str
    description: str
    prefill: dict[str, str] = field(default_factory=dict)
    notes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayResult:
    status: str  # "success" | "dismissed" | "failed"
    payment_id: str | None = None
    order_id: str | None = None
    signature: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    booking_id: str | None = None
    error: str | None = None
    conflict: bool = False


@dataclass(frozen=True)
class BookingOutcome:
    booking_id: str | None
    message: str
    was_editing: bool = False
    payment_method: PaymentMethod = PaymentMethod.ONLINE


@dataclass(frozen=True)
class PartialPaymentForm:
    method: PaymentMethod
    slot_booking_fee: str
    amount_received: str = ""
