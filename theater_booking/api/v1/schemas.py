from enum import Enum
from pydantic import BaseModel, Field
from typing import Any


class HeadcountAction(str, Enum):
    increment = "increment"
    decrement = "decrement"


class ManualMethod(str, Enum):
    cash = "cash"
    upi = "upi"


class GatewayStatus(str, Enum):
    success = "success"
    dismissed = "dismissed"
    failed = "failed"


class CreatorSchema(BaseModel):
    type: str = "admin"
    staff_name: str | None = None
    staff_id: str | None = None
    admin_name: str | None = None
    profile_photo: str | None = None


class OpenWizardRequest(BaseModel):
    theater_name: str | None = None
    date: str | None = None
    time_slot: str | None = None
    handoff_token: str | None = None
    editing_booking: dict[str, Any] | None = None
    manual_mode: bool = False
    creator: CreatorSchema | None = None


class HandoffRequest(BaseModel):
    origin: str
    editing_booking: dict[str, Any] | None = None
    movie_title: str | None = None
    theater_name: str | None = None
    date: str | None = None
    time_slot: str | None = None


class HandoffResponse(BaseModel):
    token: str
    expires_in_seconds: int


class CustomerRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None


class TheaterRequest(BaseModel):
    name: str


class DateRequest(BaseModel):
    date: str


class TimeSlotRequest(BaseModel):
    time_slot: str


class HeadcountRequest(BaseModel):
    headcount: int | None = None
    action: HeadcountAction | None = None


class ToggleRequest(BaseModel):
    enabled: bool


class MoviesRequest(BaseModel):
    want_movies: bool
    title: str | None = None


class OccasionRequest(BaseModel):
    name: str
    fields: dict[str, str] = Field(default_factory=dict)


class OccasionFieldRequest(BaseModel):
    key: str
    value: str


class TermsRequest(BaseModel):
    agreed: bool


class CouponRequest(BaseModel):
    code: str


class ManualDiscountRequest(BaseModel):
    amount: str | float | None = None


class ContinueRequest(BaseModel):
    confirmed: bool = False


class StepRequest(BaseModel):
    step: str


class ManualMethodRequest(BaseModel):
    method: ManualMethod


class PartialPaymentOpenRequest(BaseModel):
    method: ManualMethod = ManualMethod.upi


class PartialPaymentConfirmRequest(BaseModel):
    amount_received: str | float | None = None
    slot_booking_fee: str | float | None = None
    method: ManualMethod | None = None


class GatewayCallbackRequest(BaseModel):
    status: GatewayStatus
    payment_id: str | None = None
    order_id: str | None = None
    signature: str | None = None
    error: str | None = None


class SelectedItemSchema(BaseModel):
    id: str
    name: str
    price: float | None = None
    quantity: int = 1


class DraftSchema(BaseModel):
    name: str
    phone: str
    email: str
    headcount: int
    occasion: str
    occasion_fields: dict[str, str] = Field(default_factory=dict)
    want_movies: bool
    movie: SelectedItemSchema | None = None
    decoration_enabled: bool | None = None
    service_flags: dict[str, bool] = Field(default_factory=dict)
    selected_items: dict[str, list[SelectedItemSchema]] = Field(default_factory=dict)
    skipped_services: list[str] = Field(default_factory=list)
    coupon_code: str = ""
    agree_to_terms: bool


class SessionSchema(BaseModel):
    theater_name: str | None = None
    date: str | None = None
    time_slot: str | None = None


class CapacitySchema(BaseModel):
    min: int
    max: int


class PriceSchema(BaseModel):
    base_price: float
    extra_guests: int
    extra_guest_charges: float
    decoration_fee: float
    items_total: float
    subtotal: float
    coupon_discount: float
    manual_discount: float
    final_total: float
    slot_booking_fee: float
    venue_payment: float
    advance_payment: float


class CouponSchema(BaseModel):
    code: str | None = None
    discount_type: str | None = None
    discount_value: float | None = None
    discount_amount: float = 0.0
    applying: bool = False


class NoticeSchema(BaseModel):
    kind: str
    message: str
    duration_ms: int


class ErrorSchema(BaseModel):
    title: str
    message: str
    kind: str


class OutcomeSchema(BaseModel):
    booking_id: str | None = None
    message: str
    was_editing: bool
    payment_method: str


class PartialFormSchema(BaseModel):
    method: str
    slot_booking_fee: str
    amount_received: str = ""


class GatewayRequestSchema(BaseModel):
    reference: str
    amount_minor: int
    currency: str
    description: str
    key_id: str | None = None
    prefill: dict[str, str] = Field(default_factory=dict)
    notes: dict[str, str] = Field(default_factory=dict)


class PaymentSchema(BaseModel):
    phase: str
    outcome: OutcomeSchema | None = None
    partial_form: PartialFormSchema | None = None
    pending: GatewayRequestSchema | None = None
    last_error: ErrorSchema | None = None


class StepMoveSchema(BaseModel):
    step: str
    moved: bool
    confirmation: str | None = None
    final: bool = False


class WizardView(BaseModel):
    id: str
    active_step: str
    steps: list[str]
    draft: DraftSchema
    session: SessionSchema
    capacity: CapacitySchema
    price: PriceSchema
    coupon: CouponSchema
    booked_slots: list[str] = Field(default_factory=list)
    payment: PaymentSchema
    notices: list[NoticeSchema] = Field(default_factory=list)
    manual_mode: bool = False
    manual_discount: float = 0.0
    editing_booking_id: str | None = None
    has_unsaved_changes: bool = False


class StepResponse(BaseModel):
    move: StepMoveSchema
    wizard: WizardView


class ToggleItemResponse(BaseModel):
    notice: NoticeSchema | None = None
    wizard: WizardView
