from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SelectedItem:
    item_id: str
    name: str
    price: float | None = None  # None when a legacy record carried no price
    quantity: int = 1


@dataclass(frozen=True)
class BookingDraft:
    name: str = ""
    phone: str = ""
    email: str = ""
    headcount: int = 1
    occasion: str = ""
    occasion_fields: dict[str, str] = field(default_factory=dict)
    want_movies: bool = False
    movie: SelectedItem | None = None  # at most one, always free
    decoration_enabled: bool | None = None  # None until the customer answers Yes/No
    service_flags: dict[str, bool] = field(default_factory=dict)
    selected_items: dict[str, tuple[SelectedItem, ...]] = field(default_factory=dict)
    skipped_services: frozenset[str] = frozenset()
    coupon_code: str = ""
    agree_to_terms: bool = False

    def is_service_enabled(self, service_name: str) -> bool:
        return self.service_flags.get(service_name, False)

    def items_for(self, service_name: str) -> tuple[SelectedItem, ...]:
        return self.selected_items.get(service_name, ())

    def has_identity_data(self) -> bool:
        return bool(self.name or self.email or self.phone or self.occasion)
