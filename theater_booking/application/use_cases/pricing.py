from __future__ import annotations

from theater_booking.application.utils.money import parse_price, to_number
from theater_booking.core.config import settings
from theater_booking.domain.entities.booking_draft import BookingDraft, SelectedItem
from theater_booking.domain.entities.catalog import Catalog, ServiceCatalogEntry, TheaterInfo
from theater_booking.domain.entities.pricing import PriceBreakdown, PricingConfig, TheaterCapacity


def default_pricing() -> PricingConfig:
    return PricingConfig(
        slot_booking_fee=settings.DEFAULT_SLOT_BOOKING_FEE,
        extra_guest_fee=settings.DEFAULT_EXTRA_GUEST_FEE,
        convenience_fee=settings.DEFAULT_CONVENIENCE_FEE,
        decoration_fees=settings.DEFAULT_DECORATION_FEES,
    )


def fallback_capacity() -> TheaterCapacity:
    return TheaterCapacity(min=settings.FALLBACK_CAPACITY_MIN, max=settings.FALLBACK_CAPACITY_MAX)


def theater_base_price(theater: TheaterInfo | None) -> float:
    if theater is None:
        return settings.DEFAULT_THEATER_PRICE
    return parse_price(theater.price, settings.DEFAULT_THEATER_PRICE)


def resolve_capacity(theater: TheaterInfo | None, catalog: Catalog) -> TheaterCapacity:
    """Roster capacity first, then whatever the session theater carries, then the fallback."""
    if theater is None:
        return fallback_capacity()

    roster_theater = catalog.find_theater(theater)
    if roster_theater and _usable_capacity(roster_theater.capacity):
        return roster_theater.capacity

    if _usable_capacity(theater.capacity):
        return theater.capacity

    return fallback_capacity()


def _usable_capacity(capacity: TheaterCapacity | None) -> bool:
    return capacity is not None and capacity.min > 0 and capacity.max > 0


def resolve_slot_booking_fee(theater: TheaterInfo | None, catalog: Catalog, pricing: PricingConfig) -> float:
    if theater is not None:
        if theater.slot_booking_fee is not None:
            return theater.slot_booking_fee
        roster_theater = catalog.find_theater(theater)
        if roster_theater and roster_theater.slot_booking_fee is not None:
            return roster_theater.slot_booking_fee
    return pricing.slot_booking_fee


def resolve_item_price(service: ServiceCatalogEntry | None, item: SelectedItem) -> float:
    """Stored price when positive, otherwise the catalog price for the same item name."""
    stored = to_number(item.price)
    if stored is not None and stored > 0:
        return stored
    catalog_item = service.find_item(item.name) if service else None
    if catalog_item and catalog_item.price > 0:
        return catalog_item.price
    return stored if stored is not None else 0.0


def items_total(draft: BookingDraft, catalog: Catalog) -> float:
    total = 0.0
    for service_name, items in draft.selected_items.items():
        service = catalog.service(service_name)
        for item in items:
            total += resolve_item_price(service, item) * max(item.quantity, 1)
    return total


def is_coupon_eligible(draft: BookingDraft, catalog: Catalog) -> bool:
    """Coupons apply only to decorated bookings or bookings with a gifts service switched on."""
    if draft.decoration_enabled:
        return True
    for service in catalog.services:
        if "gift" in service.name.lower() and draft.is_service_enabled(service.name):
            return True
    return False


def compute_price_breakdown(
    draft: BookingDraft,
    theater: TheaterInfo | None,
    catalog: Catalog,
    pricing: PricingConfig,
    coupon_discount: float = 0.0,
    manual_discount: float = 0.0,
) -> PriceBreakdown:
    capacity = resolve_capacity(theater, catalog)
    base = theater_base_price(theater)

    extra_guests = max(0, draft.headcount - capacity.min)
    extra_guest_charges = extra_guests * (pricing.extra_guest_fee or 0)
    decoration_fee = (pricing.decoration_fees or 0) if draft.decoration_enabled else 0.0
    selected_total = items_total(draft, catalog)
    # movies are free

    subtotal = base + extra_guest_charges + decoration_fee + selected_total
    manual_discount = max(0.0, manual_discount)
    final_total = max(subtotal - coupon_discount - manual_discount, 0.0)
    slot_fee = resolve_slot_booking_fee(theater, catalog, pricing)
    advance, venue = split_payment(final_total, slot_fee)

    return PriceBreakdown(
        base_price=base,
        extra_guests=extra_guests,
        extra_guest_charges=extra_guest_charges,
        decoration_fee=decoration_fee,
        items_total=selected_total,
        subtotal=subtotal,
        coupon_discount=coupon_discount,
        manual_discount=manual_discount,
        final_total=final_total,
        slot_booking_fee=slot_fee,
        advance_payment=advance,
        venue_payment=venue,
    )


def split_payment(final_total: float, advance: float) -> tuple[float, float]:
    """Return (advance, venue). The advance never exceeds the total."""
    collected = min(max(advance, 0.0), final_total)
    return collected, final_total - collected
