"""
Maps backend catalog documents to domain entities.

The admin endpoints return loosely shaped documents: item names may be under
`name` or `title`, prices under `price` or `cost` (sometimes as strings), ids
under `id` or `itemId` or missing altogether, and image URLs occasionally
wrapped in stray quotes or backticks. Inactive services and services hidden
from the booking popup are dropped here.
"""

from __future__ import annotations

from typing import Any

from theater_booking.application.utils.money import to_number
from theater_booking.domain.entities.catalog import (
    Catalog,
    OccasionDefinition,
    ServiceCatalogEntry,
    ServiceItem,
    TheaterInfo,
    slugify_item,
)
from theater_booking.domain.entities.pricing import PricingConfig, TheaterCapacity


def clean_image_url(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().strip("`").strip('"').strip("'")


def map_service_item(raw: dict[str, Any]) -> ServiceItem:
    name = raw.get("name") or raw.get("title") or "Unnamed Item"
    price = to_number(raw.get("price")) or to_number(raw.get("cost")) or 0.0
    tags = raw.get("tags") or ()
    return ServiceItem(
        item_id=str(raw.get("id") or raw.get("itemId") or slugify_item(name)),
        name=name,
        price=price,
        image=clean_image_url(raw.get("image")),
        rating=to_number(raw.get("rating")),
        tags=tuple(str(t) for t in tags) if isinstance(tags, (list, tuple)) else (),
    )


def map_services(raw_services: list[dict[str, Any]]) -> tuple[ServiceCatalogEntry, ...]:
    services: list[ServiceCatalogEntry] = []
    for raw in raw_services:
        if raw.get("isActive") is not True:
            continue
        show = raw.get("showInBookingPopup")
        if show is False:
            continue
        name = raw.get("name")
        if not name:
            continue
        services.append(
            ServiceCatalogEntry(
                name=name,
                items=tuple(map_service_item(item) for item in raw.get("items") or [] if isinstance(item, dict)),
                compulsory=bool(raw.get("compulsory")),
                include_in_decoration=bool(raw.get("includeInDecoration")),
                show_in_booking_popup=True,
            )
        )
    return tuple(services)


def map_capacity(raw: Any) -> TheaterCapacity | None:
    if not isinstance(raw, dict):
        return None
    low = to_number(raw.get("min"))
    high = to_number(raw.get("max"))
    if low is None or high is None:
        return None
    return TheaterCapacity(min=int(low), max=int(high))


def map_theaters(raw_theaters: list[dict[str, Any]]) -> tuple[TheaterInfo, ...]:
    theaters: list[TheaterInfo] = []
    for raw in raw_theaters:
        name = raw.get("name")
        if not name:
            continue
        theater_id = raw.get("theaterId") or raw.get("_id") or raw.get("id")
        theaters.append(
            TheaterInfo(
                name=name,
                theater_id=str(theater_id) if theater_id else None,
                price=raw.get("price"),
                capacity=map_capacity(raw.get("capacity")),
                slot_booking_fee=to_number(raw.get("slotBookingFee")),
                decoration_compulsory=bool(raw.get("decorationCompulsory")),
            )
        )
    return tuple(theaters)


def map_occasions(raw_occasions: list[dict[str, Any]]) -> tuple[OccasionDefinition, ...]:
    occasions: list[OccasionDefinition] = []
    for raw in raw_occasions:
        name = raw.get("name")
        if not name:
            continue
        labels = raw.get("fieldLabels") if isinstance(raw.get("fieldLabels"), dict) else {}
        occasions.append(
            OccasionDefinition(
                name=name,
                icon=raw.get("icon") or "",
                popular=bool(raw.get("popular")),
                include_in_decoration=bool(raw.get("includeInDecoration")),
                required_fields=tuple(raw.get("requiredFields") or ()),
                field_labels={str(k): str(v) for k, v in labels.items()},
            )
        )
    return tuple(occasions)


def map_catalog(
    theaters: list[dict[str, Any]],
    services: list[dict[str, Any]],
    occasions: list[dict[str, Any]],
) -> Catalog:
    return Catalog(
        theaters=map_theaters(theaters),
        services=map_services(services),
        occasions=map_occasions(occasions),
    )


def map_pricing(raw: dict[str, Any], defaults: PricingConfig) -> PricingConfig:
    def pick(key: str, fallback: float) -> float:
        value = to_number(raw.get(key))
        return fallback if value is None else value

    return PricingConfig(
        slot_booking_fee=pick("slotBookingFee", defaults.slot_booking_fee),
        extra_guest_fee=pick("extraGuestFee", defaults.extra_guest_fee),
        convenience_fee=pick("convenienceFee", defaults.convenience_fee),
        decoration_fees=pick("decorationFees", defaults.decoration_fees),
    )
