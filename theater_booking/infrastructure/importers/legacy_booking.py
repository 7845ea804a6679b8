"""
Rebuilds a wizard draft from a stored booking record.

Stored bookings come in several historical shapes: occasion fields may sit in
an `occasionData` map, as top-level keys named after their display label
("Nickname of Bride to be"), or as "<label>_label" / "<label>_value" pairs.
Service selections are top-level "selected<Service>" arrays holding either
plain item names or item objects. Everything is normalized here so the wizard
only ever sees camelCase occasion keys and typed item lists.
"""

from __future__ import annotations

import logging
from typing import Any

from theater_booking.application.utils.money import to_number
from theater_booking.domain.entities.booking_draft import BookingDraft, SelectedItem
from theater_booking.domain.entities.catalog import SERVICE_FIELD_PREFIX, Catalog, ServiceCatalogEntry, slugify_item
from theater_booking.domain.entities.editing import EditingSnapshot

logger = logging.getLogger(__name__)

MOVIES_KEY = "selectedMovies"
LABEL_SUFFIX = "_label"
VALUE_SUFFIX = "_value"

SYSTEM_KEYS = frozenset(
    {
        "_id",
        "bookingId",
        "compressedData",
        "createdAt",
        "status",
        "name",
        "email",
        "theaterName",
        "date",
        "time",
        "occasion",
        "totalAmount",
        "selectedMovies",
        "selectedCakes",
        "selectedDecorItems",
        "selectedGifts",
        "isManualBooking",
        "bookingType",
        "createdBy",
        "staffId",
        "staffName",
        "notes",
        "expiredAt",
        "occasionPersonName",
    }
)


def to_camel_case(label: str) -> str:
    """"Nickname of Bride to be" -> "nicknameOfBrideToBe"."""
    words = label.split(" ")
    return "".join(
        word.lower() if index == 0 else word[:1].upper() + word[1:].lower()
        for index, word in enumerate(words)
    )


def import_editing_booking(raw: dict[str, Any], catalog: Catalog) -> EditingSnapshot:
    decoration = _decoration_choice(raw)
    flags, items, has_bundled_items = _service_selections(raw, catalog)
    if has_bundled_items:
        decoration = True
    if decoration is not None:
        for service in catalog.bundled_services():
            flags[service.name] = decoration

    movie = _movie(raw)
    draft = BookingDraft(
        name=str(raw.get("customerName") or raw.get("bookingName") or raw.get("name") or ""),
        phone=str(raw.get("phone") or raw.get("whatsappNumber") or ""),
        email=str(raw.get("email") or raw.get("emailAddress") or ""),
        headcount=int(to_number(raw.get("numberOfPeople")) or 2),
        occasion=str(raw.get("occasion") or ""),
        occasion_fields=occasion_fields_from_booking(raw),
        want_movies=movie is not None,
        movie=movie,
        decoration_enabled=decoration,
        service_flags=flags,
        selected_items=items,
        coupon_code=str(raw.get("promoCode") or ""),
        agree_to_terms=True,
    )

    booking_id = raw.get("bookingId") or raw.get("id")
    theater = raw.get("theaterName") or raw.get("theater")
    return EditingSnapshot(
        booking_id=str(booking_id) if booking_id else None,
        draft=draft,
        theater_name=theater if isinstance(theater, str) else None,
        date=raw.get("date"),
        time_slot=raw.get("time"),
    )


def occasion_fields_from_booking(raw: dict[str, Any]) -> dict[str, str]:
    fields: dict[str, str] = {}
    structured = raw.get("occasionData")
    if isinstance(structured, dict):
        fields.update({str(k): str(v) for k, v in structured.items() if v is not None})

    for key, value in raw.items():
        if key in SYSTEM_KEYS:
            continue

        if key.endswith(LABEL_SUFFIX):
            base = key[: -len(LABEL_SUFFIX)]
            field_value = raw.get(base) or raw.get(f"{base}{VALUE_SUFFIX}")
            if field_value:
                fields[to_camel_case(base)] = str(field_value)
            continue

        if key.endswith(VALUE_SUFFIX):
            continue

        if " " in key and value not in (None, ""):
            fields[to_camel_case(key)] = str(value)

    return fields


def _decoration_choice(raw: dict[str, Any]) -> bool | None:
    answer = str(raw.get("wantDecorItems") or "").strip().lower()
    if answer == "yes":
        return True
    if answer == "no":
        return False
    return None


def _service_selections(
    raw: dict[str, Any],
    catalog: Catalog,
) -> tuple[dict[str, bool], dict[str, tuple[SelectedItem, ...]], bool]:
    flags: dict[str, bool] = {}
    items: dict[str, tuple[SelectedItem, ...]] = {}
    has_bundled_items = False

    for key, value in raw.items():
        if not key.startswith(SERVICE_FIELD_PREFIX) or key == MOVIES_KEY or not isinstance(value, list):
            continue

        service = _match_service(key, catalog)
        if service is None:
            logger.info("Stored selection has no catalog service", extra={"service": key})
            continue

        selected = tuple(item for item in (_to_selected_item(entry, service) for entry in value) if item)
        items[service.name] = selected
        if selected:
            flags[service.name] = True
            if service.include_in_decoration:
                has_bundled_items = True

    return flags, items, has_bundled_items


def _match_service(key: str, catalog: Catalog) -> ServiceCatalogEntry | None:
    service = catalog.service_by_field_name(key)
    if service is not None:
        return service
    return catalog.service(key[len(SERVICE_FIELD_PREFIX):])


def _to_selected_item(entry: Any, service: ServiceCatalogEntry) -> SelectedItem | None:
    if isinstance(entry, str):
        if not entry.strip():
            return None
        catalog_item = service.find_item(entry)
        return SelectedItem(
            item_id=catalog_item.item_id if catalog_item else slugify_item(entry),
            name=entry,
            price=catalog_item.price if catalog_item else None,
        )

    if not isinstance(entry, dict):
        return None

    name = entry.get("name") or entry.get("title") or entry.get("itemName") or entry.get("id")
    if not isinstance(name, str) or not name.strip():
        return None
    quantity = to_number(entry.get("quantity", entry.get("qty")))
    return SelectedItem(
        item_id=str(entry.get("id") or slugify_item(name)),
        name=name,
        price=to_number(entry.get("price", entry.get("cost", entry.get("amount")))),
        quantity=int(quantity) if quantity and quantity > 0 else 1,
    )


def _movie(raw: dict[str, Any]) -> SelectedItem | None:
    movies = raw.get(MOVIES_KEY)
    if not isinstance(movies, list) or not movies:
        return None
    first = movies[0]
    title = first if isinstance(first, str) else (first or {}).get("name") or (first or {}).get("title")
    if not title:
        return None
    return SelectedItem(item_id=slugify_item(str(title), "_"), name=str(title), price=0.0)
