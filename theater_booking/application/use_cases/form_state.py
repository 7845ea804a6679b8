from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable

from theater_booking.application.exceptions import FormValidationError
from theater_booking.core.config import settings
from theater_booking.domain.entities.booking_draft import BookingDraft, SelectedItem
from theater_booking.domain.entities.catalog import Catalog, slugify_item
from theater_booking.domain.entities.pricing import TheaterCapacity


class FormStateStore:
    """Owns the booking draft. Every mutation goes through one of these setters."""

    def __init__(
        self,
        catalog: Catalog,
        debounce_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._catalog = catalog
        self._draft = BookingDraft()
        self._debounce_seconds = (
            settings.ITEM_TOGGLE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self._clock = clock
        self._last_toggle: tuple[str, float] | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def replace_catalog(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def load(self, draft: BookingDraft) -> None:
        self._draft = draft

    def reset(self, headcount: int = 1) -> None:
        self._draft = BookingDraft(headcount=headcount)
        self._last_toggle = None

    def initialize_services(self) -> None:
        """Compulsory services start switched on, everything else off."""
        flags = {service.name: service.compulsory for service in self._catalog.services}
        flags.update(self._draft.service_flags)
        decoration = self._draft.decoration_enabled
        if decoration is not None:
            for service in self._catalog.bundled_services():
                flags[service.name] = decoration
        self._draft = replace(self._draft, service_flags=flags)

    def update_customer(self, name: str | None = None, phone: str | None = None, email: str | None = None) -> None:
        changes: dict[str, str] = {}
        if name is not None:
            changes["name"] = name
        if phone is not None:
            changes["phone"] = phone
        if email is not None:
            changes["email"] = email
        if changes:
            self._draft = replace(self._draft, **changes)

    def set_headcount(self, headcount: int, capacity: TheaterCapacity) -> int:
        self._draft = replace(self._draft, headcount=capacity.clamp(headcount))
        return self._draft.headcount

    def change_headcount(self, action: str, capacity: TheaterCapacity) -> int:
        current = self._draft.headcount
        if capacity.is_fixed:
            return current

        if action == "increment":
            updated = min(current + 1, capacity.max)
        elif action == "decrement":
            updated = max(current - 1, capacity.min)
        else:
            raise ValueError(f"Unknown headcount action: {action}")

        self._draft = replace(self._draft, headcount=updated)
        return updated

    def set_decoration(self, enabled: bool) -> None:
        """Set the decoration choice and mirror it onto every decoration-bundled service."""
        flags = dict(self._draft.service_flags)
        items = dict(self._draft.selected_items)
        for service in self._catalog.bundled_services():
            flags[service.name] = enabled
            if not enabled:
                items.pop(service.name, None)

        self._draft = replace(
            self._draft,
            decoration_enabled=enabled,
            service_flags=flags,
            selected_items=items,
        )

    def set_service_flag(self, service_name: str, enabled: bool) -> None:
        service = self._catalog.service(service_name)
        if service is None:
            raise FormValidationError("Unknown Service", f"{service_name} is not available for booking.")
        if service.include_in_decoration:
            self.set_decoration(enabled)
            return

        flags = dict(self._draft.service_flags)
        flags[service_name] = enabled
        items = dict(self._draft.selected_items)
        if not enabled:
            items.pop(service_name, None)
        self._draft = replace(self._draft, service_flags=flags, selected_items=items)

    def toggle_item(self, service_name: str, item_name: str, now: float | None = None) -> bool | None:
        """
        Select or deselect a service item.
        Returns True when added, False when removed, None when the click was
        swallowed as a double-click.
        """
        now = self._clock() if now is None else now
        click_key = f"{service_name}-{item_name}"
        if self._last_toggle is not None:
            last_key, last_at = self._last_toggle
            if last_key == click_key and now - last_at < self._debounce_seconds:
                self._logger.info("Duplicate item click ignored", extra={"service": service_name})
                return None
        self._last_toggle = (click_key, now)

        service = self._catalog.service(service_name)
        catalog_item = service.find_item(item_name) if service else None
        if catalog_item is None:
            raise FormValidationError("Item Not Available", f"{item_name} is not offered under {service_name}.")

        current = self._draft.items_for(service_name)
        items = dict(self._draft.selected_items)
        if any(item.name == item_name for item in current):
            items[service_name] = tuple(item for item in current if item.name != item_name)
            added = False
        else:
            items[service_name] = current + (
                SelectedItem(
                    item_id=catalog_item.item_id or slugify_item(item_name),
                    name=item_name,
                    price=catalog_item.price,
                    quantity=1,
                ),
            )
            added = True

        self._draft = replace(self._draft, selected_items=items)
        return added

    def is_item_selected(self, service_name: str, item_name: str) -> bool:
        return any(item.name == item_name for item in self._draft.items_for(service_name))

    def skip_service(self, service_name: str) -> None:
        items = dict(self._draft.selected_items)
        items[service_name] = ()
        self._draft = replace(
            self._draft,
            selected_items=items,
            skipped_services=self._draft.skipped_services | {service_name},
        )

    def set_want_movies(self, wanted: bool) -> None:
        self._draft = replace(
            self._draft,
            want_movies=wanted,
            movie=self._draft.movie if wanted else None,
        )

    def select_movie(self, title: str) -> None:
        movie = SelectedItem(item_id=slugify_item(title, "_"), name=title, price=0.0, quantity=1)
        self._draft = replace(self._draft, movie=movie, want_movies=True)

    def select_occasion(self, occasion_name: str) -> None:
        self._draft = replace(self._draft, occasion=occasion_name, occasion_fields={})

    def update_occasion_field(self, field_key: str, value: str) -> None:
        fields = dict(self._draft.occasion_fields)
        fields[field_key] = value
        self._draft = replace(self._draft, occasion_fields=fields)

    def set_agree_to_terms(self, agreed: bool) -> None:
        self._draft = replace(self._draft, agree_to_terms=agreed)

    def set_coupon_code(self, code: str) -> None:
        self._draft = replace(self._draft, coupon_code=code)
