from __future__ import annotations

import re
from dataclasses import dataclass, field

from theater_booking.domain.entities.pricing import TheaterCapacity

SERVICE_FIELD_PREFIX = "selected"


def service_field_name(service_name: str) -> str:
    """Payload key used for a service's item list, e.g. "Decor Items" -> "selectedDecorItems"."""
    return SERVICE_FIELD_PREFIX + re.sub(r"\s+", "", service_name)


def slugify_item(name: str, separator: str = "-") -> str:
    return re.sub(r"\s+", separator, name.lower())


@dataclass(frozen=True)
class ServiceItem:
    item_id: str
    name: str
    price: float = 0.0
    image: str = ""
    rating: float | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ServiceCatalogEntry:
    name: str
    items: tuple[ServiceItem, ...] = ()
    compulsory: bool = False
    include_in_decoration: bool = False
    show_in_booking_popup: bool = True

    @property
    def field_name(self) -> str:
        return service_field_name(self.name)

    def find_item(self, item_name: str) -> ServiceItem | None:
        for item in self.items:
            if item.name == item_name:
                return item
        return None


@dataclass(frozen=True)
class OccasionDefinition:
    name: str
    icon: str = ""
    popular: bool = False
    include_in_decoration: bool = False
    required_fields: tuple[str, ...] = ()
    field_labels: dict[str, str] = field(default_factory=dict)

    def label_for(self, field_key: str) -> str:
        return self.field_labels.get(field_key) or field_key


@dataclass(frozen=True)
class TheaterInfo:
    name: str
    theater_id: str | None = None
    price: str | float | None = None  # may arrive as a display string like "₹1,399"
    capacity: TheaterCapacity | None = None
    slot_booking_fee: float | None = None
    decoration_compulsory: bool = False


@dataclass(frozen=True)
class Catalog:
    theaters: tuple[TheaterInfo, ...] = ()
    services: tuple[ServiceCatalogEntry, ...] = ()
    occasions: tuple[OccasionDefinition, ...] = ()

    def service(self, name: str) -> ServiceCatalogEntry | None:
        for service in self.services:
            if service.name == name:
                return service
        return None

    def service_by_field_name(self, field_name: str) -> ServiceCatalogEntry | None:
        for service in self.services:
            if service.field_name == field_name:
                return service
        return None

    def occasion(self, name: str) -> OccasionDefinition | None:
        if not name:
            return None
        for occasion in self.occasions:
            if occasion.name == name:
                return occasion
        return None

    def bundled_services(self) -> list[ServiceCatalogEntry]:
        return [s for s in self.services if s.include_in_decoration]

    def all_occasions_decoration_only(self) -> bool:
        return bool(self.occasions) and all(o.include_in_decoration for o in self.occasions)

    def find_theater(self, theater: TheaterInfo) -> TheaterInfo | None:
        """Match a session theater against the roster by name, id, then first word of the name."""
        for candidate in self.theaters:
            if theater.name and candidate.name == theater.name:
                return candidate
            if theater.theater_id and candidate.theater_id == theater.theater_id:
                return candidate
        first_word = theater.name.split(" ")[0] if theater.name else ""
        if first_word:
            for candidate in self.theaters:
                if first_word in candidate.name:
                    return candidate
        return None
