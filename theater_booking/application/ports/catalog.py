from __future__ import annotations

from abc import ABC, abstractmethod

from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.pricing import PricingConfig


class CatalogPort(ABC):
    @abstractmethod
    async def fetch_catalog(self) -> Catalog:
        """Fetch theaters, services and occasions. Raises NetworkFetchError."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_pricing(self) -> PricingConfig:
        """Fetch the live pricing configuration. Raises NetworkFetchError."""
        raise NotImplementedError
