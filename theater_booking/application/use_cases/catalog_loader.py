from __future__ import annotations

import logging
import time
from typing import Callable

from theater_booking.application.exceptions import NetworkFetchError
from theater_booking.application.ports.catalog import CatalogPort
from theater_booking.application.use_cases.pricing import default_pricing
from theater_booking.core.config import settings
from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.pricing import PricingConfig


class CatalogLoader:
    """
    Fetches the catalog and pricing config for newly opened wizards.

    A successful catalog fetch is reused for the preload TTL so opening a
    wizard right after a page preload does not hit the backend again. Pricing
    is fetched on every open. When the backend cannot be reached the last
    known values are used, and failing that an empty catalog with default
    pricing.
    """

    def __init__(
        self,
        catalog_port: CatalogPort,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._port = catalog_port
        self._ttl = settings.CATALOG_PRELOAD_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._catalog: Catalog | None = None
        self._catalog_loaded_at: float | None = None
        self._pricing: PricingConfig | None = None
        self._logger = logging.getLogger(__name__)

    async def preload(self) -> Catalog:
        return await self._load_catalog(force=True)

    async def load(self) -> tuple[Catalog, PricingConfig]:
        catalog = await self._load_catalog(force=False)
        pricing = await self._load_pricing()
        return catalog, pricing

    def _is_fresh(self) -> bool:
        if self._catalog is None or self._catalog_loaded_at is None:
            return False
        return self._clock() - self._catalog_loaded_at < self._ttl

    async def _load_catalog(self, force: bool) -> Catalog:
        if not force and self._is_fresh():
            return self._catalog  # type: ignore[return-value]

        try:
            catalog = await self._port.fetch_catalog()
        except NetworkFetchError as e:
            self._logger.warning("Catalog fetch failed, using last known catalog", extra={"error": e.message})
            return self._catalog or Catalog()

        self._catalog = catalog
        self._catalog_loaded_at = self._clock()
        self._logger.info(
            "Catalog loaded",
            extra={"service": ",".join(s.name for s in catalog.services) or None},
        )
        return catalog

    async def _load_pricing(self) -> PricingConfig:
        try:
            self._pricing = await self._port.fetch_pricing()
        except NetworkFetchError as e:
            self._logger.warning("Pricing fetch failed, using defaults", extra={"error": e.message})
            return self._pricing or default_pricing()
        return self._pricing
