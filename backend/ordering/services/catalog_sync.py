from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ordering.core import metrics
from ordering.schemas.cart import DeliveryZone
from ordering.schemas.offer import Offer
from ordering.services.storefront_api import StorefrontApiClient, StorefrontApiError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    offers: tuple[Offer, ...] = ()
    zones: tuple[DeliveryZone, ...] = ()
    generation: int = 0
    fetched_at: datetime | None = None

    def zone(self, zone_id: str | None) -> DeliveryZone | None:
        if zone_id is None:
            return None
        return next((zone for zone in self.zones if zone.id == str(zone_id)), None)

    def priced_zone(self, requested: DeliveryZone | None) -> DeliveryZone | None:
        """Catalogue copy of ``requested``, or None when the zone is not listed.

        Before the first successful load the requested zone is returned as is.
        """
        if requested is None or self.generation == 0:
            return requested
        return self.zone(requested.id)


class CatalogLoader:
    """Holds the last accepted catalogue and discards responses that arrive out of order.

    Each refresh takes a generation token before fetching; a response is only
    accepted when its token is newer than the one already applied.
    """

    def __init__(self, snapshot: CatalogSnapshot | None = None) -> None:
        self._snapshot = snapshot or CatalogSnapshot()
        self._issued = self._snapshot.generation

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def begin(self) -> int:
        self._issued += 1
        return self._issued

    def accept(
        self,
        generation: int,
        *,
        offers: list[Offer] | tuple[Offer, ...],
        zones: list[DeliveryZone] | tuple[DeliveryZone, ...],
    ) -> bool:
        if generation <= self._snapshot.generation:
            logger.info(
                "catalog_response_stale",
                extra={"generation": generation, "current_generation": self._snapshot.generation},
            )
            return False
        self._snapshot = CatalogSnapshot(
            offers=tuple(offers),
            zones=tuple(zones),
            generation=generation,
            fetched_at=datetime.now(timezone.utc),
        )
        return True

    async def refresh(self, client: StorefrontApiClient) -> CatalogSnapshot:
        """Fetch offers and zones; on failure keep serving the last known snapshot."""
        generation = self.begin()
        offers, zones = await asyncio.gather(
            client.fetch_offers(),
            client.fetch_delivery_zones(active_only=True),
            return_exceptions=True,
        )
        for result in (offers, zones):
            if isinstance(result, BaseException) and not isinstance(result, StorefrontApiError):
                raise result
        failure = next((result for result in (offers, zones) if isinstance(result, StorefrontApiError)), None)
        if failure is not None:
            metrics.record_offer_fetch_failure()
            logger.warning(
                "catalog_refresh_failed",
                extra={"generation": generation, "status_code": failure.status_code, "error": failure.message},
            )
            return self._snapshot
        self.accept(generation, offers=offers, zones=zones)
        return self._snapshot
