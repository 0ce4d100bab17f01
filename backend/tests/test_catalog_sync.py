import asyncio
from decimal import Decimal

import httpx

from ordering.core import metrics
from ordering.schemas.cart import DeliveryZone
from ordering.schemas.offer import Offer, OfferType
from ordering.services.catalog_sync import CatalogLoader, CatalogSnapshot
from ordering.services.storefront_api import StorefrontApiClient


def _offer(offer_id: str) -> Offer:
    return Offer(id=offer_id, name=offer_id, type=OfferType.fixed, value=Decimal("5"))


def _zone(zone_id: str) -> DeliveryZone:
    return DeliveryZone(id=zone_id, name=zone_id, delivery_fee=Decimal("10"))


def test_out_of_order_response_is_discarded() -> None:
    loader = CatalogLoader()
    older = loader.begin()
    newer = loader.begin()

    assert loader.accept(newer, offers=[_offer("new")], zones=[]) is True
    assert loader.accept(older, offers=[_offer("old")], zones=[]) is False
    assert [offer.id for offer in loader.snapshot.offers] == ["new"]
    assert loader.snapshot.generation == newer


def test_snapshots_are_independent_values() -> None:
    loader = CatalogLoader()
    loader.accept(loader.begin(), offers=[_offer("a")], zones=[_zone("z1")])
    first = loader.snapshot
    loader.accept(loader.begin(), offers=[_offer("b")], zones=[])

    assert [offer.id for offer in first.offers] == ["a"]
    assert first.zone("z1") is not None
    assert first.zone(None) is None
    assert [offer.id for offer in loader.snapshot.offers] == ["b"]


def test_refresh_fetches_offers_and_zones() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/offers"):
            return httpx.Response(200, json=[{"id": 1, "name": "A", "type": "FIXED", "value": 5, "application_type": "cart"}])
        return httpx.Response(200, json=[{"id": 9, "name": "Centru", "delivery_fee": 12, "min_order": 30}])

    client = StorefrontApiClient("http://storefront.test/api", transport=httpx.MockTransport(handler))
    snapshot = asyncio.run(CatalogLoader().refresh(client))

    assert [offer.id for offer in snapshot.offers] == ["1"]
    assert snapshot.zone("9") is not None
    assert snapshot.generation == 1


def test_failed_refresh_keeps_last_known_catalogue() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "down"})

    known = CatalogSnapshot(offers=(_offer("kept"),), generation=3)
    loader = CatalogLoader(known)
    client = StorefrontApiClient("http://storefront.test/api", transport=httpx.MockTransport(handler))

    snapshot = asyncio.run(loader.refresh(client))

    assert snapshot is known
    assert metrics.snapshot()["offer_fetch_failures"] == 1
    # The failed attempt still consumed a generation token.
    assert loader.begin() == 5


def test_malformed_catalogue_body_keeps_last_known_catalogue() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

    known = CatalogSnapshot(offers=(_offer("kept"),), zones=(_zone("z1"),), generation=2)
    loader = CatalogLoader(known)
    client = StorefrontApiClient("http://storefront.test/api", transport=httpx.MockTransport(handler))

    assert asyncio.run(loader.refresh(client)) is known
    assert metrics.snapshot()["offer_fetch_failures"] == 1


def test_zone_failure_alone_rejects_the_whole_refresh() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/offers"):
            return httpx.Response(200, json=[{"id": 1, "name": "A", "type": "FIXED", "value": 5, "application_type": "cart"}])
        return httpx.Response(500, json={"message": "zones down"})

    loader = CatalogLoader()
    client = StorefrontApiClient("http://storefront.test/api", transport=httpx.MockTransport(handler))
    snapshot = asyncio.run(loader.refresh(client))

    assert snapshot.generation == 0
    assert snapshot.offers == ()


def test_priced_zone_uses_catalogue_terms() -> None:
    client_zone = DeliveryZone(id="z1", name="z1", delivery_fee=Decimal("0"), min_order_amount=Decimal("0"))
    unknown = DeliveryZone(id="elsewhere", name="elsewhere")

    assert CatalogSnapshot().priced_zone(client_zone) is client_zone

    loaded = CatalogSnapshot(zones=(_zone("z1"),), generation=1)
    priced = loaded.priced_zone(client_zone)
    assert priced is not None
    assert priced.delivery_fee == Decimal("10")
    assert loaded.priced_zone(unknown) is None
    assert loaded.priced_zone(None) is None
