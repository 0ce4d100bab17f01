from typing import Any, Sequence

from fastapi import APIRouter, Depends

from ordering.core import metrics
from ordering.core.dependencies import get_catalog_loader, get_storefront_client
from ordering.schemas.order import QuoteRequest, QuoteResponse
from ordering.services.catalog_sync import CatalogLoader, CatalogSnapshot
from ordering.services.order_draft import OrderDraft, quote_draft
from ordering.services.storefront_api import StorefrontApiClient

router = APIRouter(prefix="/quote", tags=["quote"])


async def resolve_catalog(
    payload: QuoteRequest,
    client: StorefrontApiClient,
    loader: CatalogLoader,
) -> tuple[Sequence[Any], CatalogSnapshot]:
    if payload.offers is not None:
        return payload.offers, loader.snapshot
    snapshot = await loader.refresh(client)
    return snapshot.offers, snapshot


def priced_draft(payload: QuoteRequest, snapshot: CatalogSnapshot) -> OrderDraft:
    """Draft with the zone's fee and minimum taken from the catalogue, not the client."""
    draft = OrderDraft.from_payload(payload.draft)
    return draft.with_delivery(draft.delivery_mode, snapshot.priced_zone(draft.zone))


@router.post("", response_model=QuoteResponse)
async def quote_order(
    payload: QuoteRequest,
    client: StorefrontApiClient = Depends(get_storefront_client),
    loader: CatalogLoader = Depends(get_catalog_loader),
):
    offers, snapshot = await resolve_catalog(payload, client, loader)
    quote = quote_draft(priced_draft(payload, snapshot), offers)
    metrics.record_quote_computed(applied.offer_id for applied in quote.applied_offers)
    return QuoteResponse(**quote.model_dump())
