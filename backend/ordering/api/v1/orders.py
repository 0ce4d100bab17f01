import logging

from fastapi import APIRouter, Depends, status

from ordering.api.v1.quote import priced_draft, resolve_catalog
from ordering.core import metrics
from ordering.core.dependencies import get_catalog_loader, get_storefront_client
from ordering.schemas.order import OrderSubmitResponse, QuoteRequest, QuoteResponse
from ordering.services.catalog_sync import CatalogLoader
from ordering.services.order_draft import OrderNotSubmittableError, build_order_payload, quote_draft
from ordering.services.storefront_api import StorefrontApiClient, StorefrontApiError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_order(
    payload: QuoteRequest,
    client: StorefrontApiClient = Depends(get_storefront_client),
    loader: CatalogLoader = Depends(get_catalog_loader),
):
    offers, snapshot = await resolve_catalog(payload, client, loader)
    draft = priced_draft(payload, snapshot)
    quote = quote_draft(draft, offers)
    try:
        order_payload = build_order_payload(draft, quote)
    except OrderNotSubmittableError as exc:
        metrics.record_order_rejected(exc.code)
        raise
    try:
        created = await client.submit_order(order_payload)
    except StorefrontApiError:
        metrics.record_order_rejected("upstream_rejected")
        raise
    metrics.record_order_submitted()
    logger.info("order_submitted", extra={"order_id": created.id, "total": quote.totals.total})
    return OrderSubmitResponse(id=created.id, quote=quote)


@router.post("/{order_id}/preview", response_model=QuoteResponse)
async def preview_order_edit(
    order_id: str,
    payload: QuoteRequest,
    client: StorefrontApiClient = Depends(get_storefront_client),
    loader: CatalogLoader = Depends(get_catalog_loader),
):
    offers, snapshot = await resolve_catalog(payload, client, loader)
    quote = quote_draft(priced_draft(payload, snapshot), offers)
    logger.info("order_edit_previewed", extra={"order_id": order_id, "total": quote.totals.total})
    return QuoteResponse(**quote.model_dump())


@router.put("/{order_id}", response_model=QuoteResponse)
async def save_order_edit(
    order_id: str,
    payload: QuoteRequest,
    client: StorefrontApiClient = Depends(get_storefront_client),
    loader: CatalogLoader = Depends(get_catalog_loader),
):
    offers, snapshot = await resolve_catalog(payload, client, loader)
    draft = priced_draft(payload, snapshot)
    quote = quote_draft(draft, offers)
    await client.update_order(order_id, build_order_payload(draft, quote))
    return QuoteResponse(**quote.model_dump())
