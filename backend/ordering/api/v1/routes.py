from fastapi import APIRouter

from ordering.api.v1 import orders
from ordering.api.v1 import quote
from ordering.core.metrics import snapshot as metrics_snapshot

api_router = APIRouter()

api_router.include_router(quote.router)
api_router.include_router(orders.router)


@api_router.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.get("/health/ready", tags=["health"])
def readiness() -> dict[str, str]:
    return {"status": "ready"}


@api_router.get("/metrics", tags=["metrics"])
def metrics(prefix: str | None = None) -> dict:
    return metrics_snapshot(prefix)
