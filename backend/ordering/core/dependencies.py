from functools import lru_cache

from ordering.services.catalog_sync import CatalogLoader
from ordering.services.storefront_api import StorefrontApiClient


def get_storefront_client() -> StorefrontApiClient:
    return StorefrontApiClient()


@lru_cache
def get_catalog_loader() -> CatalogLoader:
    return CatalogLoader()
