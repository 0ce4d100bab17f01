from collections.abc import Generator
from decimal import Decimal

import pytest

from ordering.core import metrics
from ordering.core.dependencies import get_catalog_loader
from ordering.schemas.cart import DeliveryZone


@pytest.fixture(autouse=True)
def _reset_process_state() -> Generator[None, None, None]:
    metrics.reset()
    get_catalog_loader.cache_clear()
    yield
    metrics.reset()
    get_catalog_loader.cache_clear()


@pytest.fixture
def zone() -> DeliveryZone:
    return DeliveryZone(id="z1", name="Centru", delivery_fee=Decimal("15.00"), min_order_amount=Decimal("50.00"))

