from fastapi.testclient import TestClient

from ordering.core import metrics
from ordering.main import app

client = TestClient(app)


def test_healthcheck() -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness() -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_request_id_header_is_echoed_or_generated() -> None:
    assert client.get("/api/v1/health").headers.get("X-Request-ID")
    response = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_metrics_snapshot() -> None:
    metrics.record_quote_computed()
    response = client.get("/api/v1/metrics")
    assert response.json() == {"quotes_computed": 1}


def test_http_error_shape() -> None:
    res = client.get("/api/v1/does-not-exist")
    assert res.status_code == 404
    body = res.json()
    assert set(body.keys()) == {"detail", "code", "request_id"}
    assert body["detail"] == "Not Found"
    assert body["request_id"] == res.headers["X-Request-ID"]


def test_unsafe_request_id_is_replaced() -> None:
    response = client.get("/api/v1/health", headers={"X-Request-ID": "bad id with spaces"})
    assert response.headers["X-Request-ID"] != "bad id with spaces"
    assert len(response.headers["X-Request-ID"]) == 36


def test_metrics_can_be_filtered_by_prefix() -> None:
    metrics.record_order_rejected("missing_zone")
    metrics.record_quote_computed(["7"])
    response = client.get("/api/v1/metrics", params={"prefix": "orders_rejected"})
    assert response.json() == {"orders_rejected": 1, "orders_rejected.missing_zone": 1}
