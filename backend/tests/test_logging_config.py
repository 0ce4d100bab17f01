import json
import logging
from decimal import Decimal

from ordering.core.logging_config import JsonFormatter, request_id_ctx_var, RequestIdFilter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("ordering.test", logging.INFO, __file__, 1, "quote computed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_request_id_and_extras() -> None:
    token = request_id_ctx_var.set("req-1")
    try:
        record = _record(total=Decimal("12.50"), offer_ids=("1", "2"), path="/api/v1/quote")
        RequestIdFilter().filter(record)
        payload = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx_var.reset(token)

    assert payload["request_id"] == "req-1"
    assert payload["message"] == "quote computed"
    assert payload["path"] == "/api/v1/quote"
    assert payload["total"] == "12.50"
    assert payload["offer_ids"] == ["1", "2"]
    assert "args" not in payload
