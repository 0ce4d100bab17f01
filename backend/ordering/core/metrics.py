from collections import Counter
from threading import Lock
from typing import Counter as CounterType, Dict, Iterable

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(*keys: str) -> None:
    with _lock:
        for key in keys:
            _metrics[key] += 1


def record_quote_computed(applied_offer_ids: Iterable[str] = ()) -> None:
    _inc("quotes_computed", *(f"offers_applied.{offer_id}" for offer_id in applied_offer_ids))


def record_order_submitted() -> None:
    _inc("orders_submitted")


def record_order_rejected(reason: str) -> None:
    """Count a refused submission, in total and per blocking reason."""
    _inc("orders_rejected", f"orders_rejected.{reason}")


def record_offer_fetch_failure() -> None:
    _inc("offer_fetch_failures")


def snapshot(prefix: str | None = None) -> Dict[str, int]:
    with _lock:
        if prefix is None:
            return dict(_metrics)
        return {key: value for key, value in _metrics.items() if key.startswith(prefix)}


def reset() -> None:
    with _lock:
        _metrics.clear()
