from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(*keys: str) -> None:
    with _lock:
        for key in keys:
            _metrics[key] += 1


def record_order_created() -> None:
    _inc("orders_created")


def record_order_rejected(code: str | None = None) -> None:
    """Count a business-rule rejection, plus a per-code counter when the code is known."""
    if code:
        _inc("orders_rejected", f"orders_rejected.{code}")
    else:
        _inc("orders_rejected")


def record_order_failed() -> None:
    _inc("orders_failed")


def record_coupon_consumed() -> None:
    _inc("coupons_consumed")


def rejection_counts() -> Dict[str, int]:
    prefix = "orders_rejected."
    with _lock:
        return {key[len(prefix):]: value for key, value in _metrics.items() if key.startswith(prefix)}


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
