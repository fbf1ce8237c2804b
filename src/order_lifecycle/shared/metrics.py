"""Prometheus metrics for the order lifecycle engine."""

from prometheus_client import REGISTRY, Counter, Histogram


def _get_or_create_metric(metric_class, name: str, doc: str, labelnames=None, **kwargs):
    """Get existing metric or create new one to avoid duplication errors in tests."""
    # Counters register without their _total suffix
    lookup_names = {name, name.removesuffix("_total")}
    # Check if already exists
    for collector in list(REGISTRY._collector_to_names.keys()):
        if getattr(collector, "_name", None) in lookup_names:
            return collector
    # Create new
    try:
        if labelnames is not None:
            kwargs["labelnames"] = labelnames
        return metric_class(name, doc, registry=REGISTRY, **kwargs)
    except ValueError as e:
        if "Duplicated timeseries" in str(e):
            # Race condition - try to find it again
            for collector in list(REGISTRY._collector_to_names.keys()):
                if getattr(collector, "_name", None) in lookup_names:
                    return collector
        raise


# Lifecycle metrics
orders_created_total = _get_or_create_metric(
    Counter,
    "orders_created_total",
    "Total number of orders committed by the lifecycle engine",
    ["order_type"],
)

order_transitions_total = _get_or_create_metric(
    Counter,
    "order_transitions_total",
    "Total number of committed order status transitions",
    ["from_status", "to_status"],
)

orders_cancelled_total = _get_or_create_metric(
    Counter,
    "orders_cancelled_total",
    "Total number of cancelled orders",
)

order_operation_failures_total = _get_or_create_metric(
    Counter,
    "order_operation_failures_total",
    "Total number of lifecycle operations that raised an error",
    ["operation", "error_type"],
)

# Pricing metrics
promo_codes_applied_total = _get_or_create_metric(
    Counter,
    "promo_codes_applied_total",
    "Total number of orders that applied a promo code discount",
)

order_total_amount = _get_or_create_metric(
    Histogram,
    "order_total_amount",
    "Grand total of created orders",
    buckets=[5, 10, 20, 35, 50, 75, 100, 150, 250, 500],
)


def record_failure(operation: str, error: Exception) -> None:
    """Count a failed lifecycle operation by error class."""
    order_operation_failures_total.labels(
        operation=operation, error_type=type(error).__name__
    ).inc()
