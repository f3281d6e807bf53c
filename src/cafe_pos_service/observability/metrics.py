"""Custom metrics for the cafe point-of-sale service."""

from decimal import Decimal

from opentelemetry import metrics

meter = metrics.get_meter("cafe-pos")

orders_processed_counter = meter.create_counter(
    name="orders_processed_total",
    description="Total number of orders created with stock consumed",
    unit="1",
)

order_failure_counter = meter.create_counter(
    name="order_failure_total",
    description="Total number of rejected or failed order submissions by failure kind",
    unit="1",
)

order_processing_duration = meter.create_histogram(
    name="order_processing_duration_seconds",
    description="Duration of order placement including stock consumption",
    unit="s",
)

stock_consumed_counter = meter.create_counter(
    name="stock_consumed_total",
    description="Quantity of stock consumed by orders, per stock item",
    unit="1",
)

low_stock_alert_counter = meter.create_counter(
    name="low_stock_alerts_total",
    description="Number of low stock warnings raised after consumption",
    unit="1",
)


def record_order_processed(line_count: int) -> None:  # noqa: ARG001
    """Record a successfully processed order.

    Args:
        line_count: Number of lines on the order
    """
    orders_processed_counter.add(1)


def record_order_failure(failure_kind: str) -> None:
    """Record a rejected or failed order submission.

    Args:
        failure_kind: Machine readable failure kind (e.g. "stock_unavailable")
    """
    order_failure_counter.add(1, {"failure_kind": failure_kind})


def record_processing_duration(duration_seconds: float, success: bool) -> None:
    """Record how long an order submission took.

    Args:
        duration_seconds: Duration in seconds
        success: Whether the order was created
    """
    order_processing_duration.record(duration_seconds, {"success": success})


def record_stock_consumed(stock_item: str, amount: Decimal) -> None:
    """Record stock consumed by an order line.

    Args:
        stock_item: Stock item name
        amount: Quantity consumed
    """
    stock_consumed_counter.add(float(amount), {"stock_item": stock_item})


def record_low_stock_alert(stock_item: str) -> None:
    """Record a low stock warning.

    Args:
        stock_item: Stock item name
    """
    low_stock_alert_counter.add(1, {"stock_item": stock_item})
