"""Exceptions raised by the service layer for conditions callers must handle."""


class MenuItemNotFoundError(Exception):
    """A requested menu item identifier does not resolve."""

    def __init__(self, menu_id: str, line_index: int | None = None) -> None:
        self.menu_id = menu_id
        self.line_index = line_index
        super().__init__(f"Menu item {menu_id} not found")


class OrderNotFoundError(Exception):
    """An order identifier does not resolve."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class StockItemNotFoundError(Exception):
    """A stock item identifier does not resolve."""

    def __init__(self, stock_id: str) -> None:
        self.stock_id = stock_id
        super().__init__(f"Stock item {stock_id} not found")


class InvalidStatusTransitionError(Exception):
    """An order status change is not allowed from the order's current status."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from {current} to {requested}")
