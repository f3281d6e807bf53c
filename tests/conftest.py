"""Shared pytest fixtures and configuration for all tests."""

import os
from datetime import UTC, datetime
from decimal import Decimal

import pytest

# main.py and lambda_handler.py skip building real AWS clients in test mode
os.environ["ENVIRONMENT"] = "test"

from cafe_pos_service.models.menu_models import MenuItem, RecipeIngredient  # noqa: E402
from cafe_pos_service.models.order_models import Order, OrderLine, OrderStatusEnum  # noqa: E402
from cafe_pos_service.models.stock_models import StockItem  # noqa: E402


@pytest.fixture
def fixed_now() -> datetime:
    """Fixture providing a fixed point in time."""
    return datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


@pytest.fixture
def beef() -> StockItem:
    """Fixture providing a tracked stock item with 1.0 kg on hand."""
    return StockItem(
        stock_id="stk_beef",
        name="Beef",
        category="Meat",
        quantity=Decimal("1.0"),
        unit="kg",
        min_limit=Decimal("0.5"),
        unit_cost=Decimal("12.00"),
    )


@pytest.fixture
def buns() -> StockItem:
    """Fixture providing a tracked stock item counted in pieces."""
    return StockItem(
        stock_id="stk_buns",
        name="Burger Bun",
        category="Bakery",
        quantity=Decimal("50"),
        unit="pcs",
        min_limit=Decimal("10"),
        unit_cost=Decimal("0.40"),
    )


@pytest.fixture
def ketchup() -> StockItem:
    """Fixture providing an untracked stock item."""
    return StockItem(
        stock_id="stk_ketchup",
        name="Ketchup",
        category="Condiments",
        quantity=Decimal("0"),
        unit="ml",
        track_quantity=False,
    )


@pytest.fixture
def burger() -> MenuItem:
    """Fixture providing a burger whose recipe uses 0.2 kg of beef per unit."""
    return MenuItem(
        menu_id="burger",
        name="Burger",
        category="Mains",
        price=Decimal("8.50"),
        recipe=[
            RecipeIngredient(
                stock_id="stk_beef",
                stock_item_name="Beef",
                quantity_required=Decimal("0.2"),
                unit="kg",
            ),
        ],
    )


@pytest.fixture
def sample_order(fixed_now: datetime) -> Order:
    """Fixture providing a persisted pending order."""
    return Order(
        order_id="ord_abc123",
        order_number="ORD-20240115-001",
        items=[
            OrderLine(
                menu_item_id="burger",
                name="Burger",
                quantity=2,
                price=Decimal("8.50"),
            )
        ],
        total_amount=Decimal("17.00"),
        status=OrderStatusEnum.PENDING,
        payment_method="cash",
        customer_name="Alex",
        table_number="4",
        created_by="user_1",
        created_at=fixed_now,
    )
