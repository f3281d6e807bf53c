"""Fixtures wiring services over in-memory repositories."""

from datetime import datetime

import pytest

from cafe_pos_service.models.menu_models import MenuItem
from cafe_pos_service.models.stock_models import StockItem
from cafe_pos_service.services.notification_service import NotificationHub
from cafe_pos_service.services.order_service import OrderService
from cafe_pos_service.services.stock_service import StockService
from tests.component.fakes import (
    InMemoryMenuRepository,
    InMemoryOrderRepository,
    InMemoryStockRepository,
)


@pytest.fixture
def menu_repository(burger: MenuItem) -> InMemoryMenuRepository:
    """Menu with the burger."""
    return InMemoryMenuRepository([burger])


@pytest.fixture
def stock_repository(beef: StockItem, buns: StockItem) -> InMemoryStockRepository:
    """Stock with 1.0 kg of beef and 50 buns."""
    return InMemoryStockRepository([beef, buns])


@pytest.fixture
def order_repository() -> InMemoryOrderRepository:
    """Empty order store."""
    return InMemoryOrderRepository()


@pytest.fixture
def notification_hub(fixed_now: datetime) -> NotificationHub:
    """Notification hub on the fixed clock."""
    return NotificationHub(clock=lambda: fixed_now)


@pytest.fixture
def order_service(
    menu_repository: InMemoryMenuRepository,
    stock_repository: InMemoryStockRepository,
    order_repository: InMemoryOrderRepository,
    notification_hub: NotificationHub,
    fixed_now: datetime,
) -> OrderService:
    """OrderService over the in-memory repositories."""
    return OrderService(
        menu_repository=menu_repository,  # type: ignore[arg-type]
        stock_repository=stock_repository,  # type: ignore[arg-type]
        order_repository=order_repository,  # type: ignore[arg-type]
        notification_hub=notification_hub,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def stock_service(stock_repository: InMemoryStockRepository) -> StockService:
    """StockService over the in-memory stock repository."""
    return StockService(stock_repository=stock_repository)  # type: ignore[arg-type]
