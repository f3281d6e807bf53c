"""Component tests for order placement against in-memory repositories."""

import asyncio
import threading
from decimal import Decimal

import pytest
from botocore.exceptions import EndpointConnectionError
from fastapi.testclient import TestClient

from cafe_pos_service.auth.token_validator import Principal
from cafe_pos_service.handlers.api_handler import create_app
from cafe_pos_service.models.menu_models import MenuItem, RecipeIngredient
from cafe_pos_service.models.order_models import OrderStatusEnum, ProcessOrderRequest
from cafe_pos_service.models.stock_models import StockItem, StockUpdateResult
from cafe_pos_service.services.notification_service import NotificationHub
from cafe_pos_service.services.order_service import (
    FailureKind,
    OrderProcessingResult,
    OrderService,
)
from cafe_pos_service.services.stock_service import StockService

from tests.component.fakes import (
    InMemoryMenuRepository,
    InMemoryOrderRepository,
    InMemoryStockRepository,
)


def burgers(quantity: int) -> ProcessOrderRequest:
    """Order for a number of burgers."""
    return ProcessOrderRequest.model_validate(
        {"orderItems": [{"menuId": "burger", "quantity": quantity}], "tableNumber": "4"}
    )


@pytest.mark.component
class TestSequentialOrders:
    """Orders placed one after another."""

    @pytest.mark.asyncio
    async def test_stock_runs_out_after_five_burgers(
        self,
        order_service: OrderService,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
    ) -> None:
        """Test five single burgers consume all 1.0 kg of beef and the sixth is refused."""
        for _ in range(5):
            result = await order_service.process_order(burgers(1), created_by="user_1")
            assert result.success is True

        beef = stock_repository.get_stock_item("stk_beef")
        assert beef is not None
        assert beef.quantity == Decimal("0")
        assert beef.total_consumed == Decimal("1.0")

        refused = await order_service.process_order(burgers(1), created_by="user_1")

        assert refused.success is False
        assert refused.failure_kind == FailureKind.STOCK_UNAVAILABLE
        assert refused.details[0]["name"] == "Beef"
        assert Decimal(refused.details[0]["required"]) == Decimal("0.2")
        assert Decimal(refused.details[0]["available"]) == Decimal("0")
        assert len(order_repository.orders) == 5

    @pytest.mark.asyncio
    async def test_order_numbers_are_sequential_per_day(
        self, order_service: OrderService
    ) -> None:
        """Test order numbers count up within a day."""
        first = await order_service.process_order(burgers(1), created_by="user_1")
        second = await order_service.process_order(burgers(1), created_by="user_1")

        assert first.order is not None
        assert second.order is not None
        assert first.order.order_number == "ORD-20240115-001"
        assert second.order.order_number == "ORD-20240115-002"

    @pytest.mark.asyncio
    async def test_total_snapshots_menu_price(
        self,
        order_service: OrderService,
        menu_repository: InMemoryMenuRepository,
        order_repository: InMemoryOrderRepository,
        burger: MenuItem,
    ) -> None:
        """Test later price changes never affect a created order."""
        result = await order_service.process_order(burgers(2), created_by="user_1")
        assert result.order is not None

        menu_repository.save_menu_item(burger.model_copy(update={"price": Decimal("10.00")}))

        stored = order_repository.get_order(result.order.order_id)
        assert stored is not None
        assert stored.total_amount == Decimal("17.00")

    @pytest.mark.asyncio
    async def test_refused_order_leaves_no_trace(
        self,
        order_service: OrderService,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
    ) -> None:
        """Test an order failing the availability check writes nothing."""
        result = await order_service.process_order(burgers(6), created_by="user_1")

        assert result.failure_kind == FailureKind.STOCK_UNAVAILABLE
        assert order_repository.orders == {}
        beef = stock_repository.get_stock_item("stk_beef")
        assert beef is not None
        assert beef.quantity == Decimal("1.0")

    @pytest.mark.asyncio
    async def test_status_lifecycle_notifies_cashier(
        self,
        order_service: OrderService,
        notification_hub: NotificationHub,
    ) -> None:
        """Test an order moved to ready is announced to cashiers."""
        result = await order_service.process_order(burgers(1), created_by="user_1")
        assert result.order is not None
        order_id = result.order.order_id

        await order_service.update_order_status(order_id, OrderStatusEnum.PREPARING)
        await order_service.update_order_status(order_id, OrderStatusEnum.READY)

        messages = [n.message for n in notification_hub.list_for(role="cashier")]
        assert messages == ["Order #ORD-20240115-001 is ready for pickup!"]
        chef_messages = [n.message for n in notification_hub.list_for(role="chef")]
        assert chef_messages == ["New order #ORD-20240115-001 for table 4"]


@pytest.mark.component
class TestRollback:
    """Compensation when a decrement fails after the order is written."""

    @pytest.mark.asyncio
    async def test_failed_decrement_restores_earlier_decrements(
        self,
        order_service: OrderService,
        menu_repository: InMemoryMenuRepository,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
        notification_hub: NotificationHub,
    ) -> None:
        """Test beef consumed before a bun shortage is put back and the order removed."""
        menu_repository.save_menu_item(
            MenuItem(
                menu_id="double",
                name="Double Burger",
                category="Mains",
                price=Decimal("11.00"),
                recipe=[
                    RecipeIngredient(
                        stock_id="stk_beef",
                        stock_item_name="Beef",
                        quantity_required=Decimal("0.4"),
                        unit="kg",
                    ),
                    RecipeIngredient(
                        stock_id="stk_buns",
                        stock_item_name="Burger Bun",
                        quantity_required=Decimal("1"),
                        unit="pcs",
                    ),
                ],
            )
        )
        decrement = stock_repository.decrement_quantity

        def drain_buns_first(
            stock_id: str, amount: Decimal
        ) -> tuple[StockUpdateResult, StockItem | None]:
            # Another till sells the last buns between the check and the decrement
            if stock_id == "stk_buns":
                buns = stock_repository.items["stk_buns"]
                stock_repository.items["stk_buns"] = buns.model_copy(
                    update={"quantity": Decimal("0")}
                )
            return decrement(stock_id, amount)

        stock_repository.decrement_quantity = drain_buns_first  # type: ignore[method-assign]

        result = await order_service.process_order(
            ProcessOrderRequest.model_validate(
                {
                    "orderItems": [
                        {"menuId": "burger", "quantity": 1},
                        {"menuId": "double", "quantity": 1},
                    ]
                }
            ),
            created_by="user_1",
        )

        assert result.success is False
        assert result.failure_kind == FailureKind.STOCK_CONSUMPTION_ERROR
        assert result.details[0]["ingredient"] == "Burger Bun"
        assert result.details[0]["lineIndex"] == 1
        beef = stock_repository.get_stock_item("stk_beef")
        assert beef is not None
        assert beef.quantity == Decimal("1.0")
        assert beef.total_consumed == Decimal("0")
        assert order_repository.orders == {}
        admin_messages = [n.message for n in notification_hub.list_for(role="admin")]
        assert admin_messages[0] == "Order failed: Stock consumption failed for Double Burger"

    @pytest.mark.asyncio
    async def test_order_removed_when_store_fails_mid_rollback(
        self,
        order_service: OrderService,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
        notification_hub: NotificationHub,
    ) -> None:
        """Test a storage outage during consumption and restore leaves no order behind."""
        decrement = stock_repository.decrement_quantity
        calls: list[str] = []

        def fail_second_decrement(
            stock_id: str, amount: Decimal
        ) -> tuple[StockUpdateResult, StockItem | None]:
            calls.append(stock_id)
            if len(calls) > 1:
                raise EndpointConnectionError(endpoint_url="https://dynamodb.local")
            return decrement(stock_id, amount)

        def fail_restore(stock_id: str, amount: Decimal) -> bool:
            raise EndpointConnectionError(endpoint_url="https://dynamodb.local")

        stock_repository.decrement_quantity = fail_second_decrement  # type: ignore[method-assign]
        stock_repository.restore_quantity = fail_restore  # type: ignore[method-assign]

        with pytest.raises(EndpointConnectionError):
            await order_service.process_order(
                ProcessOrderRequest.model_validate(
                    {
                        "orderItems": [
                            {"menuId": "burger", "quantity": 1},
                            {"menuId": "burger", "quantity": 1},
                        ]
                    }
                ),
                created_by="user_1",
            )

        assert order_repository.orders == {}
        admin_messages = [n.message for n in notification_hub.list_for(role="admin")]
        assert admin_messages[0].startswith("Order failed: Could not connect")


@pytest.mark.component
class TestConcurrentOrders:
    """Two orders for the same stock submitted at the same time."""

    def place_concurrently(
        self, order_service: OrderService, order_repository: InMemoryOrderRepository
    ) -> list[OrderProcessingResult]:
        """Submit two orders of five burgers from separate threads."""
        order_repository.barrier = threading.Barrier(2)
        results: list[OrderProcessingResult] = []
        results_lock = threading.Lock()

        def submit() -> None:
            result = asyncio.run(order_service.process_order(burgers(5), created_by="user_1"))
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=submit) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results) == 2
        return results

    def test_both_succeed_when_stock_covers_both(
        self,
        order_service: OrderService,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
    ) -> None:
        """Test 6.0 kg serves two orders of five burgers and leaves 4.0 kg."""
        beef = stock_repository.items["stk_beef"]
        stock_repository.items["stk_beef"] = beef.model_copy(update={"quantity": Decimal("6.0")})

        results = self.place_concurrently(order_service, order_repository)

        assert all(result.success for result in results)
        remaining = stock_repository.get_stock_item("stk_beef")
        assert remaining is not None
        assert remaining.quantity == Decimal("4.0")
        assert len(order_repository.orders) == 2

    def test_exactly_one_succeeds_when_stock_covers_one(
        self,
        order_service: OrderService,
        stock_repository: InMemoryStockRepository,
        order_repository: InMemoryOrderRepository,
    ) -> None:
        """Test 1.0 kg serves only one of two concurrent orders; the other is rolled back."""
        results = self.place_concurrently(order_service, order_repository)

        succeeded = [result for result in results if result.success]
        failed = [result for result in results if not result.success]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert failed[0].failure_kind == FailureKind.STOCK_CONSUMPTION_ERROR

        remaining = stock_repository.get_stock_item("stk_beef")
        assert remaining is not None
        assert remaining.quantity == Decimal("0")
        assert succeeded[0].order is not None
        assert list(order_repository.orders) == [succeeded[0].order.order_id]


@pytest.mark.component
class TestAvailabilityCheck:
    """The read-only availability endpoint."""

    @pytest.fixture
    def client(
        self,
        order_service: OrderService,
        stock_service: StockService,
        notification_hub: NotificationHub,
    ) -> TestClient:
        """Create a test client over the in-memory services."""
        app = create_app(
            order_service=order_service,
            stock_service=stock_service,
            notification_hub=notification_hub,
            staff_tokens={"till-token": Principal(user_id="user_1", role="cashier")},
        )
        return TestClient(app)

    def test_availability_check_is_idempotent(
        self, client: TestClient, stock_repository: InMemoryStockRepository
    ) -> None:
        """Test repeated checks return identical reports, each stamped, and change nothing."""
        params = {"menuIds": "burger,burger", "quantities": "5,6"}
        headers = {"Authorization": "Bearer till-token"}

        first = client.get("/orders/process", params=params, headers=headers)
        second = client.get("/orders/process", params=params, headers=headers)

        assert first.status_code == 200
        assert first.json()["availabilityCheck"] == second.json()["availabilityCheck"]
        assert "timestamp" in first.json()
        assert "timestamp" in second.json()
        report = first.json()["availabilityCheck"]
        assert [line["available"] for line in report] == [True, False]
        missing = report[1]["missingIngredients"][0]
        assert missing["name"] == "Beef"
        assert Decimal(missing["required"]) == Decimal("1.2")
        beef = stock_repository.get_stock_item("stk_beef")
        assert beef is not None
        assert beef.quantity == Decimal("1.0")

    def test_order_then_restock_via_api(
        self, client: TestClient, stock_repository: InMemoryStockRepository
    ) -> None:
        """Test ordering over HTTP until stock runs out, then a cashier trying to restock."""
        headers = {"Authorization": "Bearer till-token"}

        created = client.post(
            "/orders/process",
            json={"orderItems": [{"menuId": "burger", "quantity": 5}]},
            headers=headers,
        )
        refused = client.post(
            "/orders/process",
            json={"orderItems": [{"menuId": "burger", "quantity": 1}]},
            headers=headers,
        )
        restock = client.post("/stock/stk_beef/restock", json={"amount": "1"}, headers=headers)

        assert created.status_code == 201
        assert created.json()["order"]["orderNumber"] == "ORD-20240115-001"
        assert refused.status_code == 409
        assert refused.json()["type"] == "stock_unavailable"
        assert refused.json()["unavailableItem"]["missingIngredients"][0]["name"] == "Beef"
        assert restock.status_code == 403
