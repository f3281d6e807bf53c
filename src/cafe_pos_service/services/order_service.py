"""Order placement with recipe based stock consumption.

Placing an order runs four steps:

1. Availability check: every requested line's recipe ingredients must cover
   recipe quantity x requested quantity.
2. Order write: allocate the day's next order number and persist a pending
   order with prices snapshotted from the menu.
3. Stock consumption: for each line, in order, and each ingredient, in
   recipe order, atomically decrement the stock item (the decrement only
   applies while quantity >= amount).
4. Compensation: if any decrement fails, every decrement already applied for
   this order is restored and the order record is deleted.

The availability check and the decrements are separate round trips, so two
concurrent orders can both pass step 1. The conditional decrement in step 3
is what prevents overselling; the loser is rolled back in step 4.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from cafe_pos_service.models.menu_models import MenuItem
from cafe_pos_service.models.notification_models import NotificationType
from cafe_pos_service.models.order_models import (
    IngredientConsumption,
    LineAvailability,
    LineConsumption,
    MissingIngredient,
    Order,
    OrderLine,
    OrderStatusEnum,
    ProcessOrderRequest,
)
from cafe_pos_service.models.stock_models import StockItem, StockUpdateResult
from cafe_pos_service.observability import traced
from cafe_pos_service.observability.metrics import (
    record_low_stock_alert,
    record_order_failure,
    record_order_processed,
    record_processing_duration,
    record_stock_consumed,
)
from cafe_pos_service.repositories.inventory_repositories import (
    MenuItemRepository,
    StockItemRepository,
)
from cafe_pos_service.repositories.order_repository import OrderRepository
from cafe_pos_service.services.exceptions import (
    InvalidStatusTransitionError,
    MenuItemNotFoundError,
    OrderNotFoundError,
)
from cafe_pos_service.services.notification_service import NotificationHub

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    OrderStatusEnum.PREPARING: "Order #{number} is now being prepared",
    OrderStatusEnum.READY: "Order #{number} is ready for pickup!",
    OrderStatusEnum.COMPLETED: "Order #{number} has been completed",
    OrderStatusEnum.CANCELLED: "Order #{number} has been cancelled",
}


class FailureKind(str, Enum):
    """Machine readable reasons an order submission did not succeed."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    STOCK_UNAVAILABLE = "stock_unavailable"
    STOCK_CONSUMPTION_ERROR = "stock_consumption_error"
    SERVER_ERROR = "server_error"


@dataclass
class OrderProcessingResult:
    """Result of an order submission.

    Attributes:
        success: Whether the order was created and its stock consumed
        order: The created order, None on failure
        stock_consumption: Per-line log of consumed ingredients
        validation: Per-line availability reports from the pre-check
        failure_kind: Why the submission failed, None on success
        message: Human readable summary
        details: Structured failure details (missing ingredients, failed line)
    """

    success: bool
    order: Order | None = None
    stock_consumption: list[LineConsumption] = field(default_factory=list)
    validation: list[LineAvailability] = field(default_factory=list)
    failure_kind: FailureKind | None = None
    message: str = ""
    details: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class AppliedDecrement:
    """A stock decrement already committed for the order being placed."""

    stock_id: str
    name: str
    amount: Decimal


class OrderService:
    """Service for placing orders and moving them through their lifecycle.

    The service coordinates the menu catalog, stock and order repositories
    and publishes staff notifications for new, failed and updated orders.
    """

    def __init__(
        self,
        menu_repository: MenuItemRepository,
        stock_repository: StockItemRepository,
        order_repository: OrderRepository,
        notification_hub: NotificationHub,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the OrderService.

        Args:
            menu_repository: Repository for menu items and recipes
            stock_repository: Repository for stock items
            order_repository: Repository for orders and order counters
            notification_hub: Hub receiving staff notifications
            clock: Source of the current time (defaults to UTC now)
        """
        self.menu_repository = menu_repository
        self.stock_repository = stock_repository
        self.order_repository = order_repository
        self.notification_hub = notification_hub
        self._clock = clock or (lambda: datetime.now(UTC))

    def now(self) -> datetime:
        """Current time according to the service clock."""
        return self._clock()

    @traced("check_availability")
    async def check_availability(self, lines: list[tuple[str, int]]) -> list[LineAvailability]:
        """Check whether requested quantities can be prepared from current stock.

        Read only. Every menu id must resolve, otherwise nothing is reported.

        Args:
            lines: (menu_id, requested quantity) pairs

        Returns:
            One LineAvailability per requested line, in request order

        Raises:
            ValueError: If a requested quantity is not positive
            MenuItemNotFoundError: If a menu id does not resolve
        """
        for _, quantity in lines:
            if quantity <= 0:
                raise ValueError(f"Quantity must be a positive integer, got {quantity}")

        menu_items = self._resolve_menu_items([menu_id for menu_id, _ in lines])
        stock_snapshot: dict[str, StockItem | None] = {}

        return [
            self._assess_line(menu_item, quantity, stock_snapshot)
            for menu_item, (_, quantity) in zip(menu_items, lines, strict=True)
        ]

    @traced("process_order")
    async def process_order(
        self, request: ProcessOrderRequest, created_by: str
    ) -> OrderProcessingResult:
        """Validate, create and consume stock for an order.

        Args:
            request: Submitted order lines and metadata
            created_by: Identifier of the principal placing the order

        Returns:
            OrderProcessingResult describing the created order or the failure

        Raises:
            Exception: Unexpected storage errors, re-raised after the order
                has been rolled back and the failure reported
        """
        started = time.perf_counter()
        logger.info(
            f"Processing order for table {request.table_number} "
            f"with {len(request.order_items)} items"
        )

        try:
            result = self._place_order(request, created_by)
        except Exception as e:
            record_processing_duration(time.perf_counter() - started, False)
            record_order_failure(FailureKind.SERVER_ERROR.value)
            self._notify(NotificationType.ERROR, f"Order failed: {e}", target_role="admin")
            raise

        record_processing_duration(time.perf_counter() - started, result.success)

        if result.success and result.order is not None:
            record_order_processed(len(result.order.items))
            table = f" for table {result.order.table_number}" if result.order.table_number else ""
            message = f"New order #{result.order.order_number}{table}"
            self._notify(NotificationType.SUCCESS, message, target_role="chef")
            self._notify(NotificationType.INFO, message, target_role="admin")
        elif result.failure_kind is not None:
            record_order_failure(result.failure_kind.value)
            if result.failure_kind != FailureKind.VALIDATION_ERROR:
                self._notify(
                    NotificationType.ERROR,
                    f"Order failed: {result.message}",
                    target_role="admin",
                )

        return result

    @traced("get_order")
    async def get_order(self, order_id: str) -> Order:
        """Get an order by ID.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    @traced("update_order_status")
    async def update_order_status(self, order_id: str, new_status: OrderStatusEnum) -> Order:
        """Move an order along its status lifecycle.

        Args:
            order_id: Order identifier
            new_status: Requested status

        Returns:
            The updated order

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidStatusTransitionError: If the transition is not allowed, or
                the order changed status concurrently
        """
        order = await self.get_order(order_id)

        if not order.status.can_transition_to(new_status):
            raise InvalidStatusTransitionError(order.status.value, new_status.value)

        updated = self.order_repository.update_status(order_id, order.status, new_status)
        if updated is None:
            raise InvalidStatusTransitionError(order.status.value, new_status.value)

        logger.info(f"Order {updated.order_number} moved {order.status.value} -> {new_status.value}")

        message = STATUS_MESSAGES[new_status].format(number=updated.order_number)
        if new_status == OrderStatusEnum.READY:
            self._notify(NotificationType.SUCCESS, message, target_role="cashier")
        if new_status == OrderStatusEnum.CANCELLED:
            self._notify(NotificationType.WARNING, message, target_role="admin")
        else:
            self._notify(NotificationType.INFO, message, target_role="admin")

        return updated

    @traced("delete_order")
    async def delete_order(self, order_id: str) -> None:
        """Delete an order. Stock consumed by the order is not restored.

        Raises:
            OrderNotFoundError: If the order does not exist or could not be deleted
        """
        order = await self.get_order(order_id)
        if not self.order_repository.delete_order(order_id):
            raise OrderNotFoundError(order_id)
        logger.info(f"Order {order.order_number} deleted")

    def _place_order(self, request: ProcessOrderRequest, created_by: str) -> OrderProcessingResult:
        """Run the check, write, consume and compensate steps."""
        # Step 1: resolve every line and check availability before any write
        try:
            menu_items = self._resolve_menu_items([line.menu_id for line in request.order_items])
        except MenuItemNotFoundError as e:
            return OrderProcessingResult(
                success=False,
                failure_kind=FailureKind.NOT_FOUND,
                message=str(e),
                details=[{"lineIndex": e.line_index, "menuId": e.menu_id}],
            )

        stock_snapshot: dict[str, StockItem | None] = {}
        validation: list[LineAvailability] = []

        for index, (line, menu_item) in enumerate(zip(request.order_items, menu_items, strict=True)):
            if not menu_item.available:
                return OrderProcessingResult(
                    success=False,
                    failure_kind=FailureKind.VALIDATION_ERROR,
                    message=f"Menu item {menu_item.name} is not available",
                    details=[{"lineIndex": index, "menuId": line.menu_id}],
                )

            availability = self._assess_line(menu_item, line.quantity, stock_snapshot)
            if not availability.available:
                return OrderProcessingResult(
                    success=False,
                    failure_kind=FailureKind.STOCK_UNAVAILABLE,
                    message=f"Cannot prepare {menu_item.name}",
                    validation=[availability],
                    details=[
                        missing.model_dump(by_alias=True, mode="json")
                        for missing in availability.missing_ingredients
                    ],
                )
            validation.append(availability)

        logger.info(f"All {len(request.order_items)} items validated and available")

        # Step 2: snapshot prices, allocate an order number and write the order
        order_lines = [
            OrderLine(
                menu_item_id=menu_item.menu_id,
                name=menu_item.name,
                quantity=line.quantity,
                price=menu_item.price,
                modifiers=line.modifiers,
                notes=line.notes,
            )
            for line, menu_item in zip(request.order_items, menu_items, strict=True)
        ]
        total = Order.calculate_total(order_lines)
        if total <= 0:
            return OrderProcessingResult(
                success=False,
                failure_kind=FailureKind.VALIDATION_ERROR,
                message="Order total must be greater than zero",
            )

        now = self._clock()
        date_key = now.strftime("%Y%m%d")
        sequence = self.order_repository.next_order_sequence(date_key)
        if sequence is None:
            return self._server_error("Failed to allocate order number")

        order = Order(
            order_id=f"ord_{uuid.uuid4().hex[:12]}",
            order_number=f"ORD-{date_key}-{sequence:03d}",
            items=order_lines,
            total_amount=total,
            status=OrderStatusEnum.PENDING,
            payment_method=request.payment_method or "cash",
            customer_name=request.customer_name,
            table_number=request.table_number,
            created_by=created_by,
            created_at=now,
        )

        if not self.order_repository.create_order(order):
            return self._server_error(f"Failed to persist order {order.order_number}")

        logger.info(f"Order {order.order_number} created")

        # Step 3: consume stock, compensating everything on failure
        applied: list[AppliedDecrement] = []
        try:
            consumption, failure = self._consume_stock(order, menu_items, stock_snapshot, applied)
        except Exception:
            logger.exception(f"Unexpected error consuming stock for order {order.order_number}")
            self._compensate(order, applied)
            raise

        if failure is not None:
            self._compensate(order, applied)
            return failure

        logger.info(f"Stock consumed successfully for order {order.order_number}")

        return OrderProcessingResult(
            success=True,
            order=order,
            stock_consumption=consumption,
            validation=validation,
            message=f"Order {order.order_number} processed successfully. Stock has been deducted.",
        )

    def _consume_stock(
        self,
        order: Order,
        menu_items: list[MenuItem],
        stock_snapshot: dict[str, StockItem | None],
        applied: list[AppliedDecrement],
    ) -> tuple[list[LineConsumption], OrderProcessingResult | None]:
        """Decrement every recipe ingredient of every line, recording applied decrements."""
        consumption: list[LineConsumption] = []
        low_stock: dict[str, StockItem] = {}

        for index, (line, menu_item) in enumerate(zip(order.items, menu_items, strict=True)):
            consumed: list[IngredientConsumption] = []

            for ingredient in menu_item.recipe:
                amount = ingredient.quantity_required * line.quantity
                snapshot = stock_snapshot.get(ingredient.stock_id)
                tracked = snapshot is None or snapshot.track_quantity

                if tracked and amount > 0:
                    outcome, stock_item = self.stock_repository.decrement_quantity(
                        ingredient.stock_id, amount
                    )
                    if outcome != StockUpdateResult.OK:
                        return consumption, self._consumption_failure(
                            index, menu_item, ingredient.stock_item_name, amount, outcome, stock_item
                        )

                    applied.append(
                        AppliedDecrement(ingredient.stock_id, ingredient.stock_item_name, amount)
                    )
                    record_stock_consumed(ingredient.stock_item_name, amount)
                    if stock_item is not None and stock_item.is_low_stock:
                        low_stock[stock_item.stock_id] = stock_item

                consumed.append(
                    IngredientConsumption(
                        stock_id=ingredient.stock_id,
                        name=ingredient.stock_item_name,
                        consumed=amount,
                        unit=ingredient.unit,
                    )
                )

            consumption.append(
                LineConsumption(
                    menu_item=menu_item.name,
                    quantity=line.quantity,
                    ingredients_consumed=consumed,
                )
            )

        for stock_item in low_stock.values():
            record_low_stock_alert(stock_item.name)
            self._notify(
                NotificationType.WARNING,
                f"Low stock: {stock_item.name} has {stock_item.quantity} {stock_item.unit} left",
                target_role="admin",
            )

        return consumption, None

    def _consumption_failure(
        self,
        line_index: int,
        menu_item: MenuItem,
        ingredient_name: str,
        amount: Decimal,
        outcome: StockUpdateResult,
        stock_item: StockItem | None,
    ) -> OrderProcessingResult:
        """Build the result for a decrement that did not apply."""
        logger.error(
            f"Stock consumption failed for {menu_item.name}: "
            f"{ingredient_name} ({outcome.value})"
        )
        kind = (
            FailureKind.SERVER_ERROR
            if outcome == StockUpdateResult.ERROR
            else FailureKind.STOCK_CONSUMPTION_ERROR
        )
        return OrderProcessingResult(
            success=False,
            failure_kind=kind,
            message=f"Stock consumption failed for {menu_item.name}",
            details=[
                {
                    "lineIndex": line_index,
                    "menuId": menu_item.menu_id,
                    "ingredient": ingredient_name,
                    "required": str(amount),
                    "available": str(stock_item.quantity) if stock_item else "0",
                    "reason": outcome.value,
                }
            ],
        )

    def _compensate(self, order: Order, applied: list[AppliedDecrement]) -> None:
        """Restore applied decrements (newest first) and delete the order record.

        A failing restore is logged and the remaining restores still run. The
        order record is deleted whatever happened to the restores.
        """
        restored = 0
        try:
            for decrement in reversed(applied):
                try:
                    ok = self.stock_repository.restore_quantity(
                        decrement.stock_id, decrement.amount
                    )
                except Exception:
                    logger.exception(
                        f"Error restoring {decrement.amount} of {decrement.name} "
                        f"for order {order.order_number}"
                    )
                    continue
                if ok:
                    restored += 1
                else:
                    logger.error(
                        f"Failed to restore {decrement.amount} of {decrement.name} "
                        f"for order {order.order_number}"
                    )
        finally:
            self._delete_rolled_back_order(order, restored, len(applied))

    def _delete_rolled_back_order(self, order: Order, restored: int, applied: int) -> None:
        try:
            deleted = self.order_repository.delete_order(order.order_id)
        except Exception:
            logger.exception(f"Error deleting order {order.order_number} during rollback")
            return

        if not deleted:
            logger.error(f"Failed to delete order {order.order_number} during rollback")
        else:
            logger.warning(
                f"Order {order.order_number} rolled back, {restored} of {applied} decrements restored"
            )

    def _resolve_menu_items(self, menu_ids: list[str]) -> list[MenuItem]:
        """Look up every menu id, failing on the first that does not resolve."""
        menu_items = []
        for index, menu_id in enumerate(menu_ids):
            menu_item = self.menu_repository.get_menu_item(menu_id)
            if menu_item is None:
                raise MenuItemNotFoundError(menu_id, line_index=index)
            menu_items.append(menu_item)
        return menu_items

    def _assess_line(
        self,
        menu_item: MenuItem,
        quantity: int,
        stock_snapshot: dict[str, StockItem | None],
    ) -> LineAvailability:
        """Compare one line's recipe demand with stock on hand.

        Stock items read here are cached in stock_snapshot for the rest of the
        request.
        """
        if not menu_item.available:
            return LineAvailability(
                menu_id=menu_item.menu_id,
                name=menu_item.name,
                requested_quantity=quantity,
                available=False,
                reason="Menu item is not available",
            )

        missing: list[MissingIngredient] = []
        for ingredient in menu_item.recipe:
            required = ingredient.quantity_required * quantity

            if ingredient.stock_id not in stock_snapshot:
                stock_snapshot[ingredient.stock_id] = self.stock_repository.get_stock_item(
                    ingredient.stock_id
                )
            stock_item = stock_snapshot[ingredient.stock_id]

            if stock_item is None:
                missing.append(
                    MissingIngredient(
                        name=ingredient.stock_item_name,
                        required=required,
                        available=Decimal("0"),
                        unit=ingredient.unit,
                    )
                )
            elif not stock_item.has_at_least(required):
                missing.append(
                    MissingIngredient(
                        name=stock_item.name,
                        required=required,
                        available=stock_item.quantity,
                        unit=stock_item.unit,
                    )
                )

        return LineAvailability(
            menu_id=menu_item.menu_id,
            name=menu_item.name,
            requested_quantity=quantity,
            available=not missing,
            missing_ingredients=missing,
        )

    def _server_error(self, message: str) -> OrderProcessingResult:
        logger.error(message)
        return OrderProcessingResult(
            success=False, failure_kind=FailureKind.SERVER_ERROR, message=message
        )

    def _notify(
        self, notification_type: NotificationType, message: str, target_role: str | None = None
    ) -> None:
        """Publish a notification; failures never affect the order."""
        try:
            self.notification_hub.publish(notification_type, message, target_role=target_role)
        except Exception as e:
            logger.error(f"Failed to publish notification: {e}")
