"""Order models, request payloads and availability reports.

Orders are stored in DynamoDB with order_id as partition key. API payloads use
camelCase field names; models accept either spelling on input.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from cafe_pos_service.models.api_model import ApiModel

CENT = Decimal("0.01")


class OrderStatusEnum(str, Enum):
    """Enumeration of order status values.

    pending -> preparing -> ready -> completed, with cancelled reachable from
    any non-terminal state.
    """

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are allowed."""
        return self in (OrderStatusEnum.COMPLETED, OrderStatusEnum.CANCELLED)

    def can_transition_to(self, new_status: "OrderStatusEnum") -> bool:
        """Check whether moving to new_status is a legal transition.

        Args:
            new_status: Requested status

        Returns:
            bool: True if the transition is allowed
        """
        if self.is_terminal:
            return False
        if new_status == OrderStatusEnum.CANCELLED:
            return True
        return _NEXT_STATUS.get(self) == new_status


_NEXT_STATUS = {
    OrderStatusEnum.PENDING: OrderStatusEnum.PREPARING,
    OrderStatusEnum.PREPARING: OrderStatusEnum.READY,
    OrderStatusEnum.READY: OrderStatusEnum.COMPLETED,
}


def to_money(value: Decimal) -> Decimal:
    """Quantize a monetary amount to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class OrderLine(ApiModel):
    """A single line of an order, with the menu item's name and price snapshotted."""

    menu_item_id: str = Field(..., description="Menu item identifier")
    name: str = Field(..., description="Menu item name at order time")
    quantity: int = Field(..., description="Units ordered", gt=0)
    price: Decimal = Field(..., description="Unit price at order time", ge=0)
    status: OrderStatusEnum = Field(default=OrderStatusEnum.PENDING, description="Line status")
    modifiers: list[str] = Field(default_factory=list, description="Requested modifiers")
    notes: str = Field(default="", description="Free text notes for the kitchen")

    @property
    def line_total(self) -> Decimal:
        """Unit price multiplied by quantity."""
        return self.price * self.quantity

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB map format."""
        return {
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
            "status": self.status.value,
            "modifiers": self.modifiers,
            "notes": self.notes,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderLine":
        """Create OrderLine from a DynamoDB map."""
        return cls(
            menu_item_id=item["menu_item_id"],
            name=item["name"],
            quantity=int(item["quantity"]),
            price=Decimal(str(item["price"])),
            status=OrderStatusEnum(item.get("status", OrderStatusEnum.PENDING.value)),
            modifiers=list(item.get("modifiers", [])),
            notes=item.get("notes", ""),
        )


class Order(ApiModel):
    """Order placed at the point of sale.

    total_amount is fixed at creation time; later menu price changes never
    affect existing orders.
    """

    order_id: str = Field(..., description="Unique order identifier")
    order_number: str = Field(..., description="Human readable, date scoped order number")
    items: list[OrderLine] = Field(..., description="Ordered lines", min_length=1)
    total_amount: Decimal = Field(..., description="Sum of line totals", gt=0)
    status: OrderStatusEnum = Field(default=OrderStatusEnum.PENDING, description="Order status")
    payment_method: str = Field(default="cash", description="Payment method")
    customer_name: str = Field(default="", description="Customer name")
    table_number: str | None = Field(None, description="Table the order is for")
    created_by: str = Field(..., description="Principal that created the order")
    created_at: datetime = Field(..., description="Creation timestamp")

    @staticmethod
    def calculate_total(items: list[OrderLine]) -> Decimal:
        """Sum line totals, quantized to cents.

        Args:
            items: Order lines

        Returns:
            Decimal: Order total
        """
        return to_money(sum((line.line_total for line in items), Decimal("0")))

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "items": [line.to_dynamodb_item() for line in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
        }

        if self.table_number is not None:
            item["table_number"] = self.table_number

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        return cls(
            order_id=item["order_id"],
            order_number=item["order_number"],
            items=[OrderLine.from_dynamodb_item(line) for line in item["items"]],
            total_amount=Decimal(str(item["total_amount"])),
            status=OrderStatusEnum(item["status"]),
            payment_method=item.get("payment_method", "cash"),
            customer_name=item.get("customer_name", ""),
            table_number=item.get("table_number"),
            created_by=item["created_by"],
            created_at=datetime.fromisoformat(item["created_at"]),
        )


class OrderLineRequest(ApiModel):
    """A requested order line as submitted by the point of sale."""

    menu_id: str = Field(..., description="Menu item identifier", min_length=1)
    quantity: int = Field(..., description="Units requested", gt=0)
    modifiers: list[str] = Field(default_factory=list)
    notes: str = ""


class ProcessOrderRequest(ApiModel):
    """Payload for POST /orders/process."""

    order_items: list[OrderLineRequest] = Field(..., min_length=1)
    table_number: str | None = None
    customer_name: str = ""
    payment_method: str = "cash"

    @field_validator("table_number", mode="before")
    @classmethod
    def coerce_table_number(cls, v: Any) -> str | None:
        """Accept numeric table numbers."""
        if v is None:
            return None
        return str(v)


class OrderStatusUpdate(ApiModel):
    """Payload for PUT /orders/{order_id}/status."""

    status: OrderStatusEnum


class MissingIngredient(ApiModel):
    """An ingredient that cannot cover a requested line."""

    name: str
    required: Decimal
    available: Decimal
    unit: str | None = None


class LineAvailability(ApiModel):
    """Availability report for one requested line."""

    menu_id: str
    name: str
    requested_quantity: int
    available: bool
    missing_ingredients: list[MissingIngredient] = Field(default_factory=list)
    reason: str | None = None


class IngredientConsumption(ApiModel):
    """Quantity of one stock item consumed by an order line."""

    stock_id: str
    name: str
    consumed: Decimal
    unit: str


class LineConsumption(ApiModel):
    """Stock consumption log entry for one order line."""

    menu_item: str
    quantity: int
    ingredients_consumed: list[IngredientConsumption] = Field(default_factory=list)
