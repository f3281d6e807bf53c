"""Stock (inventory) models."""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from cafe_pos_service.models.api_model import ApiModel


class StockUpdateResult(str, Enum):
    """Outcome of a conditional stock quantity update."""

    OK = "ok"
    INSUFFICIENT = "insufficient"
    NOT_FOUND = "not_found"
    ERROR = "error"


class StockItem(ApiModel):
    """Stock item tracked by the cafe.

    Stored in DynamoDB with stock_id as partition key. Items with
    track_quantity disabled (e.g. unlimited condiments) are never checked
    or decremented when orders are placed.
    """

    stock_id: str = Field(..., description="Unique identifier for the stock item")
    name: str = Field(..., description="Stock item name")
    category: str = Field(..., description="Stock category")
    quantity: Decimal = Field(default=Decimal("0"), description="Quantity currently on hand")
    unit: str = Field(..., description="Unit of measure, e.g. kg, ltr, pcs")
    min_limit: Decimal = Field(default=Decimal("5"), description="Low stock threshold", ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), description="Cost per unit", ge=0)
    track_quantity: bool = Field(default=True, description="Whether quantity is tracked at all")
    total_consumed: Decimal = Field(
        default=Decimal("0"), description="Lifetime quantity consumed by orders"
    )

    @model_validator(mode="after")
    def check_tracked_quantity(self) -> "StockItem":
        """Tracked items never hold a negative quantity."""
        if self.track_quantity and self.quantity < 0:
            raise ValueError(f"Tracked stock quantity cannot be negative, got {self.quantity}")
        return self

    @property
    def is_low_stock(self) -> bool:
        """Whether a tracked item has fallen to or below its threshold."""
        return self.track_quantity and self.quantity <= self.min_limit

    def has_at_least(self, amount: Decimal) -> bool:
        """Check whether the item can cover the given amount."""
        if not self.track_quantity:
            return True
        return self.quantity >= amount

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "stock_id": self.stock_id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
            "min_limit": self.min_limit,
            "unit_cost": self.unit_cost,
            "track_quantity": self.track_quantity,
            "total_consumed": self.total_consumed,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "StockItem":
        """Create StockItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            StockItem: Parsed model instance
        """
        return cls(
            stock_id=item["stock_id"],
            name=item["name"],
            category=item["category"],
            quantity=Decimal(str(item.get("quantity", 0))),
            unit=item["unit"],
            min_limit=Decimal(str(item.get("min_limit", 5))),
            unit_cost=Decimal(str(item.get("unit_cost", 0))),
            track_quantity=item.get("track_quantity", True),
            total_consumed=Decimal(str(item.get("total_consumed", 0))),
        )
