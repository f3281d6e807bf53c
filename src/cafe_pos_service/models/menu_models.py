"""Menu catalog models.

A menu item carries a recipe: the ordered list of stock ingredients consumed
every time one unit of the item is sold.
"""

from decimal import Decimal
from typing import Any

from pydantic import Field

from cafe_pos_service.models.api_model import ApiModel


class RecipeIngredient(ApiModel):
    """One line of a menu item's recipe."""

    stock_id: str = Field(..., description="Stock item consumed by this recipe line")
    stock_item_name: str = Field(..., description="Stock item name, for display")
    quantity_required: Decimal = Field(
        ..., description="Quantity consumed per unit of the menu item sold", ge=0
    )
    unit: str = Field(..., description="Unit of measure, matching the stock item's unit")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB map format."""
        return {
            "stock_id": self.stock_id,
            "stock_item_name": self.stock_item_name,
            "quantity_required": self.quantity_required,
            "unit": self.unit,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "RecipeIngredient":
        """Create RecipeIngredient from a DynamoDB map."""
        return cls(
            stock_id=item["stock_id"],
            stock_item_name=item["stock_item_name"],
            quantity_required=Decimal(str(item["quantity_required"])),
            unit=item["unit"],
        )


class MenuItem(ApiModel):
    """Menu item model.

    Stored in DynamoDB with menu_id as partition key. The recipe is read-only
    while orders are being processed.
    """

    menu_id: str = Field(..., description="Unique identifier for the menu item")
    name: str = Field(..., description="Item name")
    category: str = Field(..., description="Menu category name")
    price: Decimal = Field(..., description="Item price", ge=0)
    available: bool = Field(default=True, description="Whether item is currently on sale")
    description: str | None = Field(None, description="Item description")
    preparation_time: int = Field(default=10, description="Preparation time in minutes", ge=0)
    recipe: list[RecipeIngredient] = Field(
        default_factory=list, description="Stock ingredients consumed per unit sold"
    )

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "menu_id": self.menu_id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "available": self.available,
            "preparation_time": self.preparation_time,
            "recipe": [ingredient.to_dynamodb_item() for ingredient in self.recipe],
        }

        if self.description is not None:
            item["description"] = self.description

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            menu_id=item["menu_id"],
            name=item["name"],
            category=item["category"],
            price=Decimal(str(item["price"])),
            available=item.get("available", True),
            description=item.get("description"),
            preparation_time=int(item.get("preparation_time", 10)),
            recipe=[RecipeIngredient.from_dynamodb_item(r) for r in item.get("recipe", [])],
        )
