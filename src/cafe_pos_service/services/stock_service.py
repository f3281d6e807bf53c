"""Stock service for reading and restocking inventory items."""

import logging
from decimal import Decimal

from cafe_pos_service.models.stock_models import StockItem
from cafe_pos_service.observability import traced
from cafe_pos_service.repositories.inventory_repositories import StockItemRepository
from cafe_pos_service.services.exceptions import StockItemNotFoundError

logger = logging.getLogger(__name__)


class StockService:
    """Service for admin stock operations.

    Restocking writes the quantity directly with an additive update, so it
    never overwrites a concurrent consumption.
    """

    def __init__(self, stock_repository: StockItemRepository) -> None:
        """Initialize the StockService.

        Args:
            stock_repository: Repository for stock items
        """
        self.stock_repository = stock_repository

    @traced("get_stock_item")
    async def get_stock_item(self, stock_id: str) -> StockItem:
        """Get a stock item by ID.

        Raises:
            StockItemNotFoundError: If the stock item does not exist
        """
        stock_item = self.stock_repository.get_stock_item(stock_id)
        if stock_item is None:
            raise StockItemNotFoundError(stock_id)
        return stock_item

    @traced("restock")
    async def restock(self, stock_id: str, amount: Decimal) -> StockItem:
        """Add received quantity to a stock item.

        Args:
            stock_id: Stock item identifier
            amount: Quantity received, must be positive

        Returns:
            The stock item after restocking

        Raises:
            ValueError: If amount is not positive
            StockItemNotFoundError: If the stock item does not exist
        """
        if amount <= 0:
            raise ValueError("Restock amount must be positive")

        await self.get_stock_item(stock_id)

        updated = self.stock_repository.restock(stock_id, amount)
        if updated is None:
            raise StockItemNotFoundError(stock_id)

        logger.info(f"Restocked {updated.name} by {amount}, now {updated.quantity} {updated.unit}")
        return updated
