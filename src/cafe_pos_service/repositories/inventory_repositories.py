"""DynamoDB repository classes for the menu catalog and stock items.

These repositories provide CRUD operations plus the conditional quantity
updates used while orders are processed. We use simple return values
(None/False/StockUpdateResult) for expected failures rather than raising
exceptions.
"""

import logging
from decimal import Decimal

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from cafe_pos_service.models.menu_models import MenuItem
from cafe_pos_service.models.stock_models import StockItem, StockUpdateResult

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class MenuItemRepository:
    """Repository for menu item CRUD operations.

    Manages menu item records in DynamoDB with menu_id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_menu_item(self, menu_id: str) -> MenuItem | None:
        """Retrieve a menu item, including its recipe.

        Args:
            menu_id: Menu item identifier

        Returns:
            MenuItem if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"menu_id": menu_id})

            if "Item" not in response:
                return None

            return MenuItem.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu item {menu_id}: {e}")  # pragma: no cover
            return None

    def save_menu_item(self, item: MenuItem) -> bool:
        """Save or update a menu item.

        Args:
            item: MenuItem to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu item {item.menu_id}: {e}")  # pragma: no cover
            return False


class StockItemRepository:
    """Repository for stock item operations.

    Manages stock records in DynamoDB with stock_id as partition key. Quantity
    changes are single conditional updates, so a decrement can never take a
    tracked quantity below zero.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_stock_item(self, stock_id: str) -> StockItem | None:
        """Retrieve a stock item.

        Args:
            stock_id: Stock item identifier

        Returns:
            StockItem if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"stock_id": stock_id})

            if "Item" not in response:
                return None

            return StockItem.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get stock item {stock_id}: {e}")  # pragma: no cover
            return None

    def save_stock_item(self, item: StockItem) -> bool:
        """Save or update a stock item.

        Args:
            item: StockItem to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save stock item {item.stock_id}: {e}")  # pragma: no cover
            return False

    def decrement_quantity(
        self, stock_id: str, amount: Decimal
    ) -> tuple[StockUpdateResult, StockItem | None]:
        """Atomically consume stock if enough is on hand.

        The decrement and the lifetime consumed counter are updated in one
        conditional write: the write only applies when quantity >= amount.

        Args:
            stock_id: Stock item identifier
            amount: Quantity to consume

        Returns:
            Tuple of the update outcome and the stock item after the update
            (OK), before the rejected update (INSUFFICIENT), or None
        """
        try:
            response = self.table.update_item(
                Key={"stock_id": stock_id},
                UpdateExpression="SET quantity = quantity - :amount ADD total_consumed :amount",
                ConditionExpression="attribute_exists(stock_id) AND quantity >= :amount",
                ExpressionAttributeValues={":amount": amount},
                ReturnValues="ALL_NEW",
                ReturnValuesOnConditionCheckFailure="ALL_OLD",
            )
            return StockUpdateResult.OK, StockItem.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            if e.response["Error"]["Code"] != CONDITIONAL_CHECK_FAILED:
                logger.error(f"Failed to decrement stock item {stock_id}: {e}")
                return StockUpdateResult.ERROR, None

            if "Item" not in e.response:
                logger.warning(f"Stock item {stock_id} not found while consuming {amount}")
                return StockUpdateResult.NOT_FOUND, None

            current = StockItem.from_dynamodb_item(e.response["Item"])
            logger.warning(
                f"Insufficient stock for {current.name}: need {amount}, have {current.quantity}"
            )
            return StockUpdateResult.INSUFFICIENT, current

    def restore_quantity(self, stock_id: str, amount: Decimal) -> bool:
        """Reverse a previous decrement.

        Args:
            stock_id: Stock item identifier
            amount: Quantity previously consumed

        Returns:
            bool: True if the restore succeeded, False otherwise
        """
        try:
            self.table.update_item(
                Key={"stock_id": stock_id},
                UpdateExpression="SET quantity = quantity + :amount ADD total_consumed :negated",
                ConditionExpression="attribute_exists(stock_id)",
                ExpressionAttributeValues={":amount": amount, ":negated": -amount},
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to restore stock item {stock_id}: {e}")
            return False

    def restock(self, stock_id: str, amount: Decimal) -> StockItem | None:
        """Add quantity to an existing stock item.

        Args:
            stock_id: Stock item identifier
            amount: Quantity received

        Returns:
            StockItem after the update, or None if missing or on failure
        """
        try:
            response = self.table.update_item(
                Key={"stock_id": stock_id},
                UpdateExpression="ADD quantity :amount",
                ConditionExpression="attribute_exists(stock_id)",
                ExpressionAttributeValues={":amount": amount},
                ReturnValues="ALL_NEW",
            )
            return StockItem.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            logger.error(f"Failed to restock stock item {stock_id}: {e}")  # pragma: no cover
            return None
