"""DynamoDB repository for orders and per-day order number counters."""

import logging

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from cafe_pos_service.models.order_models import Order, OrderStatusEnum

logger = logging.getLogger(__name__)


class OrderRepository:
    """Repository for order CRUD operations.

    Manages order records in DynamoDB with order_id as partition key, and a
    counters table with counter_id as partition key used to allocate
    sequential order numbers.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        counters_table_name: str,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the orders table
            counters_table_name: Name of the order counters table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.counters_table_name = counters_table_name
        self.table: Table = dynamodb_resource.Table(table_name)
        self.counters_table: Table = dynamodb_resource.Table(counters_table_name)

    def next_order_sequence(self, date_key: str) -> int | None:
        """Allocate the next order sequence number for a day.

        Args:
            date_key: Day the sequence is scoped to (YYYYMMDD)

        Returns:
            The allocated sequence number (starting at 1), or None on failure
        """
        try:
            response = self.counters_table.update_item(
                Key={"counter_id": f"orders#{date_key}"},
                UpdateExpression="ADD sequence_value :one",
                ExpressionAttributeValues={":one": 1},
                ReturnValues="UPDATED_NEW",
            )
            return int(response["Attributes"]["sequence_value"])

        except ClientError as e:
            logger.error(f"Failed to allocate order sequence for {date_key}: {e}")
            return None

    def create_order(self, order: Order) -> bool:
        """Persist a new order.

        Args:
            order: Order to create

        Returns:
            bool: True if created, False on conflict or failure
        """
        try:
            self.table.put_item(
                Item=order.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(order_id)",
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to create order {order.order_number}: {e}")
            return False

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"order_id": order_id})

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order {order_id}: {e}")  # pragma: no cover
            return None

    def delete_order(self, order_id: str) -> bool:
        """Delete an order.

        Args:
            order_id: Order identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"order_id": order_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete order {order_id}: {e}")
            return False

    def update_status(
        self,
        order_id: str,
        expected_status: OrderStatusEnum,
        new_status: OrderStatusEnum,
    ) -> Order | None:
        """Move an order to a new status if it is still in the expected one.

        Args:
            order_id: Order identifier
            expected_status: Status the order must currently have
            new_status: Status to set

        Returns:
            The updated Order, or None if the condition failed or on error
        """
        try:
            response = self.table.update_item(
                Key={"order_id": order_id},
                UpdateExpression="SET #status = :new_status",
                ConditionExpression="#status = :expected_status",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":new_status": new_status.value,
                    ":expected_status": expected_status.value,
                },
                ReturnValues="ALL_NEW",
            )
            return Order.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            logger.error(f"Failed to update status for order {order_id}: {e}")
            return None
