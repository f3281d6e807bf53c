"""Shared dependency factory for the Lambda handler.

This module provides cached dependency initialization to optimize Lambda cold starts.
Dependencies are created once and reused across invocations within the same Lambda container.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from cafe_pos_service.auth.token_validator import BearerTokenValidator
from cafe_pos_service.handlers.api_handler import create_app
from cafe_pos_service.observability import configure_logging
from cafe_pos_service.repositories.inventory_repositories import (
    MenuItemRepository,
    StockItemRepository,
)
from cafe_pos_service.repositories.order_repository import OrderRepository
from cafe_pos_service.services.event_publisher import EventBridgePublisher
from cafe_pos_service.services.notification_service import NotificationHub
from cafe_pos_service.services.order_service import OrderService
from cafe_pos_service.services.stock_service import StockService

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_notification_hub: NotificationHub | None = None
_stock_repository: StockItemRepository | None = None
_order_service: OrderService | None = None
_stock_service: StockService | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_notification_hub() -> NotificationHub:
    """Create or retrieve the cached notification hub.

    Notifications live for the lifetime of the Lambda container.
    """
    global _notification_hub

    if _notification_hub is not None:
        return _notification_hub

    hub = NotificationHub(
        max_entries=int(os.getenv("NOTIFICATION_MAX_ENTRIES", "100")),
        max_age_seconds=int(os.getenv("NOTIFICATION_MAX_AGE_SECONDS", "3600")),
    )

    event_bus_name = os.getenv("ORDER_EVENT_BUS_NAME")
    if event_bus_name:
        region = os.getenv("AWS_REGION", "us-east-1")
        events_client = boto3.client("events", region_name=region)
        hub.subscribe(EventBridgePublisher(events_client, event_bus_name))
        logger.info(f"Notifications forwarded to EventBridge bus {event_bus_name}")

    _notification_hub = hub
    return _notification_hub


def get_stock_repository() -> StockItemRepository:
    """Create or retrieve the cached stock repository."""
    global _stock_repository

    if _stock_repository is None:
        stock_table = os.getenv("DYNAMODB_STOCK_TABLE", "cafe-stock-items")
        _stock_repository = StockItemRepository(
            dynamodb_resource=get_dynamodb_resource(), table_name=stock_table
        )

    return _stock_repository


def get_order_service() -> OrderService:
    """Create or retrieve cached order service.

    Returns:
        Configured OrderService instance
    """
    global _order_service

    if _order_service is not None:
        return _order_service

    dynamodb_resource = get_dynamodb_resource()

    menu_table = os.getenv("DYNAMODB_MENU_TABLE", "cafe-menu-items")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "cafe-orders")
    counters_table = os.getenv("DYNAMODB_COUNTERS_TABLE", "cafe-order-counters")

    _order_service = OrderService(
        menu_repository=MenuItemRepository(
            dynamodb_resource=dynamodb_resource, table_name=menu_table
        ),
        stock_repository=get_stock_repository(),
        order_repository=OrderRepository(
            dynamodb_resource=dynamodb_resource,
            table_name=orders_table,
            counters_table_name=counters_table,
        ),
        notification_hub=get_notification_hub(),
    )

    logger.info("Order service initialized")
    return _order_service


def get_stock_service() -> StockService:
    """Create or retrieve cached stock service.

    Returns:
        Configured StockService instance
    """
    global _stock_service

    if _stock_service is None:
        _stock_service = StockService(stock_repository=get_stock_repository())
        logger.info("Stock service initialized")

    return _stock_service


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    tokens_str = os.getenv("STAFF_TOKENS", "")
    if not tokens_str.strip():
        logger.warning("No STAFF_TOKENS configured - using development admin token")
        tokens_str = "dev-admin-token:dev-admin:admin"

    _fastapi_app = create_app(
        order_service=get_order_service(),
        stock_service=get_stock_service(),
        notification_hub=get_notification_hub(),
        staff_tokens=BearerTokenValidator.from_config(tokens_str).tokens,
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging.

    Should be called once during Lambda cold start.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Lambda environment initialized")
