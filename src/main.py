"""Main application entry point for the cafe point-of-sale service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from cafe_pos_service.auth.token_validator import BearerTokenValidator, Principal
from cafe_pos_service.handlers.api_handler import create_app
from cafe_pos_service.observability import configure_logging, setup_observability
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


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    # Check for local DynamoDB endpoint (for development)
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
        return boto3.resource("dynamodb", region_name=region)


def create_notification_hub() -> NotificationHub:
    """Create the notification hub and register configured subscribers.

    Returns:
        NotificationHub with retention limits from environment variables
    """
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

    return hub


def load_staff_tokens() -> dict[str, Principal]:
    """Load accepted bearer tokens from STAFF_TOKENS.

    Returns:
        Mapping of bearer token to principal
    """
    tokens_str = os.getenv("STAFF_TOKENS", "")

    if not tokens_str.strip():
        logger.warning("No STAFF_TOKENS configured - using development admin token")
        tokens_str = "dev-admin-token:dev-admin:admin"

    return BearerTokenValidator.from_config(tokens_str).tokens


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates AWS clients
    3. Initializes repositories
    4. Creates services and the notification hub
    5. Creates FastAPI app with order, stock and notification endpoints
    6. Sets up observability

    Returns:
        Configured FastAPI application instance
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Initializing cafe POS service...")

    dynamodb_resource = get_dynamodb_resource()

    menu_table = os.getenv("DYNAMODB_MENU_TABLE", "cafe-menu-items")
    stock_table = os.getenv("DYNAMODB_STOCK_TABLE", "cafe-stock-items")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "cafe-orders")
    counters_table = os.getenv("DYNAMODB_COUNTERS_TABLE", "cafe-order-counters")

    menu_repository = MenuItemRepository(dynamodb_resource=dynamodb_resource, table_name=menu_table)
    stock_repository = StockItemRepository(
        dynamodb_resource=dynamodb_resource, table_name=stock_table
    )
    order_repository = OrderRepository(
        dynamodb_resource=dynamodb_resource,
        table_name=orders_table,
        counters_table_name=counters_table,
    )

    logger.info(
        f"Repositories configured - menu: {menu_table}, stock: {stock_table}, "
        f"orders: {orders_table}, counters: {counters_table}"
    )

    notification_hub = create_notification_hub()

    order_service = OrderService(
        menu_repository=menu_repository,
        stock_repository=stock_repository,
        order_repository=order_repository,
        notification_hub=notification_hub,
    )
    stock_service = StockService(stock_repository=stock_repository)

    logger.info("Services initialized")

    app = create_app(
        order_service=order_service,
        stock_service=stock_service,
        notification_hub=notification_hub,
        staff_tokens=load_staff_tokens(),
    )

    setup_observability(app)

    logger.info("Cafe POS service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
