"""Unit tests for main application entry point."""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

from cafe_pos_service.auth.token_validator import Principal
from cafe_pos_service.services.event_publisher import EventBridgePublisher
from src.main import (
    create_application,
    create_notification_hub,
    get_dynamodb_resource,
    load_staff_tokens,
)


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": "", "AWS_REGION": "us-west-2"}, clear=True)
    @patch("src.main.boto3.resource")
    def test_creates_aws_resource_when_no_endpoint(self, mock_boto3_resource: Mock) -> None:
        """Test that AWS DynamoDB resource is created when no local endpoint configured."""
        mock_resource = MagicMock()
        mock_boto3_resource.return_value = mock_resource

        result = get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="us-west-2")
        assert result == mock_resource

    @patch.dict(
        os.environ,
        {
            "DYNAMODB_ENDPOINT": "http://localhost:8000",
            "AWS_REGION": "us-east-1",
            "AWS_ACCESS_KEY_ID": "local",
            "AWS_SECRET_ACCESS_KEY": "local-secret",
        },
        clear=True,
    )
    @patch("src.main.boto3.resource")
    def test_creates_local_resource_when_endpoint_provided(self, mock_boto3_resource: Mock) -> None:
        """Test that local DynamoDB resource is created when endpoint configured."""
        get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with(
            "dynamodb",
            endpoint_url="http://localhost:8000",
            region_name="us-east-1",
            aws_access_key_id="local",
            aws_secret_access_key="local-secret",
        )


@pytest.mark.unit
class TestCreateNotificationHub:
    """Tests for create_notification_hub function."""

    @patch.dict(
        os.environ,
        {"NOTIFICATION_MAX_ENTRIES": "25", "NOTIFICATION_MAX_AGE_SECONDS": "600"},
        clear=True,
    )
    @patch("src.main.boto3.client")
    def test_uses_configured_limits(self, mock_boto3_client: Mock) -> None:
        """Test retention limits come from the environment."""
        hub = create_notification_hub()

        assert hub.max_entries == 25
        assert hub.max_age.total_seconds() == 600
        mock_boto3_client.assert_not_called()

    @patch.dict(os.environ, {"ORDER_EVENT_BUS_NAME": "cafe-bus"}, clear=True)
    @patch("src.main.EventBridgePublisher")
    @patch("src.main.boto3.client")
    def test_subscribes_eventbridge_publisher(
        self, mock_boto3_client: Mock, mock_publisher_cls: Mock
    ) -> None:
        """Test notifications are forwarded when an event bus is configured."""
        mock_publisher_cls.return_value = MagicMock(spec=EventBridgePublisher)

        create_notification_hub()

        mock_boto3_client.assert_called_once_with("events", region_name="us-east-1")
        mock_publisher_cls.assert_called_once_with(mock_boto3_client.return_value, "cafe-bus")


@pytest.mark.unit
class TestLoadStaffTokens:
    """Tests for load_staff_tokens function."""

    @patch.dict(os.environ, {"STAFF_TOKENS": "tok-1:amy:admin,tok-2:carl:chef"}, clear=True)
    def test_loads_configured_tokens(self) -> None:
        """Test tokens are parsed from STAFF_TOKENS."""
        tokens = load_staff_tokens()

        assert tokens == {
            "tok-1": Principal(user_id="amy", role="admin"),
            "tok-2": Principal(user_id="carl", role="chef"),
        }

    @patch.dict(os.environ, {}, clear=True)
    def test_falls_back_to_development_token(self) -> None:
        """Test a development admin token is used when none are configured."""
        tokens = load_staff_tokens()

        assert tokens == {"dev-admin-token": Principal(user_id="dev-admin", role="admin")}


@pytest.mark.unit
class TestCreateApplication:
    """Tests for create_application function."""

    @patch.dict(
        os.environ,
        {
            "DYNAMODB_MENU_TABLE": "menu",
            "DYNAMODB_STOCK_TABLE": "stock",
            "DYNAMODB_ORDERS_TABLE": "orders",
            "DYNAMODB_COUNTERS_TABLE": "counters",
            "STAFF_TOKENS": "tok-1:amy:admin",
        },
        clear=True,
    )
    @patch("src.main.setup_observability")
    @patch("src.main.configure_logging")
    @patch("src.main.boto3.resource")
    def test_creates_fastapi_app(
        self,
        mock_boto3_resource: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        """Test the app is wired with repositories on the configured tables."""
        app = create_application()

        assert isinstance(app, FastAPI)
        table_names = [c.args[0] for c in mock_boto3_resource.return_value.Table.call_args_list]
        assert sorted(table_names) == ["counters", "menu", "orders", "stock"]
        assert app.state.order_service.stock_repository is app.state.stock_service.stock_repository
        assert app.state.token_validator.validate("tok-1") == Principal(user_id="amy", role="admin")
        mock_configure_logging.assert_called_once()
        mock_setup_observability.assert_called_once_with(app)
