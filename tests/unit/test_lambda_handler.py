"""Unit tests for AWS Lambda handler."""

from unittest.mock import Mock, patch

import pytest

from src.lambda_handler import is_api_gateway_event, lambda_handler


@pytest.fixture
def lambda_context() -> Mock:
    """Create a mock Lambda context."""
    context = Mock()
    context.aws_request_id = "test-request-id"
    return context


@pytest.mark.unit
class TestIsApiGatewayEvent:
    """Tests for is_api_gateway_event function."""

    def test_http_api_event(self) -> None:
        """Test that API Gateway HTTP API events are identified."""
        event = {
            "version": "2.0",
            "requestContext": {
                "http": {"method": "GET", "path": "/health"},
                "requestId": "request-id",
            },
            "rawPath": "/health",
        }

        assert is_api_gateway_event(event) is True

    def test_rest_api_event(self) -> None:
        """Test that API Gateway REST events are identified."""
        event = {
            "requestContext": {"requestId": "request-id", "apiId": "api-id"},
            "path": "/health",
            "httpMethod": "GET",
        }

        assert is_api_gateway_event(event) is True

    def test_eventbridge_event(self) -> None:
        """Test that EventBridge events are not API Gateway events."""
        event = {
            "version": "0",
            "source": "com.cafe.pos",
            "detail-type": "CafeNotification",
            "detail": {},
        }

        assert is_api_gateway_event(event) is False


@pytest.mark.unit
class TestLambdaHandler:
    """Tests for lambda_handler function."""

    @patch("src.lambda_handler.mangum_handler")
    def test_routes_api_gateway_events_to_mangum(
        self, mock_mangum_handler: Mock, lambda_context: Mock
    ) -> None:
        """Test API Gateway events are served by the FastAPI app."""
        mock_mangum_handler.return_value = {"statusCode": 200, "body": '{"status":"healthy"}'}
        event = {"requestContext": {"requestId": "r"}, "rawPath": "/health"}

        result = lambda_handler(event, lambda_context)

        assert result["statusCode"] == 200
        mock_mangum_handler.assert_called_once_with(event, lambda_context)

    def test_rejects_unsupported_events(self, lambda_context: Mock) -> None:
        """Test non API Gateway events are rejected."""
        result = lambda_handler({"random": "data"}, lambda_context)

        assert result["statusCode"] == 400

    @patch("src.lambda_handler.mangum_handler")
    def test_handles_exceptions(self, mock_mangum_handler: Mock, lambda_context: Mock) -> None:
        """Test unexpected errors return 500."""
        mock_mangum_handler.side_effect = RuntimeError("boom")
        event = {"requestContext": {"requestId": "r"}, "httpMethod": "GET"}

        result = lambda_handler(event, lambda_context)

        assert result["statusCode"] == 500
        assert "boom" in result["body"]
