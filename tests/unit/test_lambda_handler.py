"""Unit tests for AWS Lambda handler."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from src.lambda_handler import handle_eventbridge_event, is_eventbridge_event, lambda_handler


def scheduler_event() -> dict[str, Any]:
    return {
        "version": "0",
        "id": "event-id",
        "source": "com.homekitchen.scheduler",
        "detail-type": "GenerateSubscriptionOrders",
        "detail": {},
    }


def api_gateway_event() -> dict[str, Any]:
    return {
        "version": "2.0",
        "requestContext": {
            "http": {"method": "GET", "path": "/health"},
            "requestId": "request-id",
        },
        "rawPath": "/health",
    }


@pytest.mark.unit
class TestIsEventBridgeEvent:
    """Tests for is_eventbridge_event function."""

    def test_scheduler_event(self) -> None:
        assert is_eventbridge_event(scheduler_event()) is True

    def test_api_gateway_event(self) -> None:
        assert is_eventbridge_event(api_gateway_event()) is False

    def test_requires_detail(self) -> None:
        """Test that source and detail-type alone are not enough."""
        event = scheduler_event()
        del event["detail"]

        assert is_eventbridge_event(event) is False


@pytest.mark.unit
class TestHandleEventBridgeEvent:
    """Tests for handle_eventbridge_event function."""

    @patch("src.lambda_handler.get_event_handler")
    def test_returns_handler_response(self, mock_get_handler: Mock) -> None:
        """Test that the async handler's response is returned."""
        mock_handler = MagicMock()
        mock_handler.handle_eventbridge_event = AsyncMock(
            return_value={"statusCode": 200, "body": "Generated 2 orders"}
        )
        mock_get_handler.return_value = mock_handler
        event = scheduler_event()

        result = handle_eventbridge_event(event, "ctx")

        assert result == {"statusCode": 200, "body": "Generated 2 orders"}
        mock_handler.handle_eventbridge_event.assert_awaited_once_with(event, "ctx")

    @patch("src.lambda_handler.get_event_handler")
    def test_handler_exception_returns_500(self, mock_get_handler: Mock) -> None:
        """Test that an exception from the handler becomes a 500 response."""
        mock_handler = MagicMock()
        mock_handler.handle_eventbridge_event = AsyncMock(side_effect=RuntimeError("table gone"))
        mock_get_handler.return_value = mock_handler

        result = handle_eventbridge_event(scheduler_event())

        assert result["statusCode"] == 500
        assert "table gone" in result["body"]

    @patch("src.lambda_handler.get_event_handler")
    def test_dependency_failure_returns_500(self, mock_get_handler: Mock) -> None:
        """Test that failing to build dependencies becomes a 500 response."""
        mock_get_handler.side_effect = RuntimeError("no credentials")

        result = handle_eventbridge_event(scheduler_event())

        assert result["statusCode"] == 500
        assert "no credentials" in result["body"]


@pytest.mark.unit
class TestLambdaHandler:
    """Tests for lambda_handler routing."""

    @patch("src.lambda_handler.handle_eventbridge_event")
    def test_routes_eventbridge_events(self, mock_handle: Mock, mock_context: Mock) -> None:
        """Test that EventBridge events bypass Mangum."""
        mock_handle.return_value = {"statusCode": 200, "body": "ok"}
        event = scheduler_event()

        result = lambda_handler(event, mock_context)

        assert result == {"statusCode": 200, "body": "ok"}
        mock_handle.assert_called_once_with(event, mock_context)

    @patch("src.lambda_handler.mangum_handler")
    def test_routes_api_gateway_requests(self, mock_mangum: Mock, mock_context: Mock) -> None:
        """Test that HTTP events are passed to Mangum."""
        mock_mangum.return_value = {"statusCode": 200, "body": '{"status":"healthy"}'}
        event = api_gateway_event()

        result = lambda_handler(event, mock_context)

        assert result["statusCode"] == 200
        mock_mangum.assert_called_once_with(event, mock_context)

    @patch("src.lambda_handler.mangum_handler")
    def test_unhandled_exception_returns_500(self, mock_mangum: Mock, mock_context: Mock) -> None:
        """Test that an error escaping Mangum becomes a 500 response."""
        mock_mangum.side_effect = ValueError("bad request context")

        result = lambda_handler(api_gateway_event(), mock_context)

        assert result["statusCode"] == 500
        assert "bad request context" in result["body"]
