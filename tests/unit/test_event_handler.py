"""Unit tests for EventBridge event handler."""

from datetime import date
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from kitchen_ops_service.errors import KitchenNotFoundError
from kitchen_ops_service.handlers.event_handler import (
    GENERATE_ORDERS,
    ORDERS_SOURCE,
    RECOMPUTE_SCORES,
    SCHEDULER_SOURCE,
    EventHandler,
    GenerateOrdersDetail,
)
from kitchen_ops_service.models.generation_models import GenerationReport
from kitchen_ops_service.models.score_models import ScoreSweepReport
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer


def eventbridge_event(source: str, detail_type: str, detail: Any = None) -> dict[str, Any]:
    return {
        "version": "0",
        "id": "event-123",
        "detail-type": detail_type,
        "source": source,
        "account": "123456789012",
        "time": "2024-03-03T18:30:00Z",
        "region": "ap-south-1",
        "detail": detail if detail is not None else {},
    }


@pytest.mark.unit
class TestGenerateOrdersDetail:
    """Test suite for GenerateOrdersDetail model."""

    def test_date_optional(self) -> None:
        assert GenerateOrdersDetail().target_date is None

    def test_date_parsed(self) -> None:
        """Test that ISO dates are parsed."""
        assert GenerateOrdersDetail(target_date="2024-03-04").target_date == date(2024, 3, 4)


@pytest.mark.unit
class TestEventHandler:
    """Test suite for EventHandler."""

    @pytest.fixture
    def scorer(self) -> MagicMock:
        """Create a mocked reliability scorer."""
        mock = MagicMock(spec=ReliabilityScorer)
        mock.update_score = AsyncMock(return_value=72)
        mock.update_all_scores = AsyncMock(return_value=ScoreSweepReport(updated=3, failed=1))
        return mock

    @pytest.fixture
    def generator(self) -> MagicMock:
        """Create a mocked order generator."""
        report = GenerationReport(
            target_date=date(2024, 3, 4),
            day="MONDAY",
            created=4,
            processed=2,
            skipped=1,
            errors=["Kitchen kit_1 at capacity for DINNER on 2024-03-04"],
        )
        mock = MagicMock(spec=SubscriptionOrderGenerator)
        mock.generate_for_tomorrow = AsyncMock(return_value=report)
        mock.generate_for_date = AsyncMock(return_value=report)
        return mock

    @pytest.fixture
    def handler(self, scorer: MagicMock, generator: MagicMock) -> EventHandler:
        return EventHandler(scorer=scorer, generator=generator)

    @pytest.mark.asyncio
    async def test_generate_orders_for_tomorrow(
        self, handler: EventHandler, generator: MagicMock
    ) -> None:
        """Test that a scheduler tick generates tomorrow's orders."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(SCHEDULER_SOURCE, GENERATE_ORDERS), None
        )

        assert result["statusCode"] == 200
        assert result["body"] == (
            "Generated 4 orders for 2024-03-04: 2 processed, 1 skipped, 1 errors"
        )
        generator.generate_for_tomorrow.assert_awaited_once()
        generator.generate_for_date.assert_not_called()

    @pytest.mark.asyncio
    async def test_generate_orders_for_given_date(
        self, handler: EventHandler, generator: MagicMock
    ) -> None:
        """Test that a detail date selects the delivery date."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(SCHEDULER_SOURCE, GENERATE_ORDERS, {"target_date": "2024-03-04"}),
            None,
        )

        assert result["statusCode"] == 200
        generator.generate_for_date.assert_awaited_once_with(date(2024, 3, 4))

    @pytest.mark.asyncio
    async def test_generate_orders_missing_detail(
        self, handler: EventHandler, generator: MagicMock
    ) -> None:
        """Test that an event without detail is treated as an empty detail."""
        event = eventbridge_event(SCHEDULER_SOURCE, GENERATE_ORDERS)
        del event["detail"]

        result = await handler.handle_eventbridge_event(event, None)

        assert result["statusCode"] == 200
        generator.generate_for_tomorrow.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generate_orders_bad_date(
        self, handler: EventHandler, generator: MagicMock
    ) -> None:
        """Test that an unparseable date is rejected."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(SCHEDULER_SOURCE, GENERATE_ORDERS, {"target_date": "soon"}), None
        )

        assert result == {"statusCode": 400, "body": "Invalid event format"}
        generator.generate_for_date.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ValueError("delivery_fee must be >= 0"), TypeError("unexpected row shape")],
    )
    async def test_generation_failure_not_reported_as_bad_event(
        self, handler: EventHandler, generator: MagicMock, error: Exception
    ) -> None:
        """Test that errors raised while generating propagate instead of becoming a 400."""
        generator.generate_for_tomorrow.side_effect = error

        with pytest.raises(type(error)):
            await handler.handle_eventbridge_event(
                eventbridge_event(SCHEDULER_SOURCE, GENERATE_ORDERS), None
            )

    @pytest.mark.asyncio
    async def test_scoring_failure_not_reported_as_bad_event(
        self, handler: EventHandler, scorer: MagicMock
    ) -> None:
        """Test that a scorer error on valid activity detail propagates."""
        scorer.update_score.side_effect = ValueError("rating out of range")

        with pytest.raises(ValueError, match="rating out of range"):
            await handler.handle_eventbridge_event(
                eventbridge_event(ORDERS_SOURCE, "OrderCompleted", {"kitchen_id": "kit_1"}), None
            )

    @pytest.mark.asyncio
    async def test_recompute_scores(self, handler: EventHandler, scorer: MagicMock) -> None:
        """Test that the nightly sweep is run."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(SCHEDULER_SOURCE, RECOMPUTE_SCORES), None
        )

        assert result == {"statusCode": 200, "body": "Updated 3 kitchen scores, 1 failed"}
        scorer.update_all_scores.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("detail_type", ["OrderCompleted", "ReviewPosted"])
    async def test_kitchen_activity_updates_score(
        self, handler: EventHandler, scorer: MagicMock, detail_type: str
    ) -> None:
        """Test that order and review activity refreshes the kitchen score."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(ORDERS_SOURCE, detail_type, {"kitchen_id": "kit_1"}), None
        )

        assert result == {"statusCode": 200, "body": "Updated KRI for kitchen kit_1: 72"}
        scorer.update_score.assert_awaited_once_with("kit_1")

    @pytest.mark.asyncio
    async def test_kitchen_activity_missing_kitchen_id(
        self, handler: EventHandler, scorer: MagicMock
    ) -> None:
        """Test that activity without a kitchen ID is rejected."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(ORDERS_SOURCE, "OrderCompleted", {"order_id": "ord_1"}), None
        )

        assert result["statusCode"] == 400
        scorer.update_score.assert_not_called()

    @pytest.mark.asyncio
    async def test_kitchen_activity_unknown_kitchen(
        self, handler: EventHandler, scorer: MagicMock
    ) -> None:
        """Test that an unknown kitchen produces 404."""
        scorer.update_score.side_effect = KitchenNotFoundError("kit_404")

        result = await handler.handle_eventbridge_event(
            eventbridge_event(ORDERS_SOURCE, "ReviewPosted", {"kitchen_id": "kit_404"}), None
        )

        assert result["statusCode"] == 404
        assert "kit_404" in result["body"]

    @pytest.mark.asyncio
    async def test_non_mapping_detail(self, handler: EventHandler) -> None:
        """Test that a detail that is not an object is rejected."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(ORDERS_SOURCE, "OrderCompleted", ["kit_1"]), None
        )

        assert result == {"statusCode": 400, "body": "Invalid event format"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("source", "detail_type"),
        [
            ("com.homekitchen.payments", GENERATE_ORDERS),
            (SCHEDULER_SOURCE, "OrderCompleted"),
            (ORDERS_SOURCE, RECOMPUTE_SCORES),
        ],
    )
    async def test_unsupported_event(
        self,
        handler: EventHandler,
        scorer: MagicMock,
        generator: MagicMock,
        source: str,
        detail_type: str,
    ) -> None:
        """Test that events from the wrong source or of unknown type are refused."""
        result = await handler.handle_eventbridge_event(
            eventbridge_event(source, detail_type, {"kitchen_id": "kit_1"}), None
        )

        assert result == {
            "statusCode": 400,
            "body": f"Unsupported event type: {source}/{detail_type}",
        }
        scorer.update_score.assert_not_called()
        generator.generate_for_tomorrow.assert_not_called()
