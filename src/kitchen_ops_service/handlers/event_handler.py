"""EventBridge event handler for scheduler and order activity events."""

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, ValidationError

from kitchen_ops_service.errors import KitchenNotFoundError
from kitchen_ops_service.models.generation_models import GenerationReport
from kitchen_ops_service.models.score_models import ScoreSweepReport
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer

logger = logging.getLogger(__name__)

SCHEDULER_SOURCE = "com.homekitchen.scheduler"
ORDERS_SOURCE = "com.homekitchen.orders"

GENERATE_ORDERS = "GenerateSubscriptionOrders"
RECOMPUTE_SCORES = "RecomputeReliabilityScores"
KITCHEN_ACTIVITY_TYPES = frozenset({"OrderCompleted", "ReviewPosted"})


class GenerateOrdersDetail(BaseModel):
    """Detail of a GenerateSubscriptionOrders event.

    Attributes:
        target_date: Delivery date to generate for; tomorrow when omitted
    """

    target_date: date | None = None


class KitchenActivityDetail(BaseModel):
    """Detail of an OrderCompleted or ReviewPosted event.

    Attributes:
        kitchen_id: Kitchen whose score should be refreshed
    """

    kitchen_id: str


def _response(status_code: int, body: str) -> dict[str, Any]:
    return {"statusCode": status_code, "body": body}


class EventHandler:
    """Routes EventBridge events to the order generator and the scorer."""

    def __init__(
        self,
        scorer: ReliabilityScorer,
        generator: SubscriptionOrderGenerator,
    ) -> None:
        """Initialize the event handler.

        Args:
            scorer: Service computing kitchen reliability scores
            generator: Service expanding subscriptions into orders
        """
        self.scorer = scorer
        self.generator = generator

    async def handle_generate_orders(self, detail: GenerateOrdersDetail) -> GenerationReport:
        if detail.target_date is None:
            return await self.generator.generate_for_tomorrow()
        return await self.generator.generate_for_date(detail.target_date)

    async def handle_recompute_scores(self) -> ScoreSweepReport:
        return await self.scorer.update_all_scores()

    async def handle_kitchen_activity(self, detail: KitchenActivityDetail) -> int:
        """Refresh one kitchen's stored score after new order or review activity.

        Args:
            detail: Event detail naming the kitchen

        Returns:
            The kitchen's new score

        Raises:
            KitchenNotFoundError: If the kitchen does not exist
        """
        return await self.scorer.update_score(detail.kitchen_id)

    async def handle_eventbridge_event(
        self, event: dict[str, Any], _context: Any
    ) -> dict[str, Any]:
        """Dispatch an EventBridge event on its source and detail-type.

        Args:
            event: EventBridge event dictionary
            _context: Lambda context object (unused)

        Returns:
            Dictionary with statusCode and body for Lambda response
        """
        source = event.get("source", "")
        detail_type = event.get("detail-type", "")
        raw_detail = event.get("detail") or {}

        if source == SCHEDULER_SOURCE and detail_type == GENERATE_ORDERS:
            try:
                generate_detail = GenerateOrdersDetail(**raw_detail)
            except (ValidationError, TypeError) as e:
                return self._invalid_detail(source, detail_type, e)

            report = await self.handle_generate_orders(generate_detail)
            return _response(
                200,
                f"Generated {report.created} orders for {report.target_date.isoformat()}: "
                f"{report.processed} processed, {report.skipped} skipped, "
                f"{len(report.errors)} errors",
            )

        if source == SCHEDULER_SOURCE and detail_type == RECOMPUTE_SCORES:
            sweep = await self.handle_recompute_scores()
            return _response(200, f"Updated {sweep.updated} kitchen scores, {sweep.failed} failed")

        if source == ORDERS_SOURCE and detail_type in KITCHEN_ACTIVITY_TYPES:
            try:
                activity = KitchenActivityDetail(**raw_detail)
            except (ValidationError, TypeError) as e:
                return self._invalid_detail(source, detail_type, e)

            try:
                score = await self.handle_kitchen_activity(activity)
            except KitchenNotFoundError as e:
                logger.warning(f"Ignoring {detail_type} event: {e}")
                return _response(404, str(e))
            return _response(200, f"Updated KRI for kitchen {activity.kitchen_id}: {score}")

        logger.warning(f"Unsupported event type: {source}/{detail_type}")
        return _response(400, f"Unsupported event type: {source}/{detail_type}")

    @staticmethod
    def _invalid_detail(source: str, detail_type: str, error: Exception) -> dict[str, Any]:
        logger.error(f"Invalid detail for {source}/{detail_type}: {error}")
        return _response(400, "Invalid event format")
