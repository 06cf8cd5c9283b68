"""Kitchen Reliability Index (KRI) scoring.

The KRI is a 0-100 composite of five weighted sub-scores:

- Rating (0-30): average review rating
- Fulfillment (0-25): completion rate, penalised by the cancellation rate
- Delivery (0-20): share of completed orders delivered on their scheduled day
- Response (0-15): average time to respond to a new order, faster is better
- Satisfaction (0-10): share of 4 and 5 star reviews

Kitchens with too little history to trust (fewer than 5 orders or fewer than 3
reviews by default) get a cold-start blend towards a neutral score of 50 and
never drop below it.
"""

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from kitchen_ops_service.errors import KitchenNotFoundError
from kitchen_ops_service.models.kitchen_models import Kitchen, Review
from kitchen_ops_service.models.order_models import Order, OrderStatus
from kitchen_ops_service.models.score_models import (
    KitchenScoreOutcome,
    ScoreBreakdown,
    ScoreMetrics,
    ScoreResult,
    ScoreSweepReport,
)
from kitchen_ops_service.observability import traced
from kitchen_ops_service.observability.metrics import (
    record_score_computed,
    record_score_update_failure,
)
from kitchen_ops_service.repositories.marketplace_store import MarketplaceStore

logger = logging.getLogger(__name__)

RATING_MAX_POINTS = 30.0
FULFILLMENT_MAX_POINTS = 25.0
CANCELLATION_PENALTY_POINTS = 5.0
DELIVERY_MAX_POINTS = 20.0
RESPONSE_MAX_POINTS = 15.0
RESPONSE_POINTS_LOST_PER_HOUR = 2.0
SATISFACTION_MAX_POINTS = 10.0
MAX_RATING = 5.0


@dataclass(frozen=True)
class ScoringPolicy:
    """Business-policy constants for the reliability score.

    Attributes:
        on_time_buffer_hours: Grace period after the end of the delivery day
        cold_start_min_orders: Orders needed before a kitchen is scored on data alone
        cold_start_min_reviews: Reviews needed before a kitchen is scored on data alone
        neutral_baseline_score: Starting score and floor for new kitchens
        positive_rating_threshold: Lowest star rating counted as a satisfied customer
        timezone: Marketplace timezone used to place delivery days on the clock
    """

    on_time_buffer_hours: float = 2.0
    cold_start_min_orders: int = 5
    cold_start_min_reviews: int = 3
    neutral_baseline_score: int = 50
    positive_rating_threshold: int = 4
    timezone: str = "UTC"

    @classmethod
    def from_env(cls) -> "ScoringPolicy":
        """Build a policy from environment variables, falling back to the defaults."""
        defaults = cls()
        return cls(
            on_time_buffer_hours=float(
                os.getenv("KRI_ON_TIME_BUFFER_HOURS", str(defaults.on_time_buffer_hours))
            ),
            cold_start_min_orders=int(
                os.getenv("KRI_COLD_START_MIN_ORDERS", str(defaults.cold_start_min_orders))
            ),
            cold_start_min_reviews=int(
                os.getenv("KRI_COLD_START_MIN_REVIEWS", str(defaults.cold_start_min_reviews))
            ),
            timezone=os.getenv("MARKETPLACE_TIMEZONE", defaults.timezone),
        )


@dataclass(frozen=True)
class ResolvedMetric:
    """A metric value and the name of the source that supplied it."""

    value: float
    source: str


def resolve_first_available(
    sources: Sequence[tuple[str, float | int | Decimal | None]],
    default: float = 0.0,
) -> ResolvedMetric:
    """Pick the first populated value from sources listed in order of precedence.

    None and zero both count as "not populated"; stored aggregates default to
    zero until the marketplace fills them in.

    Args:
        sources: (source name, value) pairs, highest precedence first
        default: Value used when no source is populated

    Returns:
        ResolvedMetric with the chosen value and source name ("default" if none)
    """
    for name, value in sources:
        if value:
            return ResolvedMetric(value=float(value), source=name)
    return ResolvedMetric(value=default, source="default")


def round_half_away_from_zero(value: float, ndigits: int = 2) -> float:
    """Round to ``ndigits`` decimal places, with ties going away from zero."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round to the nearest integer, with ties going away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> float:
    """part / whole * 100, or 0 when whole is 0."""
    return part / whole * 100 if whole > 0 else 0.0


def is_delivered_on_time(order: Order, policy: ScoringPolicy) -> bool:
    """Whether a completed order was finished on its scheduled delivery day.

    The window runs from the start of the delivery date to the end of that
    date plus the policy's buffer, in the marketplace timezone. The order's
    last update is taken as its completion time.
    """
    window_start = datetime.combine(order.delivery_date, time.min)
    window_end = datetime.combine(order.delivery_date, time.max) + timedelta(
        hours=policy.on_time_buffer_hours
    )

    completed_at = order.updated_at
    if completed_at.tzinfo is not None:
        completed_at = completed_at.astimezone(ZoneInfo(policy.timezone)).replace(tzinfo=None)

    return window_start <= completed_at <= window_end


def calculate_score(
    kitchen: Kitchen,
    orders: list[Order],
    reviews: list[Review],
    policy: ScoringPolicy,
) -> ScoreResult:
    """Compute the reliability score from a kitchen's records.

    Args:
        kitchen: Kitchen with its stored aggregates
        orders: Every order placed with the kitchen
        reviews: Every review of the kitchen seller's menu items
        policy: Scoring constants

    Returns:
        ScoreResult with the composite score, breakdown and metrics
    """
    total_orders = len(orders)
    completed = [order for order in orders if order.status == OrderStatus.COMPLETED]
    cancelled_orders = sum(1 for order in orders if order.status == OrderStatus.CANCELLED)
    completion_rate = percentage(len(completed), total_orders)
    cancellation_rate = percentage(cancelled_orders, total_orders)

    if completed:
        on_time_count = sum(1 for order in completed if is_delivered_on_time(order, policy))
        on_time_rate = percentage(on_time_count, len(completed))
    else:
        on_time_rate = float(kitchen.delivery_rate_percent or 0)

    ratings = [review.rating for review in reviews]
    average_rating = resolve_first_available(
        [
            ("reviews", sum(ratings) / len(ratings) if ratings else None),
            ("kitchen", kitchen.rating),
        ]
    ).value
    review_count = int(
        resolve_first_available(
            [("kitchen", kitchen.review_count), ("reviews", len(reviews))]
        ).value
    )
    average_response_time = resolve_first_available(
        [("kitchen", kitchen.response_time_minutes)]
    ).value

    positive_reviews = sum(1 for rating in ratings if rating >= policy.positive_rating_threshold)
    satisfaction_rate = percentage(positive_reviews, len(reviews))

    rating_score = min(average_rating / MAX_RATING * RATING_MAX_POINTS, RATING_MAX_POINTS)
    fulfillment_score = max(
        0.0,
        completion_rate / 100 * FULFILLMENT_MAX_POINTS
        - cancellation_rate / 100 * CANCELLATION_PENALTY_POINTS,
    )
    delivery_score = on_time_rate / 100 * DELIVERY_MAX_POINTS
    response_score = max(
        0.0,
        RESPONSE_MAX_POINTS - (average_response_time / 60) * RESPONSE_POINTS_LOST_PER_HOUR,
    )
    satisfaction_score = satisfaction_rate / 100 * SATISFACTION_MAX_POINTS

    raw_score = round_to_int(
        rating_score + fulfillment_score + delivery_score + response_score + satisfaction_score
    )

    is_new_chef = (
        total_orders < policy.cold_start_min_orders
        or review_count < policy.cold_start_min_reviews
    )
    if is_new_chef:
        data_weight = min(
            (total_orders / policy.cold_start_min_orders) * 0.5
            + (review_count / policy.cold_start_min_reviews) * 0.5,
            1.0,
        )
        final_score = round_to_int(
            policy.neutral_baseline_score * (1 - data_weight) + raw_score * data_weight
        )
        final_score = max(policy.neutral_baseline_score, final_score)
    else:
        final_score = raw_score

    final_score = max(0, min(100, final_score))

    return ScoreResult(
        kitchen_id=kitchen.id,
        score=final_score,
        breakdown=ScoreBreakdown(
            rating_score=round_half_away_from_zero(rating_score),
            fulfillment_score=round_half_away_from_zero(fulfillment_score),
            delivery_score=round_half_away_from_zero(delivery_score),
            response_score=round_half_away_from_zero(response_score),
            satisfaction_score=round_half_away_from_zero(satisfaction_score),
        ),
        metrics=ScoreMetrics(
            average_rating=round_half_away_from_zero(average_rating),
            total_orders=total_orders,
            completed_orders=len(completed),
            cancelled_orders=cancelled_orders,
            completion_rate=round_half_away_from_zero(completion_rate),
            on_time_delivery_rate=round_half_away_from_zero(on_time_rate),
            average_response_time=round_half_away_from_zero(average_response_time),
            satisfaction_rate=round_half_away_from_zero(satisfaction_rate),
            review_count=review_count,
            positive_review_rate=round_half_away_from_zero(satisfaction_rate),
        ),
        is_new_chef=is_new_chef,
    )


class ReliabilityScorer:
    """Service computing and persisting Kitchen Reliability Index scores.

    Every call re-reads the kitchen, its orders and its reviews from the store.
    A score may be slightly stale if orders arrive mid-computation; it is
    corrected on the next recompute.
    """

    def __init__(self, store: MarketplaceStore, policy: ScoringPolicy | None = None) -> None:
        """Initialize the ReliabilityScorer.

        Args:
            store: Backing store for kitchens, orders and reviews
            policy: Scoring constants (defaults used when omitted)
        """
        self.store = store
        self.policy = policy or ScoringPolicy()

    @traced("compute_reliability_score", service_name="kitchen-ops-svc")
    async def compute_score(self, kitchen_id: str) -> ScoreResult:
        """Compute a kitchen's reliability score without persisting it.

        Args:
            kitchen_id: The kitchen to score

        Returns:
            ScoreResult with the composite score, breakdown and metrics

        Raises:
            KitchenNotFoundError: If the kitchen does not exist
        """
        kitchen = self.store.get_kitchen(kitchen_id)
        if kitchen is None:
            raise KitchenNotFoundError(kitchen_id)

        orders = self.store.list_orders_by_kitchen(kitchen_id)
        reviews = self.store.list_reviews_by_seller(kitchen.seller_id)

        result = calculate_score(kitchen, orders, reviews, self.policy)
        record_score_computed(result.score, result.is_new_chef)

        logger.debug(
            f"Computed KRI {result.score} for kitchen {kitchen_id} "
            f"({len(orders)} orders, {len(reviews)} reviews, new chef: {result.is_new_chef})"
        )
        return result

    async def recompute_and_store(self, kitchen_id: str) -> ScoreResult:
        """Recompute a kitchen's score and store it on the kitchen.

        Args:
            kitchen_id: The kitchen to update

        Returns:
            The full ScoreResult that was stored

        Raises:
            KitchenNotFoundError: If the kitchen does not exist
            StorageError: If the score could not be written
        """
        result = await self.compute_score(kitchen_id)
        self.store.update_kitchen_score(kitchen_id, result.score)
        logger.info(f"Updated KRI for kitchen {kitchen_id}: {result.score}")
        return result

    async def update_score(self, kitchen_id: str) -> int:
        """Recompute and store a kitchen's score, returning just the score."""
        result = await self.recompute_and_store(kitchen_id)
        return result.score

    @traced("update_all_reliability_scores", service_name="kitchen-ops-svc")
    async def update_all_scores(self) -> ScoreSweepReport:
        """Recompute and store the score of every kitchen.

        A failure for one kitchen is logged and recorded in the report; the
        sweep carries on with the remaining kitchens.

        Returns:
            ScoreSweepReport with per-kitchen outcomes
        """
        report = ScoreSweepReport()

        for kitchen_id in self.store.list_kitchen_ids():
            try:
                score = await self.update_score(kitchen_id)
            except Exception as e:
                logger.exception(f"Error updating KRI for kitchen {kitchen_id}: {e}")
                record_score_update_failure(type(e).__name__)
                report.failed += 1
                report.outcomes.append(KitchenScoreOutcome(kitchen_id=kitchen_id, error=str(e)))
                continue

            report.updated += 1
            report.outcomes.append(KitchenScoreOutcome(kitchen_id=kitchen_id, score=score))

        logger.info(f"KRI sweep completed: {report.updated} updated, {report.failed} failed")
        return report
