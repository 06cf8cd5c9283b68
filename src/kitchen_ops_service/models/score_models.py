"""Kitchen Reliability Index result models."""

from pydantic import BaseModel, Field


class ScoreBreakdown(BaseModel):
    """The five weighted sub-scores. Maximums sum to 100."""

    rating_score: float = Field(..., description="0-30 points from average rating", ge=0)
    fulfillment_score: float = Field(
        ..., description="0-25 points from completion, penalised by cancellations", ge=0
    )
    delivery_score: float = Field(..., description="0-20 points from on-time delivery", ge=0)
    response_score: float = Field(..., description="0-15 points from response time", ge=0)
    satisfaction_score: float = Field(
        ..., description="0-10 points from the share of 4-5 star reviews", ge=0
    )

    @property
    def total(self) -> float:
        return (
            self.rating_score
            + self.fulfillment_score
            + self.delivery_score
            + self.response_score
            + self.satisfaction_score
        )


class ScoreMetrics(BaseModel):
    """Underlying figures the sub-scores were derived from."""

    average_rating: float
    total_orders: int
    completed_orders: int
    cancelled_orders: int
    completion_rate: float = Field(..., description="Percent of orders completed")
    on_time_delivery_rate: float = Field(..., description="Percent of completed orders on time")
    average_response_time: float = Field(..., description="Minutes")
    satisfaction_rate: float = Field(..., description="Percent of reviews rated 4 or 5")
    review_count: int
    positive_review_rate: float = Field(..., description="Same as satisfaction_rate")


class ScoreResult(BaseModel):
    """Kitchen Reliability Index for one kitchen."""

    kitchen_id: str
    score: int = Field(..., description="Composite score", ge=0, le=100)
    breakdown: ScoreBreakdown
    metrics: ScoreMetrics
    is_new_chef: bool = Field(
        ..., description="True when the cold-start correction was applied"
    )


class KitchenScoreOutcome(BaseModel):
    """Result of recomputing one kitchen during a sweep."""

    kitchen_id: str
    score: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ScoreSweepReport(BaseModel):
    """Result of recomputing every kitchen's score."""

    updated: int = 0
    failed: int = 0
    outcomes: list[KitchenScoreOutcome] = Field(default_factory=list)
