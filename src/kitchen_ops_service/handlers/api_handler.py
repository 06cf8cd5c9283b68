"""FastAPI application for reliability and subscription order endpoints."""

import logging
from datetime import date

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from pydantic import BaseModel

from kitchen_ops_service.auth.api_dependencies import (
    get_api_key_from_header,
    verify_cron_authorization,
)
from kitchen_ops_service.auth.api_key_validator import APIKeyValidator, CronSecretValidator
from kitchen_ops_service.errors import KitchenNotFoundError, StorageError
from kitchen_ops_service.models.generation_models import GenerationReport
from kitchen_ops_service.models.score_models import (
    ScoreBreakdown,
    ScoreMetrics,
    ScoreResult,
    ScoreSweepReport,
)
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class ScoreUpdateResponse(BaseModel):
    """Response model for a recomputed and stored score."""

    kitchen_id: str
    score: int
    breakdown: ScoreBreakdown
    metrics: ScoreMetrics


class GenerationResponse(GenerationReport):
    """Generation report as returned to the scheduler."""

    success: bool = True


def create_app(
    scorer: ReliabilityScorer,
    generator: SubscriptionOrderGenerator,
    api_keys: list[str],
    cron_secret: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        scorer: Service computing kitchen reliability scores
        generator: Service expanding subscriptions into orders
        api_keys: List of valid API keys for the kitchen and admin endpoints
        cron_secret: Bearer secret for the cron endpoint (open when None)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Kitchen Ops Service API",
        description="Kitchen reliability scores and daily subscription order generation",
        version="1.0.0",
    )

    app.state.scorer = scorer
    app.state.generator = generator
    app.state.api_key_validator = APIKeyValidator(api_keys=api_keys)
    app.state.cron_secret_validator = CronSecretValidator(cron_secret)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        return HealthResponse(status="healthy")

    def validate_api_key(x_api_key: str | None = Header(None)) -> str:
        """Dependency to validate API key."""
        return get_api_key_from_header(x_api_key=x_api_key, validator=app.state.api_key_validator)

    def validate_cron_secret(authorization: str | None = Header(None)) -> None:
        """Dependency to validate the scheduler's bearer secret."""
        verify_cron_authorization(
            authorization=authorization, validator=app.state.cron_secret_validator
        )

    @app.get(
        "/kitchens/{kitchen_id}/reliability",
        response_model=ScoreResult,
        tags=["Reliability"],
    )
    async def get_reliability(
        kitchen_id: str,
        _api_key: str = Depends(validate_api_key),
    ) -> ScoreResult:
        """Compute a kitchen's current reliability score without storing it.

        Raises:
            HTTPException: 404 if the kitchen does not exist, 500 on storage failure
        """
        try:
            result: ScoreResult = await app.state.scorer.compute_score(kitchen_id)
        except KitchenNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except StorageError as e:
            logger.error(f"Failed to compute KRI for kitchen {kitchen_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to compute reliability score") from e
        return result

    @app.post(
        "/kitchens/{kitchen_id}/reliability",
        response_model=ScoreUpdateResponse,
        tags=["Reliability"],
    )
    async def update_reliability(
        kitchen_id: str,
        _api_key: str = Depends(validate_api_key),
    ) -> ScoreUpdateResponse:
        """Recompute a kitchen's reliability score and store it.

        Raises:
            HTTPException: 404 if the kitchen does not exist, 500 on storage failure
        """
        logger.info(f"Manual KRI recompute triggered for kitchen {kitchen_id}")

        try:
            result: ScoreResult = await app.state.scorer.recompute_and_store(kitchen_id)
        except KitchenNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except StorageError as e:
            logger.error(f"Failed to update KRI for kitchen {kitchen_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update reliability score") from e

        return ScoreUpdateResponse(
            kitchen_id=result.kitchen_id,
            score=result.score,
            breakdown=result.breakdown,
            metrics=result.metrics,
        )

    @app.post(
        "/admin/reliability/recompute-all",
        response_model=ScoreSweepReport,
        tags=["Reliability"],
    )
    async def recompute_all(
        _api_key: str = Depends(validate_api_key),
    ) -> ScoreSweepReport:
        """Recompute and store every kitchen's score."""
        logger.info("Manual KRI sweep triggered")
        try:
            report: ScoreSweepReport = await app.state.scorer.update_all_scores()
        except StorageError as e:
            logger.error(f"KRI sweep failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to recompute reliability scores") from e
        return report

    @app.api_route(
        "/cron/generate-subscription-orders",
        methods=["GET", "POST"],
        response_model=GenerationResponse,
        tags=["Cron"],
    )
    async def generate_subscription_orders(
        target_date: date | None = Query(None, alias="date"),
        _authorized: None = Depends(validate_cron_secret),
    ) -> GenerationResponse:
        """Generate the day's subscription orders.

        Returns 200 even when individual subscriptions failed; their errors are
        listed in the response.

        Args:
            target_date: Delivery date to generate for (defaults to tomorrow)

        Raises:
            HTTPException: 401 on a bad cron secret, 500 if subscriptions cannot be listed
        """
        generator: SubscriptionOrderGenerator = app.state.generator

        try:
            if target_date is None:
                report = await generator.generate_for_tomorrow()
            else:
                report = await generator.generate_for_date(target_date)
        except StorageError as e:
            logger.error(f"Subscription order generation failed: {e}")
            raise HTTPException(
                status_code=500, detail="Failed to generate subscription orders"
            ) from e

        return GenerationResponse(success=True, **report.model_dump())

    return app
