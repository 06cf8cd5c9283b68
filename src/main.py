"""Main application entry point for the kitchen operations service.

Provides the FastAPI application factory for running the service locally or
behind a container.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from kitchen_ops_service.handlers.api_handler import create_app
from kitchen_ops_service.observability import configure_logging, setup_observability
from kitchen_ops_service.repositories.marketplace_store import create_dynamodb_store
from kitchen_ops_service.services.notification_service import NotificationService
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer, ScoringPolicy

logger = logging.getLogger(__name__)


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # Default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing kitchen ops service...")

    store = create_dynamodb_store(get_dynamodb_resource())

    policy = ScoringPolicy.from_env()
    scorer = ReliabilityScorer(store=store, policy=policy)
    generator = SubscriptionOrderGenerator(
        store=store,
        notification_service=NotificationService(store=store),
        timezone=policy.timezone,
    )

    logger.info(f"Services initialized - marketplace timezone: {policy.timezone}")

    api_keys_str = os.getenv("ADMIN_API_KEY", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No ADMIN_API_KEY configured - admin endpoints will not be accessible")
        api_keys = ["dummy-key-for-development"]

    cron_secret = os.getenv("CRON_SECRET")
    if not cron_secret:
        logger.warning("No CRON_SECRET configured - cron endpoint is unauthenticated")

    app = create_app(
        scorer=scorer,
        generator=generator,
        api_keys=api_keys,
        cron_secret=cron_secret,
    )
    setup_observability(app)

    logger.info("Kitchen ops service initialized successfully")
    return app


# Only build the real app outside tests so test collection has no AWS dependency
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
