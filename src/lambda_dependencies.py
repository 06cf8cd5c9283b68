"""Shared dependency factory for Lambda handlers.

Dependencies are created once per Lambda container and reused across
invocations.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from kitchen_ops_service.handlers.api_handler import create_app
from kitchen_ops_service.handlers.event_handler import EventHandler
from kitchen_ops_service.observability import configure_logging, setup_observability
from kitchen_ops_service.repositories.marketplace_store import (
    MarketplaceStore,
    create_dynamodb_store,
)
from kitchen_ops_service.services.notification_service import NotificationService
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer, ScoringPolicy

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_store: MarketplaceStore | None = None
_scorer: ReliabilityScorer | None = None
_generator: SubscriptionOrderGenerator | None = None
_event_handler: EventHandler | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_store() -> MarketplaceStore:
    """Create or retrieve the cached marketplace store."""
    global _store

    if _store is None:
        _store = create_dynamodb_store(get_dynamodb_resource())

    return _store


def get_scorer() -> ReliabilityScorer:
    """Create or retrieve cached reliability scorer.

    Returns:
        ReliabilityScorer configured from KRI_* environment variables
    """
    global _scorer

    if _scorer is not None:
        return _scorer

    _scorer = ReliabilityScorer(store=get_store(), policy=ScoringPolicy.from_env())

    logger.info("Reliability scorer initialized")
    return _scorer


def get_generator() -> SubscriptionOrderGenerator:
    """Create or retrieve cached subscription order generator.

    Returns:
        SubscriptionOrderGenerator for the marketplace timezone
    """
    global _generator

    if _generator is not None:
        return _generator

    store = get_store()
    _generator = SubscriptionOrderGenerator(
        store=store,
        notification_service=NotificationService(store=store),
        timezone=os.getenv("MARKETPLACE_TIMEZONE", "UTC"),
    )

    logger.info("Subscription order generator initialized")
    return _generator


def get_event_handler() -> EventHandler:
    """Create or retrieve cached event handler."""
    global _event_handler

    if _event_handler is not None:
        return _event_handler

    _event_handler = EventHandler(scorer=get_scorer(), generator=get_generator())

    logger.info("Event handler initialized")
    return _event_handler


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    api_keys_str = os.getenv("ADMIN_API_KEY", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No ADMIN_API_KEY configured - using development key")
        api_keys = ["dummy-key-for-development"]

    cron_secret = os.getenv("CRON_SECRET")
    if not cron_secret:
        logger.warning("No CRON_SECRET configured - cron endpoint is unauthenticated")

    _fastapi_app = create_app(
        scorer=get_scorer(),
        generator=get_generator(),
        api_keys=api_keys,
        cron_secret=cron_secret,
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Configure logging and observability once per Lambda cold start."""
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    setup_observability()

    logger.info("Lambda environment initialized")
