"""Logging, tracing and metrics setup for the kitchen operations service."""

from kitchen_ops_service.observability.config import configure_logging, setup_observability
from kitchen_ops_service.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
