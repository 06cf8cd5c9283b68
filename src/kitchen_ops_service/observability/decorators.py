"""Span decorator for service operations."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])


def _start(span: Span, service_name: str, span_name: str | None, func: Callable[..., Any]) -> None:
    span.set_attribute("service.name", service_name)
    if span_name:
        span.set_attribute("function.name", func.__name__)


def _fail(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


def traced(
    span_name: str | None = None, service_name: str = "kitchen-ops-svc"
) -> Callable[[F], F]:
    """Wrap a function, sync or async, in its own span.

    The span records a ``success`` attribute and, when the function raises,
    the exception type and message. Exceptions are re-raised unchanged.

    Args:
        span_name: Span name (defaults to the function name)
        service_name: Tracer name and ``service.name`` attribute

    Returns:
        Decorator producing the traced function

    Example:
        @traced("compute_reliability_score", service_name="kitchen-ops-svc")
        async def compute_score(self, kitchen_id: str) -> ScoreResult:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                _start(span, service_name, span_name, func)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                _start(span, service_name, span_name, func)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
