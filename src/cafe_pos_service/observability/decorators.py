"""Tracing decorator for service operations."""

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "cafe-pos"


@contextmanager
def _operation_span(operation: str, function_name: str) -> Iterator[trace.Span]:
    """Open a span for one service operation and record how it ended."""
    tracer = trace.get_tracer(TRACER_NAME)

    with tracer.start_as_current_span(
        operation, record_exception=False, set_status_on_exception=False
    ) as span:
        span.set_attribute("cafe.operation", operation)
        span.set_attribute("code.function", function_name)
        try:
            yield span
        except Exception as e:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
        span.set_attribute("success", True)


def traced(span_name: str | None = None) -> Callable[[F], F]:
    """Decorator to run a function inside an OpenTelemetry span.

    Works for both plain and async functions. Exceptions are recorded on
    the span and re-raised unchanged.

    Args:
        span_name: Name for the span (defaults to the function name)

    Returns:
        Decorated function with tracing

    Example:
        @traced("process_order")
        async def process_order(self, request: ProcessOrderRequest, created_by: str):
            ...
    """

    def decorator(func: F) -> F:
        operation = span_name or func.__name__

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _operation_span(operation, func.__qualname__):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _operation_span(operation, func.__qualname__):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore[return-value]

    return decorator
