"""
Timing decorator that feeds a Collector.

Metric names are derived from the wrapped function's name: runs of non-word
characters become ``_`` and CamelCase is converted to snake_case, so
``GetUserProfile`` is recorded as ``get_user_profile``. Every call is observed
with a ``has_error`` label. Instrumentation never changes the outcome of the
wrapped call: observation failures are logged and dropped.
"""

from __future__ import annotations

import functools
import inspect
import re
import time
from typing import Any, Callable, Mapping, TypeVar

import structlog

from dynmetrics.base import Collector
from dynmetrics.core.errors import DynMetricsError

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

_NON_WORD = re.compile(r"[^\w\d]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def metric_name_for(method: str) -> str:
    """Convert a method or function name to a snake_case metric name."""
    name = _NON_WORD.sub("_", method)
    name = _CAMEL_BOUNDARY.sub("_", name)
    return re.sub(r"_+", "_", name).strip("_").lower()


def timed(
    collector: Collector,
    name: str | None = None,
    labels: Mapping[str, str] | None = None,
) -> Callable[[F], F]:
    """
    Decorator recording the duration of each call as a timer.

    Args:
        collector: Registry (or NullCollector) receiving the observation
        name: Metric name; defaults to the snake_cased function name
        labels: Extra labels, directive labels included, merged into every call

    Usage:
        @timed(registry, labels={"grafana_graph_title": "Checkout latency"})
        def checkout(cart): ...
    """

    def decorator(func: F) -> F:
        metric = name or metric_name_for(func.__name__)
        extra = dict(labels or {})

        def record(start: float, failed: bool) -> None:
            try:
                collector.observe_timer(
                    metric, start, {**extra, "has_error": "true" if failed else "false"}
                )
            except DynMetricsError as exc:
                logger.warning(
                    "observation_failed",
                    metric=metric,
                    error_type=type(exc).__name__,
                    message=exc.message,
                    details=exc.details,
                )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.time()
                failed = False
                try:
                    return await func(*args, **kwargs)
                except BaseException:
                    failed = True
                    raise
                finally:
                    record(start, failed)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.time()
            failed = False
            try:
                return func(*args, **kwargs)
            except BaseException:
                failed = True
                raise
            finally:
                record(start, failed)

        return wrapper  # type: ignore[return-value]

    return decorator
