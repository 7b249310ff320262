"""
dynmetrics: ad-hoc Prometheus metrics with frozen label schemas and lazy
Grafana graph provisioning.

Usage:
    registry = MetricRegistry("pod-1", "shop", "api", DashboardConfig(...))
    registry.observe_counter("orders_total", 1, {"status": "ok"})
    registry.observe_timer(
        "checkout_time", start, {"grafana_graph_title": "Checkout time"}
    )
"""

from dynmetrics.base import Collector, NullCollector
from dynmetrics.core.errors import (
    DynMetricsError,
    InvalidObservationError,
    MetricRegistrationError,
    NotConfiguredError,
    ProvisioningError,
    SchemaMismatchError,
    TransportError,
    UpsertStatusError,
)
from dynmetrics.instrument import timed
from dynmetrics.labels import DirectiveLabel, Directives, partition_labels
from dynmetrics.models import DashboardConfig, MetricDefinition, MetricKind
from dynmetrics.registry import (
    MetricRegistry,
    get_default_collector,
    init_default_collector,
    reset_default_collector,
)

__all__ = [
    "Collector",
    "DashboardConfig",
    "DirectiveLabel",
    "Directives",
    "DynMetricsError",
    "InvalidObservationError",
    "MetricDefinition",
    "MetricKind",
    "MetricRegistrationError",
    "MetricRegistry",
    "NotConfiguredError",
    "NullCollector",
    "ProvisioningError",
    "SchemaMismatchError",
    "TransportError",
    "UpsertStatusError",
    "get_default_collector",
    "init_default_collector",
    "partition_labels",
    "reset_default_collector",
    "timed",
]
