"""
Dynamic metric registry with label-schema enforcement.

Metrics are created on first use. The first observation of a (kind, name)
pair fixes its schema: the sorted set of data-label names. Any later
observation with a different name set raises SchemaMismatchError and leaves
the stored metric untouched.

Directive labels (see ``dynmetrics.labels``) are stripped before the schema
check. When a graph title directive is present the registry asks the
DashboardProvisioningService for a graph after the value is recorded; a
provisioning failure is raised to the caller but never rolls back the value.

Locking: the registry lock only covers check-or-create of the schema.
Provisioning runs outside it and is serialised per dashboard by the service,
so a slow Grafana never blocks unrelated observations.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Mapping

from prometheus_client import generate_latest
from prometheus_client.registry import REGISTRY, CollectorRegistry

from dynmetrics.aggregators import POD_LABEL, Aggregator, build_aggregator
from dynmetrics.config.settings import Settings, get_settings
from dynmetrics.core.errors import (
    InvalidObservationError,
    MetricRegistrationError,
    NotConfiguredError,
    SchemaMismatchError,
)
from dynmetrics.dashboards.service import (
    DashboardProvisioningService,
    ProvisioningOutcome,
    full_metric_name,
    supports_graph,
)
from dynmetrics.labels import Directives, label_schema, partition_labels
from dynmetrics.logging import bind_context, configure_logging
from dynmetrics.models import DashboardConfig, MetricDefinition, MetricKind


NANOSECONDS_PER_SECOND = 1_000_000_000


class MetricRegistry:
    """Registry of dynamically created metrics for one instance."""

    def __init__(
        self,
        pod_name: str,
        namespace: str,
        subsystem: str,
        dashboard_config: DashboardConfig | None = None,
        *,
        registry: CollectorRegistry = REGISTRY,
        provisioner: DashboardProvisioningService | None = None,
    ) -> None:
        self.pod_name = pod_name
        self.namespace = namespace
        self.subsystem = subsystem
        self.collector_registry = registry
        if provisioner is None and dashboard_config is not None:
            provisioner = DashboardProvisioningService.from_config(dashboard_config)
        self.provisioner = provisioner

        self._lock = threading.Lock()
        self._metrics: dict[tuple[MetricKind, str], tuple[MetricDefinition, Aggregator]] = {}
        self._log = bind_context(podname=pod_name, namespace=namespace, subsystem=subsystem)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        registry: CollectorRegistry = REGISTRY,
    ) -> "MetricRegistry":
        settings = settings or get_settings()
        return cls(
            settings.pod_name,
            settings.namespace,
            settings.subsystem,
            settings.dashboard_config(),
            registry=registry,
        )

    def observe_timer(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        """Record nanoseconds elapsed since ``start_time`` (a ``time.time()`` value)."""
        elapsed = (time.time() - start_time) * NANOSECONDS_PER_SECOND
        self._observe(MetricKind.TIMER, name, elapsed, labels)

    def observe_histogram(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        """Record seconds elapsed since ``start_time`` (a ``time.time()`` value)."""
        elapsed = time.time() - start_time
        self._observe(MetricKind.HISTOGRAM, name, elapsed, labels)

    def observe_counter(
        self, name: str, delta: float = 1, labels: Mapping[str, str] | None = None
    ) -> None:
        if delta < 0:
            raise InvalidObservationError(
                "counters can only be incremented by non-negative amounts",
                details={"metric": name, "delta": delta},
            )
        self._observe(MetricKind.COUNTER, name, delta, labels)

    def observe_gauge(
        self, name: str, value: float, labels: Mapping[str, str] | None = None
    ) -> None:
        self._observe(MetricKind.GAUGE, name, value, labels)

    def definition(self, kind: MetricKind, name: str) -> MetricDefinition | None:
        with self._lock:
            entry = self._metrics.get((kind, name))
        return entry[0] if entry else None

    def definitions(self) -> list[MetricDefinition]:
        with self._lock:
            return [definition for definition, _ in self._metrics.values()]

    def full_name(self, name: str) -> str:
        return full_metric_name(self.namespace, self.subsystem, name)

    def exposition(self) -> bytes:
        """Text exposition of every metric in the backing CollectorRegistry."""
        return generate_latest(self.collector_registry)

    def _observe(
        self,
        kind: MetricKind,
        name: str,
        value: float,
        labels: Mapping[str, str] | None,
    ) -> None:
        data_labels, directive_labels = partition_labels(labels)
        aggregator = self._get_or_create(kind, name, data_labels)

        child: Any = aggregator.labels(**{POD_LABEL: self.pod_name, **data_labels})
        if kind is MetricKind.COUNTER:
            child.inc(value)
        elif kind is MetricKind.GAUGE:
            child.set(value)
        else:
            child.observe(value)

        self._provision(kind, name, Directives.from_labels(directive_labels))

    def _get_or_create(
        self, kind: MetricKind, name: str, data_labels: Mapping[str, str]
    ) -> Aggregator:
        schema = label_schema(data_labels)
        with self._lock:
            entry = self._metrics.get((kind, name))
            if entry is not None:
                definition, aggregator = entry
                if definition.label_schema != schema:
                    self._log.warning(
                        "metric_schema_mismatch",
                        metric=name,
                        kind=str(kind),
                        current_schema=list(definition.label_schema),
                        requested_schema=list(schema),
                    )
                    raise SchemaMismatchError(name, kind, definition.label_schema, schema)
                return aggregator

            try:
                aggregator = build_aggregator(
                    kind,
                    name,
                    schema,
                    namespace=self.namespace,
                    subsystem=self.subsystem,
                    registry=self.collector_registry,
                )
            except ValueError as exc:
                raise MetricRegistrationError(
                    f"cannot register metric {name}: {exc}",
                    details={"metric": name, "kind": str(kind), "labels": list(schema)},
                ) from exc

            self._metrics[(kind, name)] = (MetricDefinition(name, kind, schema), aggregator)
            self._log.info("metric_created", metric=name, kind=str(kind), labels=list(schema))
            return aggregator

    def _provision(self, kind: MetricKind, name: str, directives: Directives) -> None:
        if not directives.wants_graph:
            return
        if not supports_graph(kind):
            self._log.debug("graph_provisioning_skipped", metric=name, kind=str(kind))
            return
        if self.provisioner is None:
            raise NotConfiguredError(
                "grafana service is not initialized",
                details={"metric": name, "kind": str(kind)},
            )

        outcome = self.provisioner.ensure_graph(
            kind,
            name,
            directives,
            namespace=self.namespace,
            subsystem=self.subsystem,
        )
        if outcome is ProvisioningOutcome.CREATED:
            self._log.info("graph_provisioned", metric=name, title=directives.graph_title)


_default_collector: MetricRegistry | None = None
_default_lock = threading.Lock()


def init_default_collector(
    pod_name: str,
    namespace: str,
    subsystem: str,
    dashboard_config: DashboardConfig | None = None,
    **kwargs: Any,
) -> MetricRegistry:
    """Create the process-wide default registry, replacing any previous one."""
    global _default_collector
    with _default_lock:
        _default_collector = MetricRegistry(
            pod_name, namespace, subsystem, dashboard_config, **kwargs
        )
        return _default_collector


def get_default_collector() -> MetricRegistry:
    """Return the process-wide default registry, building it from settings on first use.

    The first build also configures logging at ``Settings.log_level``.
    """
    global _default_collector
    with _default_lock:
        if _default_collector is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            _default_collector = MetricRegistry.from_settings(settings)
        return _default_collector


def reset_default_collector() -> None:
    """Forget the default registry. Its metrics stay in their CollectorRegistry."""
    global _default_collector
    with _default_lock:
        _default_collector = None
