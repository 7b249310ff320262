"""
Aggregators backing dynamic metrics.

Counters, gauges and histograms are plain ``prometheus_client`` metrics. The
Python client does not compute summary quantiles, so timers use
``QuantileSummary``: a collector that keeps a sliding window of observations
per label set and exposes the configured quantiles next to ``_sum`` and
``_count``, the same series a Go client summary would publish.

Every aggregator gets ``podname`` as its leading label so that each series
identifies the instance that produced it.
"""

from __future__ import annotations

import re
import threading
import time
from collections import deque
from typing import Iterable, Sequence, Union

import numpy as np
from prometheus_client import Counter, Gauge, Histogram
from prometheus_client.core import Metric
from prometheus_client.registry import REGISTRY, Collector, CollectorRegistry

from dynmetrics.models import MetricKind

POD_LABEL = "podname"

TIMER_OBJECTIVES: dict[float, float] = {0.5: 0.05, 0.9: 0.01, 0.99: 0.001}

HISTOGRAM_BUCKETS: tuple[float, ...] = (
    0.1, 0.25, 0.5, 0.75, 0.85, 1, 1.5, 2, 2.5, 3, 4, 6, 8, 10,
)

# summary window defaults
DEFAULT_MAX_AGE_SECONDS = 600.0
DEFAULT_MAX_SAMPLES = 10_000

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_names(full_name: str, labelnames: Iterable[str]) -> None:
    """Reject names outside the classic Prometheus charset, whatever the client accepts."""
    if not _METRIC_NAME_RE.match(full_name):
        raise ValueError(f"Invalid metric name: {full_name}")
    for label in labelnames:
        if not _LABEL_NAME_RE.match(label) or label.startswith("__"):
            raise ValueError(f"Invalid label metric name: {label}")


class _QuantileChild:
    """Observations of a single label set."""

    def __init__(self, quantiles: Sequence[float], max_age: float, max_samples: int) -> None:
        self._quantiles = tuple(quantiles)
        self._max_age = max_age
        self._lock = threading.Lock()
        self._window: deque[tuple[float, float]] = deque(maxlen=max_samples)
        self._count = 0
        self._sum = 0.0

    def observe(self, value: float) -> None:
        now = time.monotonic()
        with self._lock:
            self._count += 1
            self._sum += value
            self._window.append((now, value))
            self._expire(now)

    def snapshot(self) -> tuple[int, float, dict[float, float]]:
        with self._lock:
            self._expire(time.monotonic())
            values = [value for _, value in self._window]
            count, total = self._count, self._sum

        if values:
            estimates = np.quantile(np.asarray(values, dtype=float), self._quantiles)
            quantiles = {q: float(v) for q, v in zip(self._quantiles, estimates)}
        else:
            quantiles = {q: float("nan") for q in self._quantiles}
        return count, total, quantiles

    def _expire(self, now: float) -> None:
        cutoff = now - self._max_age
        while self._window and self._window[0][0] < cutoff:
            self._window.popleft()


class QuantileSummary(Collector):
    """Summary metric exposing client-side quantiles over a sliding window.

    Mirrors the ``labels(...).observe(...)`` surface of ``prometheus_client``
    metrics. Objectives map a quantile to its tolerated rank error; the window
    is small enough that quantiles are computed exactly, so the tolerance is
    informational only.
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Iterable[str] = (),
        *,
        namespace: str = "",
        subsystem: str = "",
        objectives: dict[float, float] | None = None,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        registry: CollectorRegistry | None = REGISTRY,
    ) -> None:
        full_name = "_".join(part for part in (namespace, subsystem, name) if part)
        labelnames = tuple(labelnames)
        validate_names(full_name, labelnames)
        if "quantile" in labelnames:
            raise ValueError("Reserved label metric name: quantile")
        if len(set(labelnames)) != len(labelnames):
            raise ValueError(f"Duplicate label names: {labelnames}")

        self._name = full_name
        self._documentation = documentation
        self._labelnames = labelnames
        self._objectives = dict(objectives or TIMER_OBJECTIVES)
        self._max_age = max_age
        self._max_samples = max_samples
        self._lock = threading.Lock()
        self._children: dict[tuple[str, ...], _QuantileChild] = {}

        if registry is not None:
            registry.register(self)

    @property
    def objectives(self) -> dict[float, float]:
        return dict(self._objectives)

    def labels(self, **labelvalues: str) -> _QuantileChild:
        if set(labelvalues) != set(self._labelnames):
            raise ValueError("Incorrect label names")
        key = tuple(str(labelvalues[label]) for label in self._labelnames)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = _QuantileChild(sorted(self._objectives), self._max_age, self._max_samples)
                self._children[key] = child
        return child

    def describe(self) -> Iterable[Metric]:
        yield Metric(self._name, self._documentation, "summary")

    def collect(self) -> Iterable[Metric]:
        metric = Metric(self._name, self._documentation, "summary")
        with self._lock:
            children = list(self._children.items())

        for label_values, child in children:
            labels = dict(zip(self._labelnames, label_values))
            count, total, quantiles = child.snapshot()
            for quantile, value in quantiles.items():
                metric.add_sample(self._name, {**labels, "quantile": str(quantile)}, value)
            metric.add_sample(self._name + "_sum", labels, total)
            metric.add_sample(self._name + "_count", labels, count)
        yield metric


Aggregator = Union[Counter, Gauge, Histogram, QuantileSummary]


def build_aggregator(
    kind: MetricKind,
    name: str,
    label_schema: Sequence[str],
    *,
    namespace: str,
    subsystem: str,
    registry: CollectorRegistry | None,
) -> Aggregator:
    """Create and register the aggregator for a new dynamic metric.

    Raises:
        ValueError: the name or a label name is invalid, or prometheus_client
            rejected the registration (duplicated time series).
    """
    if POD_LABEL in label_schema:
        raise ValueError(f"Reserved label metric name: {POD_LABEL}")

    labelnames = (POD_LABEL, *label_schema)
    validate_names("_".join(part for part in (namespace, subsystem, name) if part), labelnames)
    documentation = f"dynamic metric {name}"

    if kind is MetricKind.COUNTER:
        return Counter(
            name,
            documentation,
            labelnames,
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
    if kind is MetricKind.GAUGE:
        return Gauge(
            name,
            documentation,
            labelnames,
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
    if kind is MetricKind.HISTOGRAM:
        return Histogram(
            name,
            documentation,
            labelnames,
            namespace=namespace,
            subsystem=subsystem,
            buckets=HISTOGRAM_BUCKETS,
            registry=registry,
        )
    if kind is MetricKind.TIMER:
        return QuantileSummary(
            name,
            documentation,
            labelnames,
            namespace=namespace,
            subsystem=subsystem,
            objectives=TIMER_OBJECTIVES,
            registry=registry,
        )
    raise ValueError(f"unknown metric kind: {kind}")
