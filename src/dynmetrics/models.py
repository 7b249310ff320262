"""Data models shared by the registry and the dashboard provisioning engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MetricKind(str, Enum):
    """Kind of aggregator backing a dynamic metric."""

    COUNTER = "counter"
    TIMER = "timer"
    HISTOGRAM = "histogram"
    GAUGE = "gauge"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class MetricDefinition:
    """Frozen label schema of a metric, fixed by its first observation."""

    name: str
    kind: MetricKind
    label_schema: tuple[str, ...]


@dataclass(frozen=True)
class DashboardConfig:
    """Connection and default settings for dashboard provisioning."""

    api_url: str
    auth_key: str | None = None
    default_dashboard: str | None = None
    default_datasource: str | None = None
    org_id: int | None = None
    timeout: float = 30.0
    verify_tls: bool = True
