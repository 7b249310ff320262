"""
Lazy provisioning of Grafana graph panels for dynamic metrics.

The first time a metric is recorded with a graph title directive, the target
dashboard is fetched (or scaffolded when missing), scanned for a panel that
already queries the metric, and, if none is found, a single-column graph
panel is appended and the board is saved without overwriting concurrent
edits. Confirmed graphs are remembered per dashboard in a ProvisioningCache.
"""

from __future__ import annotations

import hashlib
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

import structlog

from dynmetrics.core.errors import NotConfiguredError, UpsertStatusError
from dynmetrics.dashboards.cache import ProvisioningCache
from dynmetrics.dashboards.layout import iter_panels, next_panel_placement
from dynmetrics.dashboards.models import Dashboard, GraphPanel, GridPos, Target
from dynmetrics.labels import Directives
from dynmetrics.models import DashboardConfig, MetricKind
from dynmetrics.providers.base import DashboardBackend
from dynmetrics.providers.grafana import GrafanaClient

logger = structlog.get_logger()

UPSERT_SUCCESS = "success"


class ProvisioningOutcome(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    CACHED = "cached"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class GraphQuery:
    """PromQL template and presentation for graphs of one metric kind."""

    expr_template: str
    unit: str
    legend_format: str = ""

    def render(self, full_metric_name: str) -> str:
        return self.expr_template.format(metric=full_metric_name)


COUNTER_QUERY = GraphQuery("sum(increase({metric}[1h]))", unit="short", legend_format="total")
TIMER_QUERY = GraphQuery("max by(quantile)({metric})", unit="ns", legend_format="for {{quantile}}pp")

# Histograms and gauges are recorded but never auto-graphed.
GRAPH_QUERIES: dict[MetricKind, GraphQuery | None] = {
    MetricKind.COUNTER: COUNTER_QUERY,
    MetricKind.TIMER: TIMER_QUERY,
    MetricKind.HISTOGRAM: None,
    MetricKind.GAUGE: None,
}


def supports_graph(kind: MetricKind) -> bool:
    return GRAPH_QUERIES[kind] is not None


def full_metric_name(namespace: str, subsystem: str, name: str) -> str:
    return f"{namespace}_{subsystem}_{name}"


def counter_series(full_metric_name: str) -> str:
    """Series name prometheus_client exposes for a counter sample."""
    if full_metric_name.endswith("_total"):
        return full_metric_name
    return f"{full_metric_name}_total"


def dashboard_uid(title: str) -> str:
    """Stable uid (and slug) for a dashboard title: hex MD5 of the title."""
    return hashlib.md5(title.encode("utf-8"), usedforsecurity=False).hexdigest()


def _name_pattern(name: str) -> re.Pattern[str]:
    # metric names are made of word characters and colons
    return re.compile(rf"(?<![\w:]){re.escape(name)}(?![\w:])")


def find_metric_panel(
    panels: Iterable[Mapping[str, Any]], *names: str
) -> Mapping[str, Any] | None:
    """Return the first panel with a target expression referencing any of ``names``.

    A name only matches as a whole series name, so ``shop_api_req`` does not
    match an expression over ``shop_api_req_time``.
    """
    patterns = [_name_pattern(name) for name in names]
    for panel in iter_panels(panels):
        for target in panel.get("targets") or ():
            expr = target.get("expr") or ""
            if any(pattern.search(expr) for pattern in patterns):
                return panel
    return None


class DashboardProvisioningService:
    """Ensures a graph panel exists on a dashboard for a given metric."""

    def __init__(
        self,
        backend: DashboardBackend,
        *,
        default_dashboard: str | None = None,
        default_datasource: str | None = None,
        cache: ProvisioningCache | None = None,
    ) -> None:
        self._backend = backend
        self._default_dashboard = default_dashboard
        self._default_datasource = default_datasource
        self.cache = cache if cache is not None else ProvisioningCache()
        self._locks_guard = threading.Lock()
        self._dashboard_locks: dict[str, threading.Lock] = {}

    @classmethod
    def from_config(cls, config: DashboardConfig) -> "DashboardProvisioningService":
        client = GrafanaClient(
            config.api_url,
            config.auth_key,
            timeout=config.timeout,
            org_id=config.org_id,
            verify=config.verify_tls,
        )
        return cls(
            client,
            default_dashboard=config.default_dashboard,
            default_datasource=config.default_datasource,
        )

    def ensure_graph(
        self,
        kind: MetricKind,
        name: str,
        directives: Directives,
        *,
        namespace: str,
        subsystem: str,
    ) -> ProvisioningOutcome:
        """Make sure the dashboard named by ``directives`` graphs the metric.

        Raises:
            NotConfiguredError: no dashboard override and no default dashboard.
            TransportError: Grafana could not be reached or failed.
            UpsertStatusError: Grafana refused to save the board.
        """
        query = GRAPH_QUERIES[kind]
        if query is None or not directives.wants_graph:
            logger.debug("graph_provisioning_skipped", metric=name, kind=str(kind))
            return ProvisioningOutcome.SKIPPED

        dashboard = self._resolve_dashboard(directives.dashboard)
        datasource = directives.datasource or self._default_datasource
        full_name = full_metric_name(namespace, subsystem, name)
        series = counter_series(full_name) if kind is MetricKind.COUNTER else full_name
        return self._push_graph(
            dashboard,
            directives.graph_title or name,
            full_name,
            query,
            datasource,
            series=series,
        )

    def push_counter_graph(
        self,
        dashboard: str,
        full_metric_name: str,
        title: str,
        datasource: str | None = None,
    ) -> ProvisioningOutcome:
        """Graph an arbitrary counter series, e.g. one with a label selector."""
        return self._push_graph(
            dashboard, title, full_metric_name, COUNTER_QUERY, datasource or self._default_datasource
        )

    def push_timer_graph(
        self,
        dashboard: str,
        full_metric_name: str,
        title: str,
        datasource: str | None = None,
    ) -> ProvisioningOutcome:
        """Graph an arbitrary summary series by quantile."""
        return self._push_graph(
            dashboard, title, full_metric_name, TIMER_QUERY, datasource or self._default_datasource
        )

    def _resolve_dashboard(self, override: str | None) -> str:
        dashboard = override or self._default_dashboard
        if not dashboard:
            raise NotConfiguredError(
                "no dashboard configured for graph provisioning",
                details={"hint": "set a default dashboard or the grafana_dashboard_title label"},
            )
        return dashboard

    def _dashboard_lock(self, dashboard: str) -> threading.Lock:
        with self._locks_guard:
            return self._dashboard_locks.setdefault(dashboard, threading.Lock())

    def _push_graph(
        self,
        dashboard: str,
        title: str,
        full_metric_name: str,
        query: GraphQuery,
        datasource: str | None,
        *,
        series: str | None = None,
    ) -> ProvisioningOutcome:
        series = series or full_metric_name
        if self.cache.contains(dashboard, full_metric_name):
            logger.debug("graph_cached", dashboard=dashboard, metric=full_metric_name)
            return ProvisioningOutcome.CACHED

        with self._dashboard_lock(dashboard):
            # another thread may have provisioned it while we waited
            if self.cache.contains(dashboard, full_metric_name):
                return ProvisioningOutcome.CACHED

            board = self._load_board(dashboard)
            panels = list(board.get("panels") or [])

            if find_metric_panel(panels, full_metric_name, series) is not None:
                self.cache.add(dashboard, full_metric_name)
                logger.info("graph_already_present", dashboard=dashboard, metric=full_metric_name)
                return ProvisioningOutcome.EXISTING

            placement = next_panel_placement(panels)
            panel = GraphPanel(
                title=title,
                targets=[Target(expr=query.render(series), legend_format=query.legend_format)],
                unit=query.unit,
                datasource=datasource,
                grid_pos=GridPos(x=placement.x, y=placement.y),
                id=placement.panel_id,
            )
            board["panels"] = [*panels, panel.to_dict()]
            board["annotations"] = {"list": []}

            result = self._backend.upsert_dashboard(board, overwrite=False)
            status = result.get("status")
            if status != UPSERT_SUCCESS:
                logger.warning(
                    "dashboard_upsert_failed",
                    dashboard=dashboard,
                    metric=full_metric_name,
                    status=status,
                )
                raise UpsertStatusError(
                    status, details={"dashboard": dashboard, "metric": full_metric_name}
                )

            self.cache.add(dashboard, full_metric_name)
            logger.info(
                "graph_created",
                dashboard=dashboard,
                metric=full_metric_name,
                panel_id=placement.panel_id,
                y=placement.y,
            )
            return ProvisioningOutcome.CREATED

    def _load_board(self, dashboard: str) -> dict[str, Any]:
        uid = dashboard_uid(dashboard)
        board = self._backend.get_dashboard(uid)
        if board is None:
            logger.info("dashboard_not_found", dashboard=dashboard, uid=uid)
            return Dashboard(title=dashboard, uid=uid).to_dict()
        return dict(board)
