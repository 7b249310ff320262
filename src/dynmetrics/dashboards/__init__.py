"""Lazy Grafana dashboard provisioning for dynamic metrics."""

from dynmetrics.dashboards.cache import ProvisioningCache
from dynmetrics.dashboards.layout import PanelPlacement, next_panel_placement
from dynmetrics.dashboards.models import Dashboard, GraphPanel, GridPos, Target
from dynmetrics.dashboards.service import (
    DashboardProvisioningService,
    ProvisioningOutcome,
    dashboard_uid,
    full_metric_name,
    supports_graph,
)

__all__ = [
    "Dashboard",
    "DashboardProvisioningService",
    "GraphPanel",
    "GridPos",
    "PanelPlacement",
    "ProvisioningCache",
    "ProvisioningOutcome",
    "Target",
    "dashboard_uid",
    "full_metric_name",
    "next_panel_placement",
    "supports_graph",
]
