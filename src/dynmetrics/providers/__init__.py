"""Dashboard backends."""

from dynmetrics.providers.base import DashboardBackend
from dynmetrics.providers.grafana import GrafanaClient

__all__ = ["DashboardBackend", "GrafanaClient"]
