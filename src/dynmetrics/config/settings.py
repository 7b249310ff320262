"""
Application settings using Pydantic.

Provides environment-based configuration loading with DYNMETRICS_ prefix.
"""

import socket
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from dynmetrics.models import DashboardConfig


class Settings(BaseSettings):
    """Application settings."""

    # Instance identity, exported as the podname label
    pod_name: str = Field(default_factory=socket.gethostname)

    # Metric naming: namespace_subsystem_name
    namespace: str = "app"
    subsystem: str = "dynamic"

    # Grafana dashboard provisioning (disabled unless grafana_url is set)
    grafana_url: str | None = None
    grafana_api_key: str | None = None
    grafana_org_id: int | None = None
    grafana_default_dashboard: str | None = None
    grafana_default_datasource: str | None = None
    grafana_timeout: float = 30.0
    grafana_verify_tls: bool = True

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "DYNMETRICS_"

    def dashboard_config(self) -> DashboardConfig | None:
        """Build the provisioning config, or None when Grafana is not configured."""
        if not self.grafana_url:
            return None
        return DashboardConfig(
            api_url=self.grafana_url,
            auth_key=self.grafana_api_key,
            default_dashboard=self.grafana_default_dashboard,
            default_datasource=self.grafana_default_datasource,
            org_id=self.grafana_org_id,
            timeout=self.grafana_timeout,
            verify_tls=self.grafana_verify_tls,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
