"""dynmetrics configuration."""

from dynmetrics.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
