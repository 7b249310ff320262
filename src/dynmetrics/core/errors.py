"""
Unified error hierarchy for dynmetrics.

Every error carries a human readable ``message`` and a ``details`` dict that is
passed straight to structlog when the error is logged.

Hierarchy:
- DynMetricsError
  - SchemaMismatchError: label-name set changed for an existing metric
  - MetricRegistrationError: prometheus_client refused to create the metric
  - InvalidObservationError: value cannot be applied to the metric
  - ProvisioningError: dashboard graph could not be ensured
    - NotConfiguredError: no dashboard backend or dashboard name
    - TransportError: Grafana could not be reached or answered with an error
    - UpsertStatusError: Grafana answered but did not report success
"""

from __future__ import annotations

from typing import Any, Sequence


class DynMetricsError(Exception):
    """Base exception for dynmetrics errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SchemaMismatchError(DynMetricsError):
    """Raised when a metric is observed with a different set of label names."""

    def __init__(
        self,
        name: str,
        kind: Any,
        current_schema: Sequence[str],
        requested_schema: Sequence[str],
    ) -> None:
        self.name = name
        self.kind = kind
        self.current_schema = tuple(current_schema)
        self.requested_schema = tuple(requested_schema)
        super().__init__(
            "invalid metric labels: "
            f"current labels: {list(self.current_schema)}, "
            f"requested labels: {list(self.requested_schema)}",
            details={
                "metric": name,
                "kind": str(kind),
                "current_schema": list(self.current_schema),
                "requested_schema": list(self.requested_schema),
            },
        )


class MetricRegistrationError(DynMetricsError):
    """Raised when an aggregator cannot be created or registered."""


class InvalidObservationError(DynMetricsError):
    """Raised when a value cannot be applied to a metric."""


class ProvisioningError(DynMetricsError):
    """Raised when a dashboard graph could not be provisioned.

    The metric value has already been recorded when this is raised.
    """


class NotConfiguredError(ProvisioningError):
    """Raised when a graph is requested but no dashboard backend is wired."""


class TransportError(ProvisioningError):
    """Raised when the dashboard backend cannot be reached or fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class UpsertStatusError(ProvisioningError):
    """Raised when the dashboard backend reports a non-success upsert status."""

    def __init__(self, status: str | None, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"status is not success: {status}", details)
        self.status = status


def format_error_message(error: DynMetricsError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
