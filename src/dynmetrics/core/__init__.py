"""Core building blocks shared across dynmetrics."""

from dynmetrics.core.errors import (
    DynMetricsError,
    InvalidObservationError,
    MetricRegistrationError,
    NotConfiguredError,
    ProvisioningError,
    SchemaMismatchError,
    TransportError,
    UpsertStatusError,
    format_error_message,
)

__all__ = [
    "DynMetricsError",
    "InvalidObservationError",
    "MetricRegistrationError",
    "NotConfiguredError",
    "ProvisioningError",
    "SchemaMismatchError",
    "TransportError",
    "UpsertStatusError",
    "format_error_message",
]
