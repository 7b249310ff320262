"""Tests for core/errors.py."""

from dynmetrics.core.errors import (
    DynMetricsError,
    NotConfiguredError,
    ProvisioningError,
    SchemaMismatchError,
    TransportError,
    UpsertStatusError,
    format_error_message,
)
from dynmetrics.models import MetricKind


def test_hierarchy():
    assert issubclass(SchemaMismatchError, DynMetricsError)
    for cls in (NotConfiguredError, TransportError, UpsertStatusError):
        assert issubclass(cls, ProvisioningError)


def test_schema_mismatch_message_and_details():
    err = SchemaMismatchError("orders_total", MetricKind.COUNTER, ("status",), ("region", "status"))

    assert "current labels: ['status']" in err.message
    assert "requested labels: ['region', 'status']" in err.message
    assert err.details["kind"] == "counter"
    assert err.details["requested_schema"] == ["region", "status"]


def test_upsert_status_error_keeps_status():
    err = UpsertStatusError("version-mismatch", details={"dashboard": "Shop"})

    assert err.status == "version-mismatch"
    assert format_error_message(err) == "status is not success: version-mismatch (dashboard=Shop)"


def test_transport_error_status_code():
    err = TransportError("boom", status_code=503)

    assert err.status_code == 503
    assert err.details == {}
    assert format_error_message(err) == "boom"
