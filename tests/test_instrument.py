"""Tests for instrument.py timing decorator."""

import pytest

from dynmetrics.core.errors import SchemaMismatchError
from dynmetrics.instrument import metric_name_for, timed
from dynmetrics.models import MetricKind
from dynmetrics.registry import MetricRegistry


class RecordingCollector:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def observe_timer(self, name, start_time, labels=None):
        self.calls.append((name, start_time, dict(labels or {})))
        if self.error:
            raise self.error


@pytest.mark.parametrize(
    "method, expected",
    [
        ("GetUserProfile", "get_user_profile"),
        ("get_user", "get_user"),
        ("HTTPServerStart", "http_server_start"),
        ("List.Items-v2", "list_items_v2"),
    ],
)
def test_metric_name_for(method, expected):
    assert metric_name_for(method) == expected


def test_successful_call_records_no_error():
    collector = RecordingCollector()

    @timed(collector)
    def GetOrder(order_id):
        return {"id": order_id}

    assert GetOrder(7) == {"id": 7}

    ((name, start, labels),) = collector.calls
    assert name == "get_order"
    assert start > 0
    assert labels == {"has_error": "false"}


def test_failing_call_records_error_and_reraises():
    collector = RecordingCollector()

    @timed(collector, name="checkout", labels={"grafana_graph_title": "Checkout"})
    def checkout():
        raise RuntimeError("payment declined")

    with pytest.raises(RuntimeError):
        checkout()

    ((name, _, labels),) = collector.calls
    assert name == "checkout"
    assert labels == {"grafana_graph_title": "Checkout", "has_error": "true"}


def test_observation_failure_does_not_break_call():
    collector = RecordingCollector(error=SchemaMismatchError("checkout", "timer", ("a",), ("b",)))

    @timed(collector)
    def checkout():
        return "ok"

    assert checkout() == "ok"
    assert len(collector.calls) == 1


def test_wraps_preserves_metadata():
    @timed(RecordingCollector())
    def documented():
        """Docstring."""

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Docstring."


@pytest.mark.asyncio
async def test_async_function_is_timed():
    collector = RecordingCollector()

    @timed(collector)
    async def FetchRates():
        return [1, 2]

    assert await FetchRates() == [1, 2]
    assert collector.calls[0][0] == "fetch_rates"
    assert collector.calls[0][2] == {"has_error": "false"}


@pytest.mark.asyncio
async def test_async_failure_is_recorded():
    collector = RecordingCollector()

    @timed(collector)
    async def fetch():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        await fetch()

    assert collector.calls[0][2] == {"has_error": "true"}


def test_decorator_feeds_registry(collector_registry):
    registry = MetricRegistry("pod-1", "shop", "api", registry=collector_registry)

    @timed(registry)
    def handle():
        return None

    handle()
    handle()

    assert registry.definition(MetricKind.TIMER, "handle").label_schema == ("has_error",)
    assert collector_registry.get_sample_value(
        "shop_api_handle_count", {"podname": "pod-1", "has_error": "false"}
    ) == 2
