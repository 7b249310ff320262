import json

import httpx
import pytest
import respx
from httpx import Response

from dynmetrics.core.errors import TransportError, UpsertStatusError
from dynmetrics.dashboards.service import (
    DashboardProvisioningService,
    ProvisioningOutcome,
    dashboard_uid,
)
from dynmetrics.labels import Directives
from dynmetrics.models import DashboardConfig, MetricKind
from dynmetrics.providers.grafana import DEFAULT_USER_AGENT, GrafanaClient

BASE = "https://grafana.example.com"


@pytest.fixture
def client():
    return GrafanaClient(BASE, "token", org_id=2)


def test_get_dashboard_returns_board(client):
    with respx.mock:
        route = respx.get(f"{BASE}/api/dashboards/uid/abc").mock(
            return_value=Response(200, json={"dashboard": {"uid": "abc", "panels": []}, "meta": {}})
        )

        board = client.get_dashboard("abc")

        assert board == {"uid": "abc", "panels": []}
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["X-Grafana-Org-Id"] == "2"
        assert request.headers["User-Agent"] == DEFAULT_USER_AGENT


def test_get_dashboard_not_found_returns_none(client):
    with respx.mock:
        respx.get(f"{BASE}/api/dashboards/uid/abc").mock(
            return_value=Response(404, json={"message": "Dashboard not found"})
        )

        assert client.get_dashboard("abc") is None


def test_get_dashboard_server_error_raises(client):
    with respx.mock:
        respx.get(f"{BASE}/api/dashboards/uid/abc").mock(return_value=Response(500, text="boom"))

        with pytest.raises(TransportError) as exc_info:
            client.get_dashboard("abc")

        assert exc_info.value.status_code == 500


def test_get_dashboard_network_error_raises(client):
    with respx.mock:
        respx.get(f"{BASE}/api/dashboards/uid/abc").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(TransportError):
            client.get_dashboard("abc")


def test_upsert_dashboard_posts_without_overwrite(client):
    with respx.mock:
        route = respx.post(f"{BASE}/api/dashboards/db").mock(
            return_value=Response(200, json={"status": "success", "uid": "abc", "version": 1})
        )

        result = client.upsert_dashboard({"uid": "abc", "panels": []})

        assert result["status"] == "success"
        payload = json.loads(route.calls.last.request.content)
        assert payload == {"dashboard": {"uid": "abc", "panels": []}, "overwrite": False}


def test_upsert_conflict_raises_status_error(client):
    with respx.mock:
        respx.post(f"{BASE}/api/dashboards/db").mock(
            return_value=Response(
                412,
                json={"status": "version-mismatch", "message": "The dashboard has been changed"},
            )
        )

        with pytest.raises(UpsertStatusError) as exc_info:
            client.upsert_dashboard({"uid": "abc", "panels": []})

        assert exc_info.value.status == "version-mismatch"


def test_upsert_error_without_status_is_transport_error(client):
    with respx.mock:
        respx.post(f"{BASE}/api/dashboards/db").mock(return_value=Response(502, text="bad gateway"))

        with pytest.raises(TransportError) as exc_info:
            client.upsert_dashboard({"uid": "abc", "panels": []})

        assert exc_info.value.status_code == 502


def test_service_end_to_end_over_http():
    service = DashboardProvisioningService.from_config(
        DashboardConfig(
            api_url=BASE,
            auth_key="token",
            default_dashboard="Shop",
            default_datasource="prometheus",
        )
    )
    uid = dashboard_uid("Shop")

    with respx.mock:
        get_route = respx.get(f"{BASE}/api/dashboards/uid/{uid}").mock(
            return_value=Response(404, json={"message": "Dashboard not found"})
        )
        post_route = respx.post(f"{BASE}/api/dashboards/db").mock(
            return_value=Response(200, json={"status": "success"})
        )

        directives = Directives(graph_title="Req Time")
        outcome = service.ensure_graph(
            MetricKind.TIMER, "req_time", directives, namespace="shop", subsystem="api"
        )
        again = service.ensure_graph(
            MetricKind.TIMER, "req_time", directives, namespace="shop", subsystem="api"
        )

        assert outcome is ProvisioningOutcome.CREATED
        assert again is ProvisioningOutcome.CACHED
        assert get_route.call_count == 1
        assert post_route.call_count == 1

        payload = json.loads(post_route.calls.last.request.content)
        assert payload["overwrite"] is False
        assert payload["dashboard"]["uid"] == uid
        panel = payload["dashboard"]["panels"][0]
        assert panel["targets"][0]["expr"] == "max by(quantile)(shop_api_req_time)"


def test_service_fetch_failure_is_transport_error():
    service = DashboardProvisioningService(GrafanaClient(BASE, None), default_dashboard="Shop")

    with respx.mock:
        respx.get(f"{BASE}/api/dashboards/uid/{dashboard_uid('Shop')}").mock(
            return_value=Response(403, json={"message": "Permission denied"})
        )

        with pytest.raises(TransportError):
            service.ensure_graph(
                MetricKind.COUNTER,
                "orders_total",
                Directives(graph_title="Orders"),
                namespace="shop",
                subsystem="api",
            )

    assert len(service.cache) == 0
