"""Root test configuration."""

import copy
import logging

import pytest
import structlog
from prometheus_client import CollectorRegistry


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeDashboardBackend:
    """In-memory stand-in for the Grafana dashboard API."""

    def __init__(self, dashboards=None, status="success"):
        self.dashboards = {uid: copy.deepcopy(board) for uid, board in (dashboards or {}).items()}
        self.status = status
        self.fetches = []
        self.upserts = []

    def get_dashboard(self, uid):
        self.fetches.append(uid)
        board = self.dashboards.get(uid)
        return copy.deepcopy(board) if board is not None else None

    def upsert_dashboard(self, dashboard, *, overwrite=False, message=None):
        self.upserts.append({"dashboard": copy.deepcopy(dashboard), "overwrite": overwrite})
        if self.status == "success":
            self.dashboards[dashboard["uid"]] = copy.deepcopy(dashboard)
        return {"status": self.status}

    @property
    def last_panels(self):
        return self.upserts[-1]["dashboard"]["panels"]


@pytest.fixture
def collector_registry():
    """Isolated prometheus_client registry per test."""
    return CollectorRegistry()


@pytest.fixture
def fake_backend():
    return FakeDashboardBackend()


@pytest.fixture
def make_backend():
    """Factory for backends pre-loaded with dashboards or a failing status."""
    return FakeDashboardBackend
