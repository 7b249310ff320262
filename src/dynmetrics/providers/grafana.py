from __future__ import annotations

import re
from typing import Any

import httpx
import structlog

from dynmetrics.core.errors import TransportError, UpsertStatusError

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "dynmetrics-grafana/0.1.0"

_DASHBOARD_NOT_FOUND = re.compile("Dashboard not found")


class GrafanaClient:
    """Minimal Grafana HTTP API client used for dashboard provisioning."""

    def __init__(
        self,
        url: str,
        token: str | None,
        *,
        timeout: float = 30.0,
        org_id: int | None = None,
        verify: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._org_id = org_id
        self._verify = verify
        self._user_agent = user_agent
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_dashboard(self, uid: str) -> dict[str, Any] | None:
        """Return the dashboard JSON for ``uid`` or ``None`` if it does not exist.

        Raises:
            TransportError: Grafana is unreachable or answered with any error
                other than "not found".
        """
        response = self._request("GET", f"/api/dashboards/uid/{uid}")
        if response.status_code == 404 or (
            response.is_error and _DASHBOARD_NOT_FOUND.search(response.text or "")
        ):
            return None
        self._raise_for_status(response)
        data = self._json(response)
        dashboard = data.get("dashboard")
        if not isinstance(dashboard, dict):
            raise TransportError(
                "dashboard payload missing from Grafana response",
                details={"uid": uid},
                status_code=response.status_code,
            )
        return dashboard

    def upsert_dashboard(
        self,
        dashboard: dict[str, Any],
        *,
        overwrite: bool = False,
        message: str | None = None,
    ) -> dict[str, Any]:
        """Create or update ``dashboard``; returns Grafana's status payload.

        Grafana reports conflicts (412 ``version-mismatch``, ``name-exists``)
        with a JSON body carrying a ``status`` field; those surface as
        ``UpsertStatusError``. Anything else non-2xx is a ``TransportError``.
        """
        payload: dict[str, Any] = {"dashboard": dashboard, "overwrite": overwrite}
        if message:
            payload["message"] = message

        response = self._request("POST", "/api/dashboards/db", json=payload)
        if response.is_error:
            body = self._json(response, strict=False)
            if body.get("status"):
                raise UpsertStatusError(
                    body["status"],
                    details={
                        "uid": dashboard.get("uid"),
                        "status_code": response.status_code,
                        "grafana_message": body.get("message"),
                    },
                )
            self._raise_for_status(response)
        return self._json(response)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        headers = kwargs.pop("headers", {}) or {}
        if self._token:
            headers.setdefault("Authorization", f"Bearer {self._token}")
        if self._org_id is not None:
            headers.setdefault("X-Grafana-Org-Id", str(self._org_id))
        headers.setdefault("Content-Type", "application/json")
        headers.setdefault("Accept", "application/json")
        headers.setdefault("User-Agent", self._user_agent)

        try:
            with httpx.Client(
                timeout=self._timeout,
                verify=self._verify,
                transport=self._transport,
            ) as client:
                return client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("grafana_request_failed", method=method, url=url, error=str(exc))
            raise TransportError(str(exc), details={"method": method, "url": url}) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                str(exc),
                details={"url": str(response.request.url)},
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _json(response: httpx.Response, *, strict: bool = True) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            if not strict:
                return {}
            raise TransportError(
                "invalid JSON in Grafana response",
                details={"url": str(response.request.url)},
                status_code=response.status_code,
            ) from exc
        return data if isinstance(data, dict) else {}


__all__ = ["DEFAULT_USER_AGENT", "GrafanaClient"]
