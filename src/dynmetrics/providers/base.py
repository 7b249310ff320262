from __future__ import annotations

from typing import Any, Protocol


class DashboardBackend(Protocol):
    """Contract the provisioning service needs from a dashboard API."""

    def get_dashboard(self, uid: str) -> dict[str, Any] | None:
        """Return the dashboard JSON, or ``None`` when it does not exist."""
        ...

    def upsert_dashboard(
        self,
        dashboard: dict[str, Any],
        *,
        overwrite: bool = False,
        message: str | None = None,
    ) -> dict[str, Any]:
        ...
