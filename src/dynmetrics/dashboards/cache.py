from __future__ import annotations

import threading


class ProvisioningCache:
    """Per-process record of graphs known to exist on each dashboard.

    Entries are never evicted. Losing them on restart only costs one extra
    fetch per (dashboard, metric) pair.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._graphs: dict[str, set[str]] = {}

    def contains(self, dashboard: str, full_metric_name: str) -> bool:
        with self._lock:
            return full_metric_name in self._graphs.get(dashboard, ())

    def add(self, dashboard: str, full_metric_name: str) -> None:
        with self._lock:
            self._graphs.setdefault(dashboard, set()).add(full_metric_name)

    def snapshot(self) -> dict[str, frozenset[str]]:
        with self._lock:
            return {dashboard: frozenset(names) for dashboard, names in self._graphs.items()}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(names) for names in self._graphs.values())
