from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class Collector(Protocol):
    """Observation API shared by the metric registry and its no-op stand-in."""

    def observe_timer(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        ...

    def observe_histogram(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        ...

    def observe_counter(
        self, name: str, delta: float = 1, labels: Mapping[str, str] | None = None
    ) -> None:
        ...

    def observe_gauge(
        self, name: str, value: float, labels: Mapping[str, str] | None = None
    ) -> None:
        ...


class NullCollector:
    """Collector that records nothing; for disabled metrics and tests."""

    def observe_timer(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        return None

    def observe_histogram(
        self, name: str, start_time: float, labels: Mapping[str, str] | None = None
    ) -> None:
        return None

    def observe_counter(
        self, name: str, delta: float = 1, labels: Mapping[str, str] | None = None
    ) -> None:
        return None

    def observe_gauge(
        self, name: str, value: float, labels: Mapping[str, str] | None = None
    ) -> None:
        return None
