"""Separation of directive labels from data labels."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


class DirectiveLabel(str, Enum):
    """Reserved label keys that drive dashboard provisioning."""

    GRAPH_TITLE = "grafana_graph_title"
    DASHBOARD_TITLE = "grafana_dashboard_title"
    DATASOURCE = "grafana_datasource"


DIRECTIVE_LABEL_NAMES = frozenset(label.value for label in DirectiveLabel)


@dataclass(frozen=True)
class Directives:
    """Provisioning instructions carried by directive labels."""

    graph_title: str | None = None
    dashboard: str | None = None
    datasource: str | None = None

    @classmethod
    def from_labels(cls, directive_labels: Mapping[str, str]) -> "Directives":
        return cls(
            graph_title=directive_labels.get(DirectiveLabel.GRAPH_TITLE.value),
            dashboard=directive_labels.get(DirectiveLabel.DASHBOARD_TITLE.value),
            datasource=directive_labels.get(DirectiveLabel.DATASOURCE.value),
        )

    @property
    def wants_graph(self) -> bool:
        return self.graph_title is not None


def partition_labels(
    labels: Mapping[str, str] | None,
) -> tuple[dict[str, str], dict[str, str]]:
    """Split ``labels`` into ``(data_labels, directive_labels)``.

    The input mapping is never modified. ``None`` is treated as empty.
    """
    data: dict[str, str] = {}
    directives: dict[str, str] = {}
    for key, value in (labels or {}).items():
        if key in DIRECTIVE_LABEL_NAMES:
            directives[key] = value
        else:
            data[key] = value
    return data, directives


def label_schema(data_labels: Mapping[str, str]) -> tuple[str, ...]:
    """Return the sorted label-name tuple used as a metric schema."""
    return tuple(sorted(data_labels))
