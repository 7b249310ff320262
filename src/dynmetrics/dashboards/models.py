"""Grafana dashboard data models.

Typed models for the parts of the Grafana dashboard JSON that provisioning
writes. Boards fetched from Grafana stay plain dicts so that fields we do not
model survive the round trip untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PANEL_WIDTH = 24
PANEL_HEIGHT = 7


@dataclass
class Target:
    """Prometheus query target for a panel."""

    expr: str  # PromQL expression
    legend_format: str = ""
    ref_id: str = "A"
    interval: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Grafana JSON format."""
        return {
            "expr": self.expr,
            "legendFormat": self.legend_format,
            "refId": self.ref_id,
            "interval": self.interval,
        }


@dataclass
class GridPos:
    x: int = 0
    y: int = 0
    w: int = PANEL_WIDTH
    h: int = PANEL_HEIGHT

    def to_dict(self) -> Dict[str, int]:
        return {"h": self.h, "w": self.w, "x": self.x, "y": self.y}


@dataclass
class GraphPanel:
    """Legacy Grafana ``graph`` panel rendered as bars.

    Left Y axis uses ``unit`` starting at zero, the right axis is ``short``.
    The tooltip is shared, the legend shows min/max/avg, and null points are
    left as gaps.
    """

    title: str
    targets: List[Target]
    unit: str = "short"
    datasource: Optional[str] = None
    grid_pos: GridPos = field(default_factory=GridPos)
    id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Grafana JSON format."""
        return {
            "id": self.id,
            "type": "graph",
            "title": self.title,
            "datasource": self.datasource,
            "gridPos": self.grid_pos.to_dict(),
            "targets": [t.to_dict() for t in self.targets],
            "renderer": "flot",
            "bars": True,
            "lines": False,
            "points": False,
            "fill": 1,
            "linewidth": 1,
            "dashes": False,
            "dashLength": 10,
            "spaceLength": 10,
            "nullPointMode": "null",
            "aliasColors": {},
            "tooltip": {"shared": True, "sort": 0, "value_type": "individual"},
            "legend": {
                "show": True,
                "values": True,
                "min": True,
                "max": True,
                "avg": True,
                "current": False,
                "total": False,
            },
            "xaxis": {"show": True, "mode": "time", "format": "time", "logBase": 1},
            "yaxes": [
                {"format": self.unit, "min": 0, "show": True, "logBase": 1},
                {"format": "short", "show": True, "logBase": 1},
            ],
        }


@dataclass
class Dashboard:
    """Empty dashboard used when the requested board does not exist yet."""

    title: str
    uid: str
    time_from: str = "now-24h"
    time_to: str = "now"
    timezone: str = "browser"
    editable: bool = True
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Grafana JSON format."""
        return {
            "id": None,
            "uid": self.uid,
            "slug": self.uid,
            "title": self.title,
            "tags": self.tags,
            "timezone": self.timezone,
            "editable": self.editable,
            "time": {"from": self.time_from, "to": self.time_to},
            "panels": [],
            "annotations": {"list": []},
            "schemaVersion": 16,
            "version": 0,
        }
