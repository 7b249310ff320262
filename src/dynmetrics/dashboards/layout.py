"""Placement of new panels on an existing board.

Panels are stacked in a single full-width column: a new panel goes below the
lowest existing one. This stays collision free as long as panels are only
appended and the board is re-read before every placement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping


@dataclass(frozen=True)
class PanelPlacement:
    x: int
    y: int
    panel_id: int


def iter_panels(panels: Iterable[Mapping[str, Any]]) -> Iterator[Mapping[str, Any]]:
    """Yield panels depth first, including those nested in collapsed rows."""
    for panel in panels:
        yield panel
        yield from iter_panels(panel.get("panels") or ())


def next_panel_placement(panels: Iterable[Mapping[str, Any]]) -> PanelPlacement:
    """Compute the grid position and id of a panel appended to ``panels``."""
    panels = list(panels)

    top = 0
    for panel in panels:
        grid = panel.get("gridPos") or {}
        top = max(top, int(grid.get("y") or 0) + int(grid.get("h") or 0))

    max_id = max((int(p.get("id") or 0) for p in iter_panels(panels)), default=0)
    return PanelPlacement(x=0, y=top, panel_id=max_id + 1)
