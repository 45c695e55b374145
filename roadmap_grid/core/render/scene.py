"""Pixel-space description of a laid-out roadmap.

Nothing here draws; it converts grid allocations into the boxes and
connector polylines a canvas/SVG/HTML front end needs.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from roadmap_grid.core.layout.layout_config import DEFAULT_SETTINGS, LayoutSettings
from roadmap_grid.core.model import Allocation, AnnotatedNode

LinkStyle = Literal["pink", "white", "grey"]

Point = tuple[float, float]


def pixel_position(
    x: int, y: int, columns: int, width: int, settings: LayoutSettings = DEFAULT_SETTINGS
) -> Point:
    """Top-left anchor of the box for grid cell (x, y); the grid is centered in ``width``."""
    origin_x = (width - settings.column_size * columns) / 2
    return (
        origin_x + (x + 0.5) * settings.column_size,
        float(settings.top_offset + settings.row_size * y),
    )


def canvas_size(
    allocations: list[Allocation],
    width: int,
    height: int,
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> tuple[int, int]:
    w = max(width, settings.min_width)
    if not allocations:
        return w, max(height, settings.min_height)
    last_row = max(a.y for a in allocations)
    return w, max(last_row * settings.row_size + settings.bottom_margin, height)


def link_style(node: AnnotatedNode, dependency: AnnotatedNode) -> LinkStyle:
    if dependency.active:
        return "pink"
    if node.active and dependency.owner:
        return "white"
    return "grey"


def link_path(start: Point, end: Point) -> list[Point]:
    """Angular connector: vertical, diagonal across the middle half, vertical."""
    if start[1] < end[1]:
        start, end = end, start
    (x0, y0), (x1, y1) = start, end
    return [
        (x0, y0),
        (x0, y0 + (y1 - y0) / 4),
        (x1, y0 + 3 * (y1 - y0) / 4),
        (x1, y1),
    ]


def build_scene(
    allocations: list[Allocation],
    *,
    root_id: str,
    columns: int,
    width: int,
    height: int = 0,
    settings: LayoutSettings = DEFAULT_SETTINGS,
    users: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    users = users or {}
    canvas_w, canvas_h = canvas_size(allocations, width, height, settings)

    by_id: dict[str, Allocation] = {}
    boxes: list[dict[str, Any]] = []
    for a in allocations:
        by_id[a.node.id] = a
        left, top = pixel_position(a.x, a.y, columns, canvas_w, settings)
        is_root = a.node.id == root_id
        boxes.append(
            {
                "id": a.node.id,
                "title": None if is_root else a.node.title,
                "x": a.x,
                "y": a.y,
                "left": left,
                "top": top,
                "active": bool(a.node.active),
                "assigned": bool(a.node.owner),
                "avatar": users.get(a.node.owner) if a.node.owner else None,
                "visible": not is_root,
            }
        )

    links: list[dict[str, Any]] = []
    for a in allocations:
        for dep_id in a.node.requires:
            dep = by_id.get(dep_id)
            if dep is None:
                continue
            start = _center(a, columns, canvas_w, settings)
            end = _center(dep, columns, canvas_w, settings)
            links.append(
                {
                    "from": a.node.id,
                    "to": dep_id,
                    "style": link_style(a.node, dep.node),
                    "points": [list(p) for p in link_path(start, end)],
                }
            )

    return {
        "width": canvas_w,
        "height": canvas_h,
        "columns": columns,
        "boxes": boxes,
        "links": links,
    }


def _center(a: Allocation, columns: int, width: int, settings: LayoutSettings) -> Point:
    left, top = pixel_position(a.x, a.y, columns, width, settings)
    half = settings.node_size / 2
    return left + half, top + half
