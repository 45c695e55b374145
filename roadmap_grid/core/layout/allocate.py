from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from roadmap_grid.core.errors import InvalidColumnsError, LayoutError, UnresolvableAnchorError
from roadmap_grid.core.layout.annotate import annotate
from roadmap_grid.core.layout.layout_config import normalize_columns
from roadmap_grid.core.model import Allocation, AnnotatedNode, TaskNode

logger = logging.getLogger(__name__)

# Pull of a dependent vs. a dependency when re-centering an anchor.
REQUIRED_BY_WEIGHT = 0.3
REQUIRES_WEIGHT = 1.0


@dataclass
class _Probe:
    """Search position for one anchor during the ring search."""

    anchor: Allocation
    x: int
    y: int
    reset: int
    initial_x: int


class GridAllocator:
    """Places annotated nodes on a grid ``columns`` wide, one node at a time.

    Allocations live in ``allocations`` in placement order; ``_cells`` and
    ``_by_id`` index the same objects by position and by node id.
    """

    def __init__(self, columns: int) -> None:
        if columns < 1:
            raise InvalidColumnsError.build(
                f"columns must be at least 1, got {columns}", path="columns"
            )
        self.columns = normalize_columns(columns)
        self.allocations: list[Allocation] = []
        self._cells: dict[tuple[int, int], Allocation] = {}
        self._by_id: dict[str, Allocation] = {}
        self._order: dict[str, int] = {}

    def is_free(self, x: int, y: int) -> bool:
        return (x, y) not in self._cells

    def get(self, node_id: str) -> Optional[Allocation]:
        return self._by_id.get(node_id)

    def place(self, node: AnnotatedNode, x: int, y: int) -> Allocation:
        allocation = Allocation(node=node, x=x, y=y)
        self.allocations.append(allocation)
        self._cells[allocation.cell] = allocation
        self._by_id[node.id] = allocation
        self._order[node.id] = len(self._order)
        return allocation

    def anchors_for(self, node: AnnotatedNode) -> list[Allocation]:
        """Placed dependents of ``node``, earliest placement first."""
        placed = [self._by_id[dep_id] for dep_id in node.required_by if dep_id in self._by_id]
        return sorted(placed, key=lambda a: self._order[a.node.id])

    def move(self, allocation: Allocation, x: int) -> None:
        del self._cells[allocation.cell]
        allocation.x = x
        self._cells[allocation.cell] = allocation

    def run(self, annotated: dict[str, AnnotatedNode], root_id: str) -> list[Allocation]:
        root = annotated.get(root_id)
        if root is None or not root.annotated:
            logger.warning("root task %s is not annotated, nothing to lay out", root_id)
            return []

        queue = order_queue(n for n in annotated.values() if n.annotated and n.id != root_id)
        self.place(root, self.columns // 2, 0)

        while queue:
            node = queue.pop(0)
            anchors = self.anchors_for(node)
            if not anchors:
                raise UnresolvableAnchorError.build(
                    f"no placed task requires {node.id}; cannot anchor it",
                    path=f"{node.id}.required_by",
                )

            probe = self.ring_search(anchors)
            placed = self.place(node, probe.x, probe.y)
            logger.debug(
                "placed %s at (%d, %d) under %s", node.id, placed.x, placed.y, probe.anchor.node.id
            )

            if probe.anchor.node.id != root_id:
                self.recenter(probe.anchor)

            queue = prioritize(queue, node)

        return self.allocations

    def ring_search(self, anchors: list[Allocation]) -> _Probe:
        """Walk outward from the row under each anchor until a free cell turns up.

        Offsets alternate right/left with growing distance. A probe that
        leaves the grid drops a row and restarts next to its anchor's column.
        """
        probes = [
            _Probe(anchor=a, x=a.x, y=a.y + 1, reset=0, initial_x=a.x) for a in anchors
        ]
        distance = 0
        while True:
            for probe in probes:
                if self.is_free(probe.x, probe.y):
                    return probe

            distance += 1
            for probe in probes:
                d = distance - probe.reset
                x = probe.x + (d if d % 2 else -d)
                if x < 0 or x >= self.columns:
                    probe.reset = distance - 1
                    probe.y += 1
                    x = probe.initial_x + 1
                    if x >= self.columns:
                        probe.reset += 1
                        x -= 2
                    x = min(max(x, 0), self.columns - 1)
                probe.x = x

    def recenter(self, anchor: Allocation) -> None:
        """Slide ``anchor`` along its row to shorten links to placed neighbours."""
        links = [(dep_id, REQUIRED_BY_WEIGHT) for dep_id in anchor.node.required_by] + [
            (req_id, REQUIRES_WEIGHT) for req_id in anchor.node.requires
        ]
        neighbours: list[tuple[int, float]] = []
        for node_id, weight in links:
            other = self.get(node_id)
            if other is not None:
                neighbours.append((other.x, weight))

        candidates = [x for x in range(self.columns) if self.is_free(x, anchor.y)]
        candidates.append(anchor.x)

        best = min(
            candidates,
            key=lambda c: sum(abs(nx - c) * weight for nx, weight in neighbours),
        )
        if best != anchor.x:
            logger.debug("re-centered %s from column %d to %d", anchor.node.id, anchor.x, best)
            self.move(anchor, best)


def order_queue(nodes: Iterable[AnnotatedNode]) -> list[AnnotatedNode]:
    """Deepest, heaviest, active-first; equal priorities keep their input order."""
    return sorted(nodes, key=lambda n: n.priority, reverse=True)


def prioritize(queue: list[AnnotatedNode], placed: AnnotatedNode) -> list[AnnotatedNode]:
    """Move the direct requirements of ``placed`` to the front, keeping relative order."""
    first = [n for n in queue if n.id in placed.requires]
    rest = [n for n in queue if n.id not in placed.requires]
    return first + rest


def allocate(
    annotated: dict[str, AnnotatedNode], root_id: str, columns: int
) -> list[Allocation]:
    """Assign each annotated node a unique (column, row) cell.

    The root sits at the center of row 0. Raises UnresolvableAnchorError when a
    node comes up with no placed dependent, and InvalidColumnsError for
    ``columns < 1``. Returns [] when the root is missing from ``annotated``.
    """
    return GridAllocator(columns).run(annotated, root_id)


def layout_tasks(
    nodes: Iterable[TaskNode], root_id: str, columns: int
) -> tuple[list[Allocation], list[LayoutError]]:
    """Annotate and allocate in one go.

    Returns (allocations, errors). Allocations are empty when errors exist.
    """
    try:
        annotated = annotate(nodes, root_id)
        return allocate(annotated, root_id, columns), []
    except LayoutError as e:
        logger.debug("layout from %s failed: %s", root_id, e)
        return [], [e]
