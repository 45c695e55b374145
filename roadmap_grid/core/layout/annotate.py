from __future__ import annotations

import logging
from typing import Iterable

from roadmap_grid.core.errors import CyclicDependencyError, MissingRootError
from roadmap_grid.core.model import AnnotatedNode, TaskNode

logger = logging.getLogger(__name__)

UNVISITED, IN_PROGRESS, DONE = 0, 1, 2


def annotate(nodes: Iterable[TaskNode], root_id: str) -> dict[str, AnnotatedNode]:
    """Build the annotated node index for one layout run.

    Every node gets ``required_by``; only the root and the nodes it reaches
    through ``requires`` get depth/children/active.
    """
    index: dict[str, AnnotatedNode] = {}
    ordered: list[TaskNode] = []
    for node in nodes:
        if node.id in index:
            continue
        index[node.id] = AnnotatedNode.from_node(node)
        ordered.append(node)

    link_required_by(ordered, index)

    if root_id not in index:
        raise MissingRootError.build(f"root task {root_id} is not in the task set", path="root_id")

    annotate_from(index[root_id], index)
    logger.debug(
        "annotated %d of %d tasks from root %s",
        sum(1 for n in index.values() if n.annotated),
        len(index),
        root_id,
    )
    return index


def link_required_by(nodes: Iterable[TaskNode], index: dict[str, AnnotatedNode]) -> None:
    for node in nodes:
        for dep_id in node.requires:
            target = index.get(dep_id)
            if target is not None and node.id not in target.required_by:
                target.required_by.append(node.id)


def annotate_from(root: AnnotatedNode, index: dict[str, AnnotatedNode]) -> None:
    """Fill depth/children/active for ``root`` and everything it requires.

    Nodes annotated by an earlier call are left untouched.
    """
    state: dict[str, int] = {}
    stack: list[AnnotatedNode] = [root]
    path: list[str] = []

    while stack:
        current = stack[-1]
        if current.annotated:
            stack.pop()
            continue

        required = _resolved(current, index)
        if state.get(current.id, UNVISITED) == UNVISITED:
            state[current.id] = IN_PROGRESS
            path.append(current.id)
            pending = [n for n in required if not n.annotated]
            for dep in reversed(pending):
                if state.get(dep.id) == IN_PROGRESS:
                    cycle = path[path.index(dep.id):] + [dep.id]
                    raise CyclicDependencyError.build(
                        "dependency cycle detected: " + " -> ".join(cycle),
                        path=f"{current.id}.requires",
                    )
                stack.append(dep)
            if pending:
                continue

        _fill(current, required)
        stack.pop()
        state[current.id] = DONE
        path.pop()


def _resolved(node: AnnotatedNode, index: dict[str, AnnotatedNode]) -> list[AnnotatedNode]:
    return [index[dep_id] for dep_id in node.requires if dep_id in index]


def _fill(node: AnnotatedNode, required: list[AnnotatedNode]) -> None:
    if not required:
        node.depth = 0
        node.children = 0
        node.active = node.closed
        return

    node.depth = max(n.depth or 0 for n in required) + 1
    # Shared descendants are counted once per path; only used to break ties.
    node.children = sum((n.children or 0 for n in required), len(required))
    node.active = any(n.active for n in required)


def reachable_ids(annotated: dict[str, AnnotatedNode]) -> list[str]:
    return [node_id for node_id, node in annotated.items() if node.annotated]
