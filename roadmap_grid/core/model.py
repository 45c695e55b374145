from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TaskNode:
    id: str
    title: str
    requires: list[str]

    owner: Optional[str] = None
    closed: bool = False


@dataclass(frozen=True)
class TaskGraph:
    schema_version: str
    nodes_by_id: dict[str, TaskNode]
    edges: list[tuple[str, str]]  # (node_id, required_id)
    root_id: Optional[str] = None
    users: dict[str, str] = field(default_factory=dict)


@dataclass
class AnnotatedNode:
    """A TaskNode plus the per-run values the allocator orders by.

    depth/children/active stay None for nodes the annotator never reached.
    """

    id: str
    title: str
    requires: list[str]
    owner: Optional[str] = None
    closed: bool = False

    required_by: list[str] = field(default_factory=list)
    depth: Optional[int] = None
    children: Optional[int] = None
    active: Optional[bool] = None

    @classmethod
    def from_node(cls, node: TaskNode) -> AnnotatedNode:
        return cls(
            id=node.id,
            title=node.title,
            requires=list(node.requires),
            owner=node.owner,
            closed=node.closed,
        )

    @property
    def annotated(self) -> bool:
        return self.depth is not None

    @property
    def priority(self) -> tuple[int, int, int]:
        return (self.depth or 0, self.children or 0, 1 if self.active else 0)


@dataclass
class Allocation:
    node: AnnotatedNode
    x: int
    y: int

    @property
    def cell(self) -> tuple[int, int]:
        return (self.x, self.y)
