from __future__ import annotations

from typing import Any, Iterable, Optional, cast

from roadmap_grid.core.errors import TaskValidationError
from roadmap_grid.core.model import TaskGraph, TaskNode


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def validate_tasks(doc: dict[str, Any]) -> tuple[Optional[TaskGraph], list[TaskValidationError]]:
    """Validate a loaded task document.

    Returns (graph, errors). Graph is None when errors exist. Requirements that
    point at ids outside the document are allowed; the layout ignores them.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[TaskValidationError] = []

    def _err(code: str, message: str, path: str) -> None:
        errors.append(TaskValidationError(code=code, message=message, file=file, path=path))

    schema_version = doc.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        _err(
            "E_REQUIRED_FIELD",
            "schema_version is required and must be a non-empty string",
            "schema_version",
        )

    tasks = doc.get("tasks")
    if not isinstance(tasks, list):
        _err("E_REQUIRED_FIELD", "tasks is required and must be an array", "tasks")
        return None, _sorted(errors)

    nodes_by_id: dict[str, TaskNode] = {}

    for i, raw in enumerate(tasks):
        task_path = f"tasks[{i}]"
        if not isinstance(raw, dict):
            _err("E_INVALID_TYPE", "task must be an object", task_path)
            continue

        tid = raw.get("id")
        if not isinstance(tid, str) or not tid.strip():
            _err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{task_path}.id")
            continue

        if tid in nodes_by_id:
            _err("E_DUPLICATE_ID", f"duplicate task id: {tid}", f"{task_path}.id")
            continue

        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            _err(
                "E_REQUIRED_FIELD",
                "title is required and must be a non-empty string",
                f"{task_path}.title",
            )
            continue

        requires = raw.get("requires", [])
        if requires is None:
            requires = []
        if not _is_list_of_str(requires):
            _err("E_INVALID_TYPE", "requires must be an array of strings", f"{task_path}.requires")
            continue

        owner = raw.get("owner")
        if owner is not None and not isinstance(owner, str):
            _err("E_INVALID_TYPE", "owner must be a string", f"{task_path}.owner")
            continue

        closed = raw.get("closed", False)
        if not isinstance(closed, bool):
            _err("E_INVALID_TYPE", "closed must be a boolean", f"{task_path}.closed")
            continue

        nodes_by_id[tid] = TaskNode(
            id=tid,
            title=title,
            requires=cast(list[str], requires),
            owner=cast(Optional[str], owner),
            closed=closed,
        )

    root_id = doc.get("root_id")
    if root_id is not None:
        if not isinstance(root_id, str):
            _err("E_INVALID_TYPE", "root_id must be a string", "root_id")
            root_id = None
        elif nodes_by_id and root_id not in nodes_by_id:
            _err("E_UNKNOWN_ROOT", f"root_id references unknown id: {root_id}", "root_id")

    users = doc.get("users", {})
    if users is None:
        users = {}
    if not isinstance(users, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in users.items()
    ):
        _err("E_INVALID_TYPE", "users must be a mapping of owner id -> image url", "users")

    if errors:
        return None, _sorted(errors)

    edges: list[tuple[str, str]] = []
    for tid, n in nodes_by_id.items():
        for dep in n.requires:
            if dep in nodes_by_id:
                edges.append((tid, dep))

    graph = TaskGraph(
        schema_version=cast(str, schema_version),
        nodes_by_id=nodes_by_id,
        edges=edges,
        root_id=cast(Optional[str], root_id),
        users=dict(users),
    )
    return graph, []


def summarize_tasks(graph: TaskGraph) -> str:
    closed = sum(1 for n in graph.nodes_by_id.values() if n.closed)
    open_ = len(graph.nodes_by_id) - closed
    return (
        f"OK: {len(graph.nodes_by_id)} tasks (open={open_}, closed={closed}), "
        f"{len(graph.edges)} dependencies\nRoot: {graph.root_id or '<none>'}"
    )


def _sorted(errors: Iterable[TaskValidationError]) -> list[TaskValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
