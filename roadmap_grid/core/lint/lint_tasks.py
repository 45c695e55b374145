from __future__ import annotations

from collections import Counter, deque
from typing import Any, Optional

from roadmap_grid.core.errors import TaskValidationError


# Roadmap lint rules. These never block a layout on their own, they point at
# input that will lay out badly or not at all:
# - L_DUPLICATE_ID: duplicate task IDs (the first one wins)
# - L_SELF_REQUIREMENT: a task listing itself in requires
# - L_DANGLING_REQUIREMENT: requires references an id not in the file (ignored by layout)
# - L_UNREACHABLE_TASK: task not reachable from the root (left out of the layout)
# - L_CYCLE_DETECTED: dependency cycle exists (layout refuses cyclic input)


def lint_tasks(doc: dict[str, Any], root_id: Optional[str] = None) -> list[TaskValidationError]:
    """Lint a task document.

    Runs best effort on partially-invalid input. ``root_id`` overrides the
    document's own ``root_id`` for the reachability rule.
    """

    file = _cast_optional_str(doc.get("__file__"))

    tasks = doc.get("tasks")
    if not isinstance(tasks, list):
        # Let validator handle shape.
        return []

    id_to_index: dict[str, int] = {}
    id_to_deps: dict[str, list[str]] = {}
    ids: list[str] = []

    for i, raw in enumerate(tasks):
        if not isinstance(raw, dict):
            continue
        tid = raw.get("id")
        if not isinstance(tid, str):
            continue
        ids.append(tid)
        if tid in id_to_index:
            continue
        id_to_index[tid] = i
        deps_raw = raw.get("requires")
        id_to_deps[tid] = (
            [d for d in deps_raw if isinstance(d, str)] if isinstance(deps_raw, list) else []
        )

    errors: list[TaskValidationError] = []

    def _err(code: str, message: str, path: str) -> None:
        errors.append(TaskValidationError(code=code, message=message, file=file, path=path))

    # Rule: duplicate IDs
    counts = Counter(ids)
    seen: set[str] = set()
    for i, raw in enumerate(tasks):
        tid = raw.get("id") if isinstance(raw, dict) else None
        if not isinstance(tid, str) or counts[tid] < 2:
            continue
        if tid not in seen:
            seen.add(tid)
            continue
        _err("L_DUPLICATE_ID", f"duplicate task id: {tid} (count={counts[tid]})", f"tasks[{i}].id")

    # Rules: self and dangling requirements
    for tid, deps in id_to_deps.items():
        idx = id_to_index[tid]
        for di, dep in enumerate(deps):
            if dep == tid:
                _err("L_SELF_REQUIREMENT", "task requires itself", f"tasks[{idx}].requires[{di}]")
            elif dep not in id_to_deps:
                _err(
                    "L_DANGLING_REQUIREMENT",
                    f"requires references unknown id: {dep} (ignored by layout)",
                    f"tasks[{idx}].requires[{di}]",
                )

    # Rule: unreachable tasks (only when a root is known)
    root = root_id if root_id is not None else _cast_optional_str(doc.get("root_id"))
    if root is not None and root in id_to_deps:
        reachable = _reachable_from_root(root, id_to_deps)
        for tid in sorted(set(id_to_deps) - reachable):
            _err(
                "L_UNREACHABLE_TASK",
                f"task is not reachable from root {root} (left out of the layout)",
                f"tasks[{id_to_index[tid]}].id",
            )

    # Rule: cycle detection
    for tid, msg in _detect_cycles(id_to_deps):
        _err("L_CYCLE_DETECTED", msg, f"tasks[{id_to_index[tid]}].requires")

    return _sorted(errors)


def _reachable_from_root(root: str, id_to_deps: dict[str, list[str]]) -> set[str]:
    q: deque[str] = deque([root])
    seen: set[str] = set()
    while q:
        cur = q.popleft()
        if cur in seen:
            continue
        seen.add(cur)
        for nxt in id_to_deps.get(cur, []):
            if nxt in id_to_deps and nxt not in seen:
                q.append(nxt)
    return seen


def _detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {tid: WHITE for tid in id_to_deps.keys()}
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    for start in id_to_deps:
        if state[start] != WHITE:
            continue
        # Iterative DFS: (task id, index of the next requirement to visit)
        stack: list[tuple[str, int]] = [(start, 0)]
        path: list[str] = [start]
        state[start] = GRAY
        while stack:
            u, i = stack[-1]
            deps = id_to_deps[u]
            if i >= len(deps):
                stack.pop()
                path.pop()
                state[u] = BLACK
                continue
            stack[-1] = (u, i + 1)
            v = deps[i]
            if v not in state or v == u:
                continue
            if state[v] == GRAY:
                cycle = path[path.index(v):] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                stack.append((v, 0))
                path.append(v)

    return out


def _sorted(errors: list[TaskValidationError]) -> list[TaskValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
