"""Read task documents from disk.

Two shapes are accepted:

- native: ``{schema_version, root_id?, users?, tasks: [{id, title, owner, requires, closed}]}``
- tracker export: a saved ``maniphest.query`` response, ``{result: {<phid>: {phid,
  title, ownerPHID, dependsOnTaskPHIDs, isClosed}}}``, optionally with ``root_id`` and a
  ``users`` list as returned by ``user.query`` (``[{phid, image}]``).

Both come out as the native shape. Field types are left to the validator.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from roadmap_grid.core.errors import TaskLoadError

TRACKER_SCHEMA = "maniphest.query"

_PARSERS = {
    ".yaml": ("E_YAML_PARSE", yaml.safe_load),
    ".yml": ("E_YAML_PARSE", yaml.safe_load),
    ".json": ("E_JSON_PARSE", json.loads),
}


def load_tasks(path: str) -> dict[str, Any]:
    """Load a YAML/JSON task file.

    Returns a dict with keys: schema_version, tasks, optional root_id and users,
    plus ``__file__``.
    """
    p = Path(path)
    data = _read_document(p)
    file = str(p)

    if "tasks" in data:
        doc: dict[str, Any] = {
            "schema_version": data.get("schema_version"),
            "tasks": data.get("tasks"),
        }
    elif "result" in data:
        doc = {
            "schema_version": data.get("schema_version") or TRACKER_SCHEMA,
            "tasks": _tasks_from_tracker(data["result"], file),
        }
    else:
        raise TaskLoadError(
            code="E_MISSING_TASKS",
            message="document needs a tasks list or a tracker export result",
            file=file,
            path="tasks",
        )

    if "root_id" in data:
        doc["root_id"] = data.get("root_id")
    if "users" in data:
        doc["users"] = _users_mapping(data.get("users"), file)

    doc["__file__"] = file
    return doc


def _read_document(p: Path) -> dict[str, Any]:
    if not p.exists():
        raise TaskLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        raise TaskLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"supported formats are {', '.join(sorted(_PARSERS))}",
            file=str(p),
        )
    parse_code, parse = parser

    try:
        data = parse(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:  # pragma: no cover
        raise TaskLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e
    except (yaml.YAMLError, ValueError) as e:
        raise TaskLoadError(code=parse_code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise TaskLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )
    return data


def _tasks_from_tracker(result: Any, file: str) -> list[dict[str, Any]]:
    # maniphest.query keys its result by phid; a plain list of entries is accepted too.
    if isinstance(result, dict):
        entries = list(result.items())
    elif isinstance(result, list):
        entries = [(str(i), item) for i, item in enumerate(result)]
    else:
        raise TaskLoadError(
            code="E_INVALID_SECTION",
            message="result must be a mapping of phid -> task or a list of tasks",
            file=file,
            path="result",
        )

    tasks: list[dict[str, Any]] = []
    for key, entry in entries:
        if not isinstance(entry, dict):
            raise TaskLoadError(
                code="E_INVALID_TRACKER_TASK",
                message="tracker task must be an object",
                file=file,
                path=f"result.{key}",
            )
        tasks.append(
            {
                "id": entry.get("phid", key if isinstance(result, dict) else None),
                "title": entry.get("title"),
                "owner": entry.get("ownerPHID"),
                "requires": entry.get("dependsOnTaskPHIDs") or [],
                "closed": entry.get("isClosed", False),
            }
        )
    return tasks


def _users_mapping(users: Any, file: str) -> Any:
    """Turn a user.query list into owner -> image; mappings pass through."""
    if users is None or isinstance(users, dict):
        return users
    if not isinstance(users, list):
        raise TaskLoadError(
            code="E_INVALID_SECTION",
            message="users must be a mapping of owner -> image or a list of {phid, image}",
            file=file,
            path="users",
        )

    out: dict[str, Any] = {}
    for i, user in enumerate(users):
        if not isinstance(user, dict) or not isinstance(user.get("phid"), str):
            raise TaskLoadError(
                code="E_INVALID_SECTION",
                message="user entries need a string phid",
                file=file,
                path=f"users[{i}]",
            )
        out[user["phid"]] = user.get("image")
    return out
