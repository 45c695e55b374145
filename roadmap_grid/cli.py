from __future__ import annotations

import json
import logging
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from roadmap_grid.core.errors import (
    LayoutError,
    TaskError,
    TaskLoadError,
    TaskValidationError,
)
from roadmap_grid.core.io.load_tasks import load_tasks
from roadmap_grid.core.layout.allocate import layout_tasks
from roadmap_grid.core.layout.annotate import annotate, reachable_ids
from roadmap_grid.core.layout.layout_config import (
    LayoutConfigError,
    LayoutSettings,
    columns_for_width,
    load_and_merge,
    normalize_columns,
)
from roadmap_grid.core.lint.lint_tasks import lint_tasks
from roadmap_grid.core.model import Allocation, TaskGraph
from roadmap_grid.core.render.scene import build_scene
from roadmap_grid.core.validate.validate_tasks import summarize_tasks, validate_tasks

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("roadmap_grid")


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log layout decisions to stderr"),
) -> None:
    """Roadmap CLI: lay out task dependency graphs on a grid."""
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a task file."""
    _check_format("validate", format, ("text", "json"))

    doc = _load_or_exit("validate", path, format)
    graph, errors = validate_tasks(doc)
    if errors:
        if format == "json":
            _emit_json("validate", False, errors=errors, exit_code=2, summary=None)
        _print_errors(errors)
        raise typer.Exit(code=2)

    assert graph is not None

    if format == "text":
        typer.echo(summarize_tasks(graph))
        return

    closed = sum(1 for n in graph.nodes_by_id.values() if n.closed)
    summary = {
        "task_count": len(graph.nodes_by_id),
        "closed_count": closed,
        "edge_count": len(graph.edges),
        "root_id": graph.root_id,
    }
    _emit_json("validate", True, errors=[], exit_code=0, summary=summary)


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    root: Optional[str] = typer.Option(None, "--root", help="Root task id (defaults to root_id in the file)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a task file (dangling requirements, unreachable tasks, cycles)."""
    _check_format("lint", format, ("text", "json"))

    doc = _load_or_exit("lint", path, format)
    lint_errors = lint_tasks(doc, root_id=root)
    _, validation_errors = validate_tasks(doc)
    errors: list[TaskError] = [*lint_errors, *validation_errors]

    if format == "json":
        _emit_json("lint", not errors, errors=errors, exit_code=2 if errors else 0)

    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("annotate")
def annotate_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    root: Optional[str] = typer.Option(None, "--root", help="Root task id (defaults to root_id in the file)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Show depth, subtree weight and active flag for every task reachable from the root."""
    _check_format("annotate", format, ("text", "json"))

    graph = _graph_or_exit("annotate", path, format)
    root_id = _root_or_exit("annotate", graph, root, format)

    try:
        index = annotate(graph.nodes_by_id.values(), root_id)
    except LayoutError as e:
        _fail("annotate", [e], format, exit_code=2)

    rows = [index[tid] for tid in reachable_ids(index)]
    if format == "json":
        tasks = [
            {
                "id": n.id,
                "title": n.title,
                "depth": n.depth,
                "children": n.children,
                "active": n.active,
                "required_by": list(n.required_by),
            }
            for n in rows
        ]
        _emit_json("annotate", True, errors=[], exit_code=0, root_id=root_id, tasks=tasks)

    table = Table(title=f"roadmap annotate ({root_id})")
    table.add_column("Task")
    table.add_column("Depth", justify="right")
    table.add_column("Children", justify="right")
    table.add_column("Active")
    table.add_column("Title")
    for n in rows:
        table.add_row(n.id, str(n.depth), str(n.children), "yes" if n.active else "no", n.title)
    console.print(table)


@app.command("layout")
def layout(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    root: Optional[str] = typer.Option(None, "--root", help="Root task id (defaults to root_id in the file)"),
    columns: Optional[int] = typer.Option(
        None, "--columns", help="Grid width in columns (even values are bumped to the next odd one)"
    ),
    width: Optional[int] = typer.Option(
        None, "--width", help="Display width in pixels; derives --columns when that is not given"
    ),
    config: Optional[str] = typer.Option(
        None, "--config", help="Optional YAML file overriding layout settings"
    ),
    format: str = typer.Option("table", "--format", help="Output format: table|grid|json"),
) -> None:
    """Assign every task reachable from the root a (column, row) grid cell."""
    _check_format("layout", format, ("table", "grid", "json"))

    graph = _graph_or_exit("layout", path, format)
    root_id = _root_or_exit("layout", graph, root, format)
    settings = _settings_or_exit(config, format)

    display_width = max(width or settings.min_width, settings.min_width)
    if columns is None:
        columns = columns_for_width(display_width, settings)
    elif columns >= 1:
        columns = normalize_columns(columns)

    allocations, errors = layout_tasks(graph.nodes_by_id.values(), root_id, columns)
    if errors:
        _fail("layout", errors, format, exit_code=2)

    if format == "json":
        scene = build_scene(
            allocations,
            root_id=root_id,
            columns=columns,
            width=display_width,
            height=settings.min_height,
            settings=settings,
            users=graph.users,
        )
        cells = [{"id": a.node.id, "x": a.x, "y": a.y} for a in allocations]
        _emit_json(
            "layout",
            True,
            errors=[],
            exit_code=0,
            root_id=root_id,
            columns=columns,
            allocations=cells,
            scene=scene,
        )

    if format == "grid":
        typer.echo(render_grid(allocations, columns))
        return

    table = Table(title=f"roadmap layout ({root_id}, {columns} columns)")
    table.add_column("Task")
    table.add_column("Column", justify="right")
    table.add_column("Row", justify="right")
    table.add_column("Depth", justify="right")
    table.add_column("Active")
    for a in allocations:
        table.add_row(a.node.id, str(a.x), str(a.y), str(a.node.depth), "yes" if a.node.active else "no")
    console.print(table)


def render_grid(allocations: list[Allocation], columns: int, cell_width: int = 8) -> str:
    """Plain-text preview: one line per row, one fixed-width cell per column."""
    if not allocations:
        return ""
    by_cell = {a.cell: a.node.id for a in allocations}
    last_row = max(a.y for a in allocations)
    lines: list[str] = []
    for y in range(last_row + 1):
        cells = []
        for x in range(columns):
            label = by_cell.get((x, y), ".")
            if len(label) > cell_width:
                label = label[: cell_width - 1] + "~"
            cells.append(label.center(cell_width))
        lines.append("".join(cells).rstrip())
    return "\n".join(lines)


def _load_or_exit(command: str, path: str, format: str) -> dict[str, Any]:
    try:
        return load_tasks(path)
    except TaskLoadError as e:
        _fail(command, [e], format, exit_code=1)


def _graph_or_exit(command: str, path: str, format: str) -> TaskGraph:
    doc = _load_or_exit(command, path, format)
    graph, errors = validate_tasks(doc)
    if errors or graph is None:
        _fail(command, list(errors), format, exit_code=2)
    return graph


def _root_or_exit(command: str, graph: TaskGraph, root: Optional[str], format: str) -> str:
    root_id = root or graph.root_id
    if root_id is None:
        err = TaskValidationError(
            code="E_NO_ROOT",
            message="no root task: pass --root or set root_id in the file",
            file=None,
            path="root",
        )
        _fail(command, [err], format, exit_code=2)
    return root_id


def _settings_or_exit(config: Optional[str], format: str) -> LayoutSettings:
    try:
        return load_and_merge(config)
    except FileNotFoundError:
        err = TaskLoadError(
            code="E_CONFIG_FILE_NOT_FOUND",
            message=f"layout config file not found: {config}",
            file=None,
            path="config",
        )
        _fail("layout", [err], format, exit_code=1)
    except LayoutConfigError as e:
        err = TaskValidationError(
            code="E_CONFIG_FILE_INVALID",
            message=str(e),
            file=config,
            path="config",
        )
        _fail("layout", [err], format, exit_code=2)


def _check_format(command: str, format: str, allowed: tuple[str, ...]) -> None:
    if format not in allowed:
        err = TaskValidationError(
            code=f"E_{command.upper()}_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: {', '.join(allowed)})",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _fail(command: str, errors: list[TaskError], format: str, *, exit_code: int) -> NoReturn:
    if format == "json":
        _emit_json(command, False, errors=errors, exit_code=exit_code)
    _print_errors(errors)
    raise typer.Exit(code=exit_code)


def _to_item(e: TaskError) -> dict[str, Any]:
    if isinstance(e, TaskLoadError):
        source = "load"
    elif isinstance(e, LayoutError):
        source = "layout"
    elif e.code.startswith("L_"):
        source = "lint"
    else:
        source = "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(
    command: str,
    ok: bool,
    *,
    errors: list[TaskError],
    exit_code: int,
    **extra: Any,
) -> NoReturn:
    payload = {
        "tool": "roadmap",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [_to_item(e) for e in errors],
        **extra,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[TaskError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="roadmap")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
