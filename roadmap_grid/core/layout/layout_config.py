from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class LayoutSettings:
    # Pixel sizes of one grid cell and the page margins around the grid.
    column_size: int = 180
    row_size: int = 150
    min_width: int = 2500
    min_height: int = 2000
    top_offset: int = 170
    bottom_margin: int = 235
    node_size: int = 32


DEFAULT_SETTINGS = LayoutSettings()


class LayoutConfigError(ValueError):
    pass


def normalize_columns(columns: int) -> int:
    """Force an odd column count so the root gets a true center column."""
    if columns % 2 == 0:
        return columns + 1
    return columns


def columns_for_width(width: int, settings: LayoutSettings = DEFAULT_SETTINGS) -> int:
    """Number of grid columns that fit a display of ``width`` pixels."""
    usable = max(width, settings.min_width)
    return normalize_columns(max(usable // settings.column_size - 1, 1))


def load_settings_file(path: str | Path) -> dict[str, int]:
    """Load layout overrides from a YAML file.

    Format:
      column_size: 200
      row_size: 120

    Returns a mapping of setting name -> positive integer.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise LayoutConfigError("layout config must be a mapping of setting -> integer")

    known = set(asdict(DEFAULT_SETTINGS))
    out: dict[str, int] = {}
    for k, v in raw.items():
        if k not in known:
            raise LayoutConfigError(
                f"unknown layout setting '{k}' (choose from: {', '.join(sorted(known))})"
            )
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise LayoutConfigError(f"layout setting '{k}' must be a positive integer")
        out[k] = v
    return out


def merged_settings(overrides: dict[str, Any] | None = None) -> LayoutSettings:
    if not overrides:
        return DEFAULT_SETTINGS
    return replace(DEFAULT_SETTINGS, **overrides)


def load_and_merge(config_file: str | None) -> LayoutSettings:
    if not config_file:
        return merged_settings()
    return merged_settings(load_settings_file(config_file))
