"""Load locally defined saved views from YAML (with fallbacks).

Used when a project exposes no GitHub views (REST item source) or when the
user wants extra views next to the ones stored on GitHub.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import DEFAULT_SORT_DIRECTION, VIEW_LAYOUTS
from .models import SortConfig, ViewConfig

logger = logging.getLogger(__name__)

_CACHE: list[ViewConfig] | None = None

DEFAULT_VIEWS: tuple[ViewConfig, ...] = (
    ViewConfig(id="local-all", name="All items", layout="TABLE", number=1),
    ViewConfig(
        id="local-status-board",
        name="Status board",
        layout="BOARD",
        number=2,
        filter_expression="is:open",
        group_by_fields=("Status",),
    ),
    ViewConfig(
        id="local-priority",
        name="By priority",
        layout="TABLE",
        number=3,
        group_by_fields=("Priority",),
        sort_by_fields=(SortConfig("Status"),),
    ),
)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _parse_sort(raw: Any) -> SortConfig | None:
    if isinstance(raw, str):
        return SortConfig(raw, DEFAULT_SORT_DIRECTION)
    if isinstance(raw, dict) and raw.get("field"):
        direction = str(raw.get("direction") or DEFAULT_SORT_DIRECTION).upper()
        return SortConfig(str(raw["field"]), "DESC" if direction == "DESC" else "ASC")
    return None


def parse_saved_view(raw: dict[str, Any], index: int) -> ViewConfig:
    name = str(raw.get("name") or f"View {index}")
    layout = VIEW_LAYOUTS.get(str(raw.get("layout") or "TABLE").upper(), "TABLE")
    group_by = tuple(str(f) for f in _as_list(raw.get("group_by")) if f)
    sorts = tuple(s for s in (_parse_sort(r) for r in _as_list(raw.get("sort_by"))) if s is not None)
    return ViewConfig(
        id=str(raw.get("id") or f"local-{index}"),
        name=name,
        layout=layout,
        number=index,
        filter_expression=str(raw.get("filter") or ""),
        group_by_fields=group_by,
        sort_by_fields=sorts,
    )


def load_saved_views(base_path: str | Path | None = None, *, reload: bool = False) -> list[ViewConfig]:
    global _CACHE
    if _CACHE is not None and not reload and base_path is None:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "views.yaml"
    if not yaml_path.exists():
        views = list(DEFAULT_VIEWS)
    else:
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
            raw_views = [v for v in data.get("views", []) if isinstance(v, dict)]
            views = [parse_saved_view(raw, idx) for idx, raw in enumerate(raw_views, start=1)]
        except (OSError, yaml.YAMLError, AttributeError, TypeError) as exc:
            logger.warning("Could not read %s, using built-in views: %s", yaml_path, exc)
            views = []
        if not views:
            views = list(DEFAULT_VIEWS)
    if base_path is None:
        _CACHE = views
    return views


def get_saved_view(name: str, base_path: str | Path | None = None) -> ViewConfig | None:
    for view in load_saved_views(base_path):
        if view.name == name or view.id == name:
            return view
    return None
