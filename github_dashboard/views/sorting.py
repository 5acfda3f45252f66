"""Sort work items by one or more resolved fields."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from functools import cmp_to_key

from github_dashboard.core.models import SortConfig, WorkItem
from github_dashboard.core.timestamps import normalize_timestamp

from .resolver import resolve_field

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def _as_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return None if isinstance(value, float) and math.isnan(value) else float(value)
    if isinstance(value, str) and _NUMBER_PATTERN.match(value.strip()):
        return float(value)
    return None


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _parse(value: str | float) -> tuple:
    """(number, timestamp, folded text) for one sort value, computed once."""
    number = _as_number(value)
    return number, normalize_timestamp(value), str(value).casefold()


def _compare_parsed(a: tuple, b: tuple, direction: str) -> int:
    if a[0] is not None and b[0] is not None:
        result = _cmp(a[0], b[0])
    elif a[1] is not None and b[1] is not None:
        result = _cmp(a[1], b[1])
    else:
        result = _cmp(a[2], b[2])
    return -result if direction == "DESC" else result


def compare_values(a: str | float, b: str | float, direction: str = "ASC") -> int:
    """Three-way compare: numbers, then ISO dates, then case-insensitive text.

    ``DESC`` inverts the result.
    """
    return _compare_parsed(_parse(a), _parse(b), direction)


def _sort_key(value: str) -> tuple | None:
    return _parse(value) if value else None


def _compare_resolved(
    a_values: Sequence[tuple | None],
    b_values: Sequence[tuple | None],
    configs: Sequence[SortConfig],
) -> int:
    for a_value, b_value, config in zip(a_values, b_values, configs, strict=True):
        # Empty values sort last in either direction
        if not a_value and not b_value:
            continue
        if not a_value:
            return 1
        if not b_value:
            return -1
        result = _compare_parsed(a_value, b_value, config.direction)
        if result != 0:
            return result
    return 0


def sort_items_multiple(items: Iterable[WorkItem], sort_configs: Sequence[SortConfig] | None) -> list[WorkItem]:
    """Stable sort by ``sort_configs`` in priority order; later keys break ties."""
    items = list(items)
    configs = [c for c in (sort_configs or ()) if c is not None and c.field]
    if not configs:
        return items
    # Each value is parsed once here, not on every comparison
    decorated = [([_sort_key(resolve_field(item, c.field)) for c in configs], item) for item in items]
    decorated.sort(key=cmp_to_key(lambda a, b: _compare_resolved(a[0], b[0], configs)))
    return [item for _, item in decorated]


def sort_items(items: Iterable[WorkItem], sort_config: SortConfig | None) -> list[WorkItem]:
    """Stable sort by a single field; ``None`` keeps the input order."""
    return sort_items_multiple(items, [sort_config] if sort_config else [])


def sort_by_updated(items: Iterable[WorkItem]) -> list[WorkItem]:
    """Most recently updated first; items without a parseable date go last."""
    items = list(items)

    def key(item: WorkItem):
        ts = normalize_timestamp(item.updated_at)
        return (ts is None, -ts.value if ts is not None else 0)

    return sorted(items, key=key)
