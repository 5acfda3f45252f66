"""Group work items into named buckets (board columns, table sections, swimlanes)."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace

from github_dashboard.core.config import ALL_ITEMS_GROUP, EMPTY_GROUP_NAMES, EMPTY_GROUP_PREFIX
from github_dashboard.core.models import FieldConfiguration, GroupedItems, WorkItem

from .resolver import resolve_field


def is_empty_group(name: str) -> bool:
    """Placeholder buckets (``No Status``, ``Unassigned``...) that sort first."""
    return name in EMPTY_GROUP_NAMES or name.startswith(EMPTY_GROUP_PREFIX)


def _option_maps(field_config: FieldConfiguration | None) -> tuple[dict[str, str | None], dict[str, int]]:
    colors: dict[str, str | None] = {}
    orders: dict[str, int] = {}
    if field_config is None:
        return colors, orders
    for index, option in enumerate(field_config.options):
        colors.setdefault(option.name, option.color)
        orders.setdefault(option.name, index)
    return colors, orders


def group_items(
    items: Iterable[WorkItem],
    field_name: str | None,
    field_config: FieldConfiguration | None = None,
) -> list[GroupedItems]:
    """Partition ``items`` by the resolved value of ``field_name``.

    Parameters
    ----------
    items : iterable of WorkItem
        Items to partition; never modified.
    field_name : str or None
        Field to group by. Empty means a single ``All Items`` group.
    field_config : FieldConfiguration, optional
        Select/iteration metadata. Its options give each bucket a color and
        a canonical position.

    Returns
    -------
    list[GroupedItems]
        Empty-placeholder buckets first, then buckets in option order when the
        field has options, otherwise alphabetically (case-insensitive).
    """
    items = list(items)
    if not field_name:
        return [GroupedItems(name=ALL_ITEMS_GROUP, count=len(items), items=items)]

    colors, orders = _option_maps(field_config)
    buckets: dict[str, list[WorkItem]] = {}
    for item in items:
        buckets.setdefault(resolve_field(item, field_name), []).append(item)

    groups = [
        GroupedItems(
            name=name,
            count=len(members),
            items=members,
            color=colors.get(name),
            order=orders.get(name, math.inf),
        )
        for name, members in buckets.items()
    ]

    has_options = bool(orders)

    def sort_key(group: GroupedItems):
        rank = 0 if is_empty_group(group.name) else 1
        if has_options:
            return (rank, group.order)
        return (rank, group.name.casefold(), group.name)

    return sorted(groups, key=sort_key)


def group_items_dual(
    items: Iterable[WorkItem],
    primary_field: str | None,
    primary_config: FieldConfiguration | None,
    secondary_field: str | None,
    secondary_config: FieldConfiguration | None,
) -> list[GroupedItems]:
    """Swimlanes by ``primary_field``, each split into columns by ``secondary_field``."""
    return [
        replace(lane, subgroups=group_items(lane.items, secondary_field, secondary_config))
        for lane in group_items(items, primary_field, primary_config)
    ]


def flatten_groups(groups: Iterable[GroupedItems]) -> list[WorkItem]:
    """Concatenate the items of ``groups`` (leaf level for dual groupings)."""
    out: list[WorkItem] = []
    for group in groups:
        if group.subgroups is not None:
            out.extend(flatten_groups(group.subgroups))
        else:
            out.extend(group.items)
    return out
