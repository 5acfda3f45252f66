"""Apply a saved view (filter, grouping, sorting) to a list of work items."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from github_dashboard.core.models import FieldConfiguration, GroupedItems, ViewConfig, WorkItem

from .filtering import filter_items
from .grouping import flatten_groups, group_items, group_items_dual
from .quick_filters import QuickFilters, apply_quick_filters
from .sorting import sort_by_updated, sort_items_multiple


@dataclass(slots=True)
class RenderPlan:
    view: ViewConfig | None
    groups: list[GroupedItems]
    total: int  # items before any filtering
    filtered: int  # items left after quick filters and the view filter

    @property
    def items(self) -> list[WorkItem]:
        return flatten_groups(self.groups)

    @property
    def is_dual(self) -> bool:
        return any(g.subgroups is not None for g in self.groups)


def field_config_for(
    field_name: str | None,
    field_configs: Mapping[str, FieldConfiguration] | None,
) -> FieldConfiguration | None:
    """Look up field metadata by name, ignoring case."""
    if not field_name or not field_configs:
        return None
    config = field_configs.get(field_name)
    if config is not None:
        return config
    wanted = field_name.lower()
    for name, candidate in field_configs.items():
        if name.lower() == wanted:
            return candidate
    return None


def _sort_group(group: GroupedItems, view: ViewConfig | None) -> GroupedItems:
    if view is not None and view.sort_by_fields:
        items = sort_items_multiple(group.items, view.sort_by_fields)
    else:
        items = sort_by_updated(group.items)
    subgroups = None
    if group.subgroups is not None:
        subgroups = [_sort_group(sub, view) for sub in group.subgroups]
    return replace(group, items=items, subgroups=subgroups)


def build_render_plan(
    items: Iterable[WorkItem],
    view: ViewConfig | None = None,
    field_configs: Mapping[str, FieldConfiguration] | None = None,
    *,
    quick_filters: QuickFilters | None = None,
    group_override: str | None = None,
) -> RenderPlan:
    """Filter, group, and sort ``items`` as ``view`` describes.

    ``group_override`` replaces the view's primary group field (the dashboard's
    "Group by" picker). Board views with two group fields produce swimlanes
    with column subgroups. Without sort fields, items are ordered newest
    update first.
    """
    items = list(items)
    working = apply_quick_filters(items, quick_filters)
    if view is not None:
        working = filter_items(working, view.filter_expression)

    group_fields = list(view.group_by_fields) if view is not None else []
    if group_override:
        group_fields = [group_override, *group_fields[1:]]

    if view is not None and view.layout == "BOARD" and len(group_fields) >= 2:
        primary, secondary = group_fields[0], group_fields[1]
        groups = group_items_dual(
            working,
            primary,
            field_config_for(primary, field_configs),
            secondary,
            field_config_for(secondary, field_configs),
        )
    else:
        primary = group_fields[0] if group_fields else None
        groups = group_items(working, primary, field_config_for(primary, field_configs))

    groups = [_sort_group(group, view) for group in groups]
    return RenderPlan(view=view, groups=groups, total=len(items), filtered=len(working))
