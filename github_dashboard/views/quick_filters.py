"""Free-text search and dropdown-style quick filters for the project view.

These complement the view's own filter string: the view filter comes from the
saved GitHub view, quick filters come from the dashboard's sidebar widgets.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from github_dashboard.core.config import BUILTIN_GROUP_FIELDS, EXCLUDED_FILTER_FIELDS, ITEM_KINDS
from github_dashboard.core.models import WorkItem, field_text, has_field_value

ALL = "all"


@dataclass(slots=True)
class QuickFilters:
    search: str = ""
    state: str = ALL
    kind: str = ALL
    repository: str = ALL  # "owner/name"
    custom: dict[str, list[str]] = field(default_factory=dict)


def _full_repository(item: WorkItem) -> str:
    return f"{item.repository_owner}/{item.repository}"


def _custom_texts(item: WorkItem) -> dict[str, str]:
    return {
        name: field_text(value)
        for name, value in (item.custom_fields or {}).items()
        if has_field_value(value)
    }


def matches_search(item: WorkItem, search: str) -> bool:
    """Case-insensitive substring search across the visible item attributes."""
    if not search:
        return True
    needle = search.lower()
    haystack = [
        item.title,
        item.repository,
        item.repository_owner,
        *(a.login for a in item.assignees),
        *(label.name for label in item.labels),
        *_custom_texts(item).values(),
    ]
    if item.number is not None and search in str(item.number):
        return True
    return any(needle in (text or "").lower() for text in haystack)


def matches_quick_filters(item: WorkItem, filters: QuickFilters) -> bool:
    if filters.search and not matches_search(item, filters.search):
        return False
    if filters.state != ALL and item.state != filters.state:
        return False
    if filters.kind != ALL and item.kind != filters.kind:
        return False
    if filters.repository != ALL and _full_repository(item) != filters.repository:
        return False
    if filters.custom:
        values = _custom_texts(item)
        for name, selected in filters.custom.items():
            if selected and values.get(name) not in selected:
                return False
    return True


def apply_quick_filters(items: Iterable[WorkItem], filters: QuickFilters | None) -> list[WorkItem]:
    items = list(items)
    if filters is None:
        return items
    return [item for item in items if matches_quick_filters(item, filters)]


@dataclass(slots=True)
class FilterOptions:
    states: list[str]
    kinds: list[str]
    repositories: list[str]
    custom: dict[str, list[str]]


def filter_options(items: Iterable[WorkItem]) -> FilterOptions:
    """Distinct values offered by the quick filter widgets."""
    states: dict[str, None] = {}
    repositories: dict[str, None] = {}
    custom: dict[str, set[str]] = {}
    for item in items:
        if item.state:
            states.setdefault(item.state)
        repositories.setdefault(_full_repository(item))
        for name, value in (item.custom_fields or {}).items():
            if name in EXCLUDED_FILTER_FIELDS:
                continue
            bucket = custom.setdefault(name, set())
            if has_field_value(value):
                bucket.add(field_text(value))
    return FilterOptions(
        states=list(states),
        kinds=list(ITEM_KINDS),
        repositories=list(repositories),
        custom={name: sorted(values) for name, values in custom.items()},
    )


def custom_selections(selected: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Custom-field multiselect state with untouched fields dropped."""
    return {name: list(values) for name, values in selected.items() if values}


def available_group_fields(items: Iterable[WorkItem]) -> list[str]:
    """Built-in group fields plus every custom field seen on ``items``, sorted."""
    fields = set(BUILTIN_GROUP_FIELDS)
    for item in items:
        fields.update(item.custom_fields or {})
    return sorted(fields)
