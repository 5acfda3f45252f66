"""Parse and apply GitHub project view filter strings.

Supported syntax (a practical subset of GitHub's own):

* ``field:value`` and ``field:"quoted value"``
* ``field:a,b,c`` matches any of the listed values
* ``-field:value`` negates the clause
* ``is:open|closed|merged|issue|pr|draft``
* ``has:Field`` / ``no:Field`` require a custom field to be set / unset
* ``parent-issue:owner/repo#123``

Values are compared lower-cased. Clauses for different fields are ANDed;
repeated clauses for the same field widen that field's set of values.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence

from github_dashboard.core.config import PARENT_ISSUE_NUMBER_FIELD, STATUS_FIELD
from github_dashboard.core.models import WorkItem, field_text

from .resolver import find_custom_field

FILTER_PATTERN = re.compile(r'(-)?(\w+(?:-\w+)*):(?:"([^"]+)"|(\S+))')
_ISSUE_NUMBER = re.compile(r"#(\d+)")

ParsedFilters = dict[str, list[str]]

_IS_PREDICATES: dict[str, Callable[[WorkItem], bool]] = {
    "open": lambda item: (item.state or "").lower() == "open",
    "closed": lambda item: (item.state or "").lower() in ("closed", "merged"),
    "merged": lambda item: (item.state or "").lower() == "merged",
    "issue": lambda item: item.kind == "ISSUE",
    "pr": lambda item: item.kind == "PULL_REQUEST",
    "draft": lambda item: item.kind == "DRAFT_ISSUE",
}


def parse_filter_string(filter_string: str | None) -> ParsedFilters:
    """Parse ``filter_string`` into ``{field_key: [values]}``.

    ``field_key`` carries a leading ``-`` for negated clauses. Text that does
    not look like a clause is ignored, so malformed input yields ``{}``.
    """
    filters: ParsedFilters = {}
    if not filter_string:
        return filters
    for match in FILTER_PATTERN.finditer(filter_string):
        negated, field, quoted, bare = match.groups()
        key = f"-{field}" if negated else field
        raw = quoted if quoted is not None else bare
        values = filters.setdefault(key, [])
        for piece in raw.split(","):
            value = piece.strip().lower()
            if value and value not in values:
                values.append(value)
        if not values:
            del filters[key]
    return filters


def _custom_lower(item: WorkItem, field_name: str) -> str | None:
    value = find_custom_field(item, field_name)
    if value is None:
        return None
    return field_text(value).lower()


def _matches_parent_issue(item: WorkItem, values: Sequence[str]) -> bool | None:
    """None when the item has no parent number; otherwise whether any value names it."""
    stored = find_custom_field(item, PARENT_ISSUE_NUMBER_FIELD)
    if stored is None:
        return None
    try:
        parent_number = int(field_text(stored))
    except ValueError:
        return None
    for value in values:
        found = _ISSUE_NUMBER.search(value)
        if found and int(found.group(1)) == parent_number:
            return True
    return False


def _item_value(item: WorkItem, field: str) -> str | list[str] | None:
    name = field.lower()
    if name == "assignee":
        return [a.login.lower() for a in item.assignees if a.login]
    if name == "label":
        return [label.name.lower() for label in item.labels if label.name]
    if name in ("repo", "repository"):
        return (item.repository or "").lower() or None
    if name == "state":
        return (item.state or "").lower() or None
    if name == "status":
        status = _custom_lower(item, STATUS_FIELD)
        if status is None and item.status:
            status = item.status.lower()
        return status
    return _custom_lower(item, field)


def matches_filters(item: WorkItem, filters: Mapping[str, Sequence[str]]) -> bool:
    """True when ``item`` satisfies every clause of a parsed filter."""
    for key, values in filters.items():
        negated = key.startswith("-")
        field = key[1:] if negated else key
        name = field.lower()

        # has:/no: are structural gates and ignore negation
        if name == "has":
            if not all(find_custom_field(item, v) is not None for v in values):
                return False
            continue
        if name == "no":
            if any(find_custom_field(item, v) is not None for v in values):
                return False
            continue

        if name == "is":
            has_match = any(_IS_PREDICATES.get(v, lambda _item: False)(item) for v in values)
        elif name == "parent-issue":
            parent_match = _matches_parent_issue(item, values)
            if parent_match is None:
                return False
            has_match = parent_match
        else:
            item_value = _item_value(item, field)
            if isinstance(item_value, list):
                has_match = any(v in item_value for v in values)
            else:
                has_match = item_value is not None and item_value in values

        if has_match == negated:
            return False
    return True


def filter_items(items: Iterable[WorkItem], filter_string: str | None) -> list[WorkItem]:
    """Items matching ``filter_string``, in their original order."""
    items = list(items)
    filters = parse_filter_string(filter_string)
    if not filters:
        return items
    return [item for item in items if matches_filters(item, filters)]
