"""Resolve a named field of a work item to its display value.

Custom fields are checked first (exact key, then case-insensitive key), then
the built-in item attributes, and finally a ``No <Field Name>`` placeholder.
The result is always a non-empty string so grouping and sorting never need to
special-case missing values.
"""

from __future__ import annotations

import re
from typing import Any

from github_dashboard.core.config import PARENT_ISSUE_FIELD, PRIORITY_FIELD, STATUS_FIELD
from github_dashboard.core.models import WorkItem, field_text, has_field_value

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def find_custom_field(item: WorkItem, field_name: str) -> Any | None:
    """Return the stored custom field value for ``field_name`` or None.

    An exact key match wins; otherwise the first key equal ignoring case.
    """
    fields = item.custom_fields or {}
    value = fields.get(field_name)
    if has_field_value(value):
        return value
    wanted = field_name.lower()
    for key, candidate in fields.items():
        if str(key).lower() == wanted and has_field_value(candidate):
            return candidate
    return None


def placeholder_for(field_name: str) -> str:
    """``dueDate`` -> ``No Due Date``."""
    words: list[str] = []
    for chunk in field_name.split():
        words.extend(part for part in _CAMEL_BOUNDARY.split(chunk) if part)
    if not words:
        return "No Value"
    return "No " + " ".join(w[:1].upper() + w[1:] for w in words)


def _first_assignee(item: WorkItem) -> str:
    for assignee in item.assignees or ():
        return assignee.login or "Unassigned"
    return "Unassigned"


def _first_label(item: WorkItem) -> str:
    for label in item.labels or ():
        return label.name or "No Labels"
    return "No Labels"


def _custom_text(item: WorkItem, field_name: str) -> str | None:
    value = find_custom_field(item, field_name)
    return field_text(value) if value is not None else None


def _builtin_value(item: WorkItem, name: str) -> str | None:
    if name == "status":
        return item.status or _custom_text(item, STATUS_FIELD) or "No Status"
    if name == "state":
        return item.state or "No State"
    if name == "type":
        return item.kind or "No Type"
    if name in ("assignees", "assignee"):
        return _first_assignee(item)
    if name in ("repository", "repo"):
        return item.repository or "No Repository"
    if name in ("repository_owner", "owner"):
        return item.repository_owner or "No Owner"
    if name == "priority":
        return item.priority or _custom_text(item, PRIORITY_FIELD) or "No Priority"
    if name in ("labels", "label"):
        return _first_label(item)
    if name in ("parent issue", "parent_issue"):
        return _custom_text(item, PARENT_ISSUE_FIELD) or "No Parent Issue"
    return None


def resolve_field(item: WorkItem, field_name: str | None) -> str:
    """Display value of ``field_name`` on ``item``; never empty, never raises."""
    if not field_name:
        return "No Value"
    custom = _custom_text(item, field_name)
    if custom:
        return custom
    builtin = _builtin_value(item, field_name.lower())
    if builtin:
        return builtin
    return placeholder_for(field_name)
