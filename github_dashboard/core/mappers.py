"""Map raw GitHub REST / GraphQL payloads into WorkItem, ViewConfig and field models.

Both APIs describe the same project items with different field encodings. The
REST API tags every field value with a ``data_type`` and wraps text in
``{raw, html}``; GraphQL returns typed ``fieldValues`` nodes. Either way the
result is a WorkItem whose ``custom_fields`` maps field names to tagged values.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pandas as pd

from .config import (
    CONTENT_TYPE_KINDS,
    PARENT_ISSUE_FIELD,
    PARENT_ISSUE_NUMBER_FIELD,
    PRIORITY_FIELD,
    STATUS_FIELD,
    VIEW_LAYOUTS,
)
from .models import (
    Assignee,
    FieldConfiguration,
    FieldOption,
    FieldValue,
    Label,
    RawValue,
    ScalarValue,
    SortConfig,
    TitledValue,
    ViewConfig,
    WorkItem,
    field_text,
)

_REPOSITORY_URL = re.compile(r"repos/([^/]+)/([^/]+)")


class SampleLogger:
    """Dump the structure of the first item seen, once per instance.

    Share one instance per process (see :data:`DEFAULT_SAMPLE_LOGGER`) to get
    a single sample when diagnosing unexpected field encodings.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def __call__(self, raw: Mapping[str, Any]) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        content = raw.get("content") or {}
        fields = raw.get("fields") or []
        self._logger.debug("Sample item content type: %s", raw.get("content_type"))
        self._logger.debug("Sample item content keys: %s", sorted(content))
        self._logger.debug("Sample item fields (%s): %s", len(fields), json.dumps(fields, default=str)[:2000])


DEFAULT_SAMPLE_LOGGER = SampleLogger()


# ------------------ Field values ------------------
def coerce_field_value(raw: Any) -> FieldValue | None:
    """Wrap an untyped field value in the matching tagged value class."""
    if raw is None:
        return None
    if isinstance(raw, ScalarValue | TitledValue | RawValue):
        return raw
    if isinstance(raw, Mapping):
        if "title" in raw:
            title = raw["title"]
            if isinstance(title, Mapping):
                title = title.get("raw") or title.get("html") or ""
            return TitledValue(
                title=str(title),
                start_date=raw.get("startDate") or raw.get("start_date"),
                duration=raw.get("duration"),
            )
        if "raw" in raw:
            return RawValue(raw=str(raw["raw"]), html=raw.get("html"))
        return ScalarValue(json.dumps(raw, sort_keys=True, default=str))
    if isinstance(raw, str | int | float | bool):
        return ScalarValue(raw)
    return ScalarValue(str(raw))


def _rich_text(value: Any) -> str | None:
    """``{raw, html}`` -> raw; plain values -> str."""
    if isinstance(value, Mapping):
        raw = value.get("raw")
        return str(raw) if raw is not None else None
    return None if value is None else str(value)


def _named(value: Any) -> str:
    if isinstance(value, Mapping):
        name = value.get("name")
        if name is not None:
            return _rich_text(name) or ""
    return str(value)


def _rest_field_values(field: Mapping[str, Any]) -> dict[str, FieldValue]:
    """Custom field entries for one REST field value, keyed by field name."""
    name = field.get("name")
    value = field.get("value")
    data_type = field.get("data_type")
    if not name or value is None:
        return {}

    if data_type in ("assignees", "labels"):
        return {}  # taken from the content object
    if data_type in ("title", "text"):
        if isinstance(value, Mapping):
            raw = value.get("raw")
            return {name: RawValue(raw=str(raw), html=value.get("html"))} if raw else {}
        return {name: ScalarValue(str(value))}
    if data_type in ("number", "date"):
        return {name: ScalarValue(value)}
    if data_type in ("single_select", "issue_type"):
        return {name: ScalarValue(_named(value))}
    if data_type == "iteration":
        if isinstance(value, Mapping):
            title = value.get("title")
            title_text = (_rich_text(title) or "") if title is not None else str(value)
            return {
                name: TitledValue(
                    title=title_text,
                    start_date=value.get("start_date") or value.get("startDate"),
                    duration=value.get("duration"),
                )
            }
        return {name: ScalarValue(str(value))}
    if data_type == "parent_issue":
        if isinstance(value, Mapping) and value.get("number"):
            number = value["number"]
            prefix = f"{value['repository']}#{number}" if value.get("repository") else f"#{number}"
            return {
                name: ScalarValue(f"{prefix} {value.get('title') or ''}".strip()),
                PARENT_ISSUE_NUMBER_FIELD: ScalarValue(int(number)),
            }
        return {}
    if data_type == "milestone":
        if isinstance(value, Mapping) and value.get("title"):
            return {name: ScalarValue(str(value["title"]))}
        return {name: ScalarValue(str(value))}
    if data_type == "sub_issues_progress":
        if isinstance(value, Mapping):
            if "completed" in value and "total" in value:
                return {name: ScalarValue(f"{value['completed']}/{value['total']}")}
            return {name: ScalarValue(json.dumps(value, sort_keys=True, default=str))}
        return {}
    if data_type == "repository":
        if isinstance(value, Mapping) and value.get("name"):
            return {name: ScalarValue(str(value["name"]))}
        return {name: ScalarValue(str(value))}
    if data_type in ("linked_pull_requests", "reviewers"):
        if isinstance(value, list):
            return {name: ScalarValue(f"{len(value)} items")}
        return {}

    # Unknown data type: try the usual shapes in order of preference
    if isinstance(value, Mapping):
        for candidate in (value.get("name"), value.get("title")):
            if isinstance(candidate, Mapping) and candidate.get("raw"):
                return {name: ScalarValue(str(candidate["raw"]))}
        if value.get("raw"):
            return {name: RawValue(raw=str(value["raw"]), html=value.get("html"))}
        for candidate in (value.get("name"), value.get("title")):
            if candidate:
                return {name: ScalarValue(str(candidate))}
        return {name: ScalarValue(json.dumps(value, sort_keys=True, default=str))}
    return {name: ScalarValue(str(value))}


def _shortcut(custom_fields: Mapping[str, FieldValue], name: str) -> str | None:
    value = custom_fields.get(name)
    return field_text(value) if value is not None else None


# ------------------ REST items ------------------
def map_rest_item(
    raw: Mapping[str, Any],
    sample_logger: Callable[[Mapping[str, Any]], None] | None = None,
) -> WorkItem:
    if sample_logger is not None:
        sample_logger(raw)
    content = raw.get("content") or {}

    custom_fields: dict[str, FieldValue] = {}
    for field in raw.get("fields") or []:
        if isinstance(field, Mapping):
            custom_fields.update(_rest_field_values(field))

    repo_owner, repo_name = "Unknown", "Unknown"
    match = _REPOSITORY_URL.search(content.get("repository_url") or "")
    if match:
        repo_owner, repo_name = match.group(1), match.group(2)

    return WorkItem(
        id=str(raw.get("node_id") or raw.get("id") or ""),
        kind=CONTENT_TYPE_KINDS.get(raw.get("content_type") or "", "ISSUE"),
        number=content.get("number"),
        title=content.get("title") or "Untitled",
        url=content.get("html_url") or content.get("url") or "",
        state=content.get("state") or "open",
        repository=repo_name,
        repository_owner=repo_owner,
        assignees=tuple(
            Assignee(login=a.get("login", ""), avatar_url=a.get("avatar_url", ""))
            for a in content.get("assignees") or []
        ),
        labels=tuple(
            Label(name=lbl.get("name", ""), color=lbl.get("color", "")) for lbl in content.get("labels") or []
        ),
        created_at=content.get("created_at") or raw.get("created_at") or "",
        updated_at=content.get("updated_at") or raw.get("updated_at") or "",
        status=_shortcut(custom_fields, STATUS_FIELD),
        priority=_shortcut(custom_fields, PRIORITY_FIELD),
        custom_fields=custom_fields,
    )


# ------------------ Already-normalized payloads ------------------
def map_item_dict(data: Mapping[str, Any]) -> WorkItem:
    """Build a WorkItem from the flat item shape served by the dashboard API.

    Accepts snake_case or camelCase keys; custom field values are wrapped with
    :func:`coerce_field_value`.
    """

    def pick(*keys: str, default: Any = None) -> Any:
        for key in keys:
            if data.get(key) is not None:
                return data[key]
        return default

    custom_fields: dict[str, FieldValue] = {}
    for name, value in (pick("custom_fields", "customFields", default={}) or {}).items():
        coerced = coerce_field_value(value)
        if coerced is not None:
            custom_fields[str(name)] = coerced

    return WorkItem(
        id=str(pick("id", default="")),
        kind=pick("kind", "type", default="ISSUE"),
        number=pick("number"),
        title=pick("title", default="Untitled"),
        url=pick("url", default=""),
        state=pick("state", default=""),
        repository=pick("repository", default=""),
        repository_owner=pick("repository_owner", "repositoryOwner", default=""),
        assignees=tuple(
            Assignee(login=a.get("login", ""), avatar_url=a.get("avatarUrl") or a.get("avatar_url") or "")
            for a in pick("assignees", default=[]) or []
        ),
        labels=tuple(
            Label(name=lbl.get("name", ""), color=lbl.get("color", "")) for lbl in pick("labels", default=[]) or []
        ),
        created_at=pick("created_at", "createdAt", default=""),
        updated_at=pick("updated_at", "updatedAt", default=""),
        status=pick("status"),
        priority=pick("priority"),
        custom_fields=custom_fields,
    )


# ------------------ GraphQL items ------------------
def _graphql_field_value(node: Mapping[str, Any]) -> FieldValue | None:
    for key in ("text", "number", "date", "name"):
        if node.get(key) is not None:
            return ScalarValue(node[key])
    if node.get("title") is not None:
        return TitledValue(title=str(node["title"]), start_date=node.get("startDate"), duration=node.get("duration"))
    return None


def map_graphql_item(raw: Mapping[str, Any]) -> WorkItem:
    content = raw.get("content") or {}
    content_type = content.get("__typename")

    custom_fields: dict[str, FieldValue] = {}
    for node in (raw.get("fieldValues") or {}).get("nodes") or []:
        field = (node or {}).get("field") or {}
        if not field.get("name"):
            continue
        value = _graphql_field_value(node)
        if value is not None:
            custom_fields[field["name"]] = value

    parent = content.get("parent") if content_type == "Issue" else None
    if parent:
        custom_fields[PARENT_ISSUE_FIELD] = ScalarValue(parent.get("title") or "")
        if parent.get("number") is not None:
            custom_fields[PARENT_ISSUE_NUMBER_FIELD] = ScalarValue(int(parent["number"]))

    repository = content.get("repository") or {}
    return WorkItem(
        id=str(raw.get("id") or ""),
        kind=CONTENT_TYPE_KINDS.get(content_type or "", "DRAFT_ISSUE"),
        number=content.get("number"),
        title=content.get("title") or "Untitled",
        url=content.get("url") or "",
        state=content.get("state") or "UNKNOWN",
        repository=repository.get("name") or "No Repository",
        repository_owner=(repository.get("owner") or {}).get("login") or "",
        assignees=tuple(
            Assignee(login=a.get("login", ""), avatar_url=a.get("avatarUrl", ""))
            for a in (content.get("assignees") or {}).get("nodes") or []
        ),
        labels=tuple(
            Label(name=lbl.get("name", ""), color=lbl.get("color", ""))
            for lbl in (content.get("labels") or {}).get("nodes") or []
        ),
        created_at=content.get("createdAt") or "",
        updated_at=content.get("updatedAt") or "",
        status=_shortcut(custom_fields, STATUS_FIELD),
        priority=_shortcut(custom_fields, PRIORITY_FIELD),
        custom_fields=custom_fields,
    )


# ------------------ Views and field metadata ------------------
def map_field_configuration(raw: Mapping[str, Any]) -> FieldConfiguration:
    """Single-select options, or iteration titles, become the ordered options."""
    options: list[FieldOption] = []
    for opt in raw.get("options") or []:
        options.append(FieldOption(name=_named(opt), color=opt.get("color"), id=opt.get("id")))
    if not options:
        configuration = raw.get("configuration") or {}
        for it in configuration.get("iterations") or []:
            options.append(FieldOption(name=str(it.get("title", "")), id=it.get("id")))
    return FieldConfiguration(
        id=str(raw.get("id") or ""),
        name=str(raw.get("name") or ""),
        data_type=raw.get("dataType") or raw.get("data_type"),
        options=tuple(options),
    )


def _field_names(block: Mapping[str, Any] | None) -> list[str]:
    return [n["name"] for n in (block or {}).get("nodes") or [] if n and n.get("name")]


def map_graphql_view(raw: Mapping[str, Any]) -> ViewConfig:
    sort_by: list[SortConfig] = []
    for node in (raw.get("sortByFields") or {}).get("nodes") or []:
        name = ((node or {}).get("field") or {}).get("name")
        if name:
            direction = "DESC" if str(node.get("direction", "")).upper() == "DESC" else "ASC"
            sort_by.append(SortConfig(field=name, direction=direction))
    group_by = _field_names(raw.get("groupByFields")) + _field_names(raw.get("verticalGroupByFields"))
    return ViewConfig(
        id=str(raw.get("id") or ""),
        name=str(raw.get("name") or "Untitled view"),
        layout=VIEW_LAYOUTS.get(str(raw.get("layout") or ""), "TABLE"),
        number=raw.get("number"),
        filter_expression=raw.get("filter") or None,
        group_by_fields=tuple(dict.fromkeys(group_by)),
        sort_by_fields=tuple(sort_by),
    )


def map_view_fields(raw_view: Mapping[str, Any]) -> dict[str, FieldConfiguration]:
    """Field metadata referenced by a view, keyed by field name."""
    out: dict[str, FieldConfiguration] = {}
    for node in (raw_view.get("fields") or {}).get("nodes") or []:
        if node and node.get("name"):
            out[node["name"]] = map_field_configuration(node)
    return out


# ------------------ Tabular form ------------------
ITEM_CORE_COLUMNS = (
    "id",
    "kind",
    "number",
    "title",
    "state",
    "repository",
    "repository_owner",
    "assignees",
    "labels",
    "status",
    "priority",
    "created_at",
    "updated_at",
    "url",
)


def items_to_dataframe(items: Iterable[WorkItem]) -> pd.DataFrame:
    """One row per item; custom fields become extra columns of display text."""
    rows: list[dict[str, Any]] = []
    for item in items:
        row: dict[str, Any] = {
            "id": item.id,
            "kind": item.kind,
            "number": item.number,
            "title": item.title,
            "state": item.state,
            "repository": item.repository,
            "repository_owner": item.repository_owner,
            "assignees": [a.login for a in item.assignees],
            "labels": [label.name for label in item.labels],
            "status": item.status,
            "priority": item.priority,
            "created_at": item.created_at,
            "updated_at": item.updated_at,
            "url": item.url,
        }
        for name, value in (item.custom_fields or {}).items():
            if name not in row:
                row[name] = field_text(value) if value is not None else None
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=list(ITEM_CORE_COLUMNS))
    df = pd.DataFrame(rows)
    for col in ("created_at", "updated_at"):
        df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)
    return df
