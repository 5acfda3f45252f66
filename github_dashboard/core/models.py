"""Domain data models for project work items, saved views, field metadata, and repository activity."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

ItemKind = Literal["ISSUE", "PULL_REQUEST", "DRAFT_ISSUE"]
ViewLayout = Literal["TABLE", "BOARD", "ROADMAP"]
SortDirection = Literal["ASC", "DESC"]


# ------------------ Custom field values ------------------
@dataclass(frozen=True, slots=True)
class ScalarValue:
    value: str | int | float | bool


@dataclass(frozen=True, slots=True)
class TitledValue:
    """Iteration-style value: a named span of time."""

    title: str
    start_date: str | None = None
    duration: int | None = None


@dataclass(frozen=True, slots=True)
class RawValue:
    """Rich-text value as returned by the REST API (``{raw, html}``)."""

    raw: str
    html: str | None = None


FieldValue = ScalarValue | TitledValue | RawValue


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def field_text(value: Any) -> str:
    """Display text for a custom field value of any supported encoding.

    Tagged values use their own extraction; untagged mappings are checked for a
    ``title`` (iteration) or ``raw`` (rich text) key before being stringified.
    """
    if isinstance(value, TitledValue):
        return str(value.title)
    if isinstance(value, RawValue):
        return str(value.raw)
    if isinstance(value, ScalarValue):
        return _format_scalar(value.value)
    if isinstance(value, Mapping):
        if "title" in value:
            return str(value["title"])
        if "raw" in value:
            return str(value["raw"])
    return _format_scalar(value)


def has_field_value(value: Any) -> bool:
    """True when a stored custom field value counts as present."""
    if value is None:
        return False
    return field_text(value) != ""


# ------------------ Work items ------------------
@dataclass(frozen=True, slots=True)
class Assignee:
    login: str
    avatar_url: str = ""


@dataclass(frozen=True, slots=True)
class Label:
    name: str
    color: str = ""


@dataclass(frozen=True, slots=True)
class WorkItem:
    id: str
    kind: ItemKind = "ISSUE"
    title: str = "Untitled"
    url: str = ""
    state: str = ""
    repository: str = ""
    repository_owner: str = ""
    number: int | None = None
    assignees: tuple[Assignee, ...] = ()
    labels: tuple[Label, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    status: str | None = None
    priority: str | None = None
    custom_fields: Mapping[str, Any] = field(default_factory=dict)


# ------------------ Views and fields ------------------
@dataclass(frozen=True, slots=True)
class SortConfig:
    field: str
    direction: SortDirection = "ASC"


@dataclass(frozen=True, slots=True)
class ViewConfig:
    id: str
    name: str
    layout: ViewLayout = "TABLE"
    number: int | None = None
    filter_expression: str | None = None
    group_by_fields: tuple[str, ...] = ()
    sort_by_fields: tuple[SortConfig, ...] = ()


@dataclass(frozen=True, slots=True)
class FieldOption:
    name: str
    color: str | None = None
    id: str | None = None


@dataclass(frozen=True, slots=True)
class FieldConfiguration:
    id: str
    name: str
    data_type: str | None = None
    options: tuple[FieldOption, ...] = ()


@dataclass(slots=True)
class GroupedItems:
    name: str
    count: int
    items: list[WorkItem]
    color: str | None = None
    order: float = math.inf
    subgroups: list[GroupedItems] | None = None


# ------------------ Repositories, pull requests, workflow runs ------------------
ReviewStatus = Literal["approved", "changes_requested", "pending", "commented"]
CheckStatus = Literal["success", "failure", "pending", "neutral"]


@dataclass(frozen=True, slots=True)
class Repository:
    id: int
    name: str
    full_name: str
    description: str = "No description available"
    language: str = "Unknown"
    is_private: bool = False
    stars: int = 0
    forks: int = 0
    issues: int = 0
    updated_at: str = ""
    created_at: str = ""
    url: str = ""
    topics: tuple[str, ...] = ()
    size_kb: int = 0
    default_branch: str = "main"
    category: str = "General"
    tech_stack: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PullRequest:
    id: int
    number: int
    title: str
    state: str  # GitHub's "open" / "closed"; see state_label for merged and draft
    url: str
    repository: str
    repository_full_name: str
    author: str = ""
    created_at: str = ""
    updated_at: str = ""
    closed_at: str | None = None
    merged_at: str | None = None
    draft: bool = False
    head_ref: str = ""
    base_ref: str = ""
    assignees: tuple[Assignee, ...] = ()
    labels: tuple[Label, ...] = ()
    review_status: ReviewStatus = "pending"
    check_status: CheckStatus = "neutral"
    comments_total: int = 0
    comments_unresolved: int = 0

    @property
    def state_label(self) -> str:
        if self.merged_at:
            return "Merged"
        if self.state == "open":
            return "Draft" if self.draft else "Open"
        return "Closed"


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """Latest run of one workflow on one branch."""

    id: str
    workflow_id: int
    name: str
    repository: str
    branch: str
    state: str
    status: str
    updated_at: str = ""
    url: str = ""
    workflow_url: str = ""
    badge_url: str = ""
    run_number: int | None = None
    event: str = ""
    is_private: bool = False
