"""Central configuration, constants, and dashboard settings."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

# =============================================================================
# GitHub Connection Settings
# =============================================================================
GITHUB_API_URL = "https://api.github.com"
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_OWNER = "Oracommit"
USER_AGENT = "GitHub-Dashboard/1.0"
TIMEZONE = "UTC"

REST_PAGE_SIZE = 100
GRAPHQL_PAGE_SIZE = 100
REQUEST_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Client Cache
# =============================================================================
DEFAULT_STALE_SECONDS: float = 5 * 60  # data older than this is refreshed on mount
CACHE_MAX_WORKERS = 4  # background refresh threads shared by all cache consumers

# =============================================================================
# Repository Activity
# =============================================================================
ACTIVITY_MAX_WORKERS = 5  # repositories fetched concurrently for PR and workflow pages
WORKFLOW_RUNS_PER_WORKFLOW = 10
PULL_REQUEST_STATES: Sequence[str] = ("open", "closed", "all")

# Topics that count as tech-stack entries next to the primary language
TECH_TOPICS: frozenset[str] = frozenset(
    {
        "vue",
        "nuxt",
        "react",
        "next",
        "node",
        "typescript",
        "javascript",
        "python",
        "docker",
        "kubernetes",
        "aws",
        "vercel",
        "supabase",
    }
)

# =============================================================================
# Work Item Vocabularies
# =============================================================================
ITEM_KINDS: Sequence[str] = ("ISSUE", "PULL_REQUEST", "DRAFT_ISSUE")

# GraphQL content __typename / REST content_type -> normalized kind
CONTENT_TYPE_KINDS: dict[str, str] = {
    "Issue": "ISSUE",
    "PullRequest": "PULL_REQUEST",
    "DraftIssue": "DRAFT_ISSUE",
}

VIEW_LAYOUTS: dict[str, str] = {
    "TABLE_LAYOUT": "TABLE",
    "BOARD_LAYOUT": "BOARD",
    "ROADMAP_LAYOUT": "ROADMAP",
    "TABLE": "TABLE",
    "BOARD": "BOARD",
    "ROADMAP": "ROADMAP",
}

# Custom field names written by the normalizers
STATUS_FIELD = "Status"
PRIORITY_FIELD = "Priority"
PARENT_ISSUE_FIELD = "Parent issue"
PARENT_ISSUE_NUMBER_FIELD = "Parent issue number"

# =============================================================================
# Grouping
# =============================================================================
ALL_ITEMS_GROUP = "All Items"

# Bucket names treated as "no value"; these always sort ahead of real values
EMPTY_GROUP_NAMES: frozenset[str] = frozenset(
    {
        "No Value",
        "No Status",
        "Unknown",
        "Unassigned",
    }
)
EMPTY_GROUP_PREFIX = "No "

# Fields always offered in the group-by picker, even if no item carries them
BUILTIN_GROUP_FIELDS: Sequence[str] = (
    "Status",
    "State",
    "Type",
    "Assignees",
    "Repository",
    "Priority",
    "Labels",
)

# Custom fields hidden from the quick filter panel
EXCLUDED_FILTER_FIELDS: frozenset[str] = frozenset({"Devs", "Sub-issues progress_data"})

# =============================================================================
# UI Defaults
# =============================================================================
DEFAULT_REFRESH_INTERVAL_SECONDS: float | None = None
DEFAULT_SORT_DIRECTION = "ASC"


@dataclass(slots=True)
class DashboardSettings:
    owner: str = DEFAULT_OWNER
    token: str | None = None
    stale_seconds: float = DEFAULT_STALE_SECONDS
    refresh_interval: float | None = DEFAULT_REFRESH_INTERVAL_SECONDS
    max_table_rows: int = 1000


def load_settings(secrets: Mapping[str, Any] | None = None) -> DashboardSettings:
    """Build settings from a secrets mapping.

    Looks in a ``[github]`` section first and falls back to top-level keys, the
    same lookup chain the Streamlit secrets file supports.
    """
    secrets = secrets or {}
    section = secrets.get("github", {}) or {}

    def pick(*names: str) -> Any:
        for name in names:
            value = section.get(name)
            if value:
                return value
        for name in names:
            value = secrets.get(name)
            if value:
                return value
        return None

    settings = DashboardSettings()
    owner = pick("GITHUB_OWNER", "OWNER")
    if owner:
        settings.owner = str(owner)
    settings.token = pick("GITHUB_TOKEN", "TOKEN")
    stale = pick("CACHE_STALE_SECONDS")
    if stale is not None:
        settings.stale_seconds = float(stale)
    interval = pick("REFRESH_INTERVAL_SECONDS")
    if interval is not None:
        settings.refresh_interval = float(interval)
    return settings
