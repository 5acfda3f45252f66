"""View-state pipeline: resolve fields, filter, group, and sort work items."""

from github_dashboard.views.filtering import filter_items, matches_filters, parse_filter_string
from github_dashboard.views.grouping import flatten_groups, group_items, group_items_dual, is_empty_group
from github_dashboard.views.plan import RenderPlan, build_render_plan
from github_dashboard.views.resolver import resolve_field
from github_dashboard.views.sorting import compare_values, sort_items, sort_items_multiple

__all__ = [
    "RenderPlan",
    "build_render_plan",
    "compare_values",
    "filter_items",
    "flatten_groups",
    "group_items",
    "group_items_dual",
    "is_empty_group",
    "matches_filters",
    "parse_filter_string",
    "resolve_field",
    "sort_items",
    "sort_items_multiple",
]
