"""Reusable table helpers for Streamlit rendering."""

from __future__ import annotations

import pandas as pd
import streamlit as st

DISPLAY_ORDER_ITEMS: tuple[str, ...] = (
    "Item",
    "title",
    "state",
    "kind",
    "repository",
    "assignees",
    "labels",
    "status",
    "priority",
    "updated_at",
)

COLUMN_LABELS: dict[str, str] = {
    "title": "Title",
    "state": "State",
    "kind": "Type",
    "repository": "Repository",
    "assignees": "Assignees",
    "labels": "Labels",
    "status": "Status",
    "priority": "Priority",
    "created_at": "Created",
    "updated_at": "Updated",
    "state_label": "State",
    "author": "Author",
    "review_status": "Review",
    "check_status": "Checks",
    "comments_unresolved": "Open threads",
    "name": "Workflow",
    "branch": "Branch",
    "status_label": "Result",
    "event": "Trigger",
    "run_number": "Run",
    "description": "Description",
    "category": "Category",
    "language": "Language",
    "stars": "Stars",
    "forks": "Forks",
    "issues": "Open issues",
    "size": "Size",
}

PULL_REQUEST_COLUMNS: tuple[str, ...] = (
    "Item",
    "title",
    "state_label",
    "repository",
    "author",
    "review_status",
    "check_status",
    "comments_unresolved",
    "updated_at",
)
WORKFLOW_RUN_COLUMNS: tuple[str, ...] = (
    "Item",
    "name",
    "repository",
    "branch",
    "status_label",
    "event",
    "run_number",
    "updated_at",
)
REPOSITORY_COLUMNS: tuple[str, ...] = (
    "Item",
    "description",
    "category",
    "language",
    "stars",
    "forks",
    "issues",
    "size",
    "updated_at",
)


def add_item_link(df: pd.DataFrame, label: str = "Item") -> tuple[pd.DataFrame, dict[str, object]]:
    """Add a ``repo#number`` link column pointing at each item's URL."""
    if df.empty or "url" not in df.columns:
        return df, {}
    out = df.copy()
    out[label] = out["url"].fillna("").astype(str)
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"github\.com/[^/]+/(.+)$",
            help="Open on GitHub",
            width="small",
        )
    }
    return out, cfg


def prepare_item_table(
    df: pd.DataFrame,
    *,
    extra_columns: list[str] | None = None,
) -> tuple[pd.DataFrame, list[str], dict[str, object]]:
    if df.empty:
        return df, [], {}

    table, cfg = add_item_link(df)
    display_cols = [col for col in DISPLAY_ORDER_ITEMS if col in table.columns]
    for col in extra_columns or []:
        if col in table.columns and col not in display_cols:
            display_cols.append(col)

    for col in ("assignees", "labels"):
        if col in display_cols:
            cfg[col] = st.column_config.ListColumn(COLUMN_LABELS[col])
    if "updated_at" in display_cols:
        cfg["updated_at"] = st.column_config.DatetimeColumn("Updated", format="YYYY-MM-DD HH:mm")
    for col in display_cols:
        if col in COLUMN_LABELS and col not in cfg:
            cfg[col] = st.column_config.Column(COLUMN_LABELS[col])
    return table, display_cols, cfg


def prepare_activity_table(
    df: pd.DataFrame,
    columns: tuple[str, ...],
) -> tuple[pd.DataFrame, list[str], dict[str, object]]:
    """Link column plus labelled ``columns`` for repository, PR and workflow tables."""
    if df.empty:
        return df, [], {}
    table, cfg = add_item_link(df)
    display_cols = [col for col in columns if col in table.columns]
    if "updated_at" in display_cols:
        cfg["updated_at"] = st.column_config.DatetimeColumn("Updated", format="YYYY-MM-DD HH:mm")
    for col in display_cols:
        if col in COLUMN_LABELS and col not in cfg:
            cfg[col] = st.column_config.Column(COLUMN_LABELS[col])
    return table, display_cols, cfg
