"""Repositories of the owner, categorized and sorted by last update."""

from __future__ import annotations

import streamlit as st

from github_dashboard.app import register_page
from github_dashboard.core.activity import CATEGORY_LABELS, format_size, records_to_dataframe
from github_dashboard.core.service import ActivityService, ProjectService
from github_dashboard.pages._common import cached, freshness_caption, show_fetch_error
from github_dashboard.visual.tables import REPOSITORY_COLUMNS, prepare_activity_table


@register_page("Repositories")
def repositories_page():
    st.title("Repositories")
    service: ProjectService | None = st.session_state.get("project_service")
    if service is None:
        st.warning("Initialize connection on Setup page first.")
        return
    owner = st.session_state.get("github_owner", service.api.owner)
    activity = ActivityService(service.api)

    fetch = cached(service, f"repositories:{owner}", activity.get_repositories)
    col_refresh, col_caption = st.columns([1, 4])
    if col_refresh.button("Refresh", type="primary"):
        fetch.invalidate()
        fetch.refresh()
    col_caption.caption(freshness_caption(fetch))
    if show_fetch_error(fetch, "repositories"):
        if fetch.pending:
            st.info("Loading repositories...")
        return

    repos = fetch.data or []
    if not repos:
        st.info(f"No repositories found for {owner}.")
        return
    df = records_to_dataframe(repos)
    df["size"] = df["size_kb"].map(format_size)
    df["category"] = df["category"].map(lambda c: CATEGORY_LABELS.get(c, c))

    m1, m2, m3 = st.columns(3)
    m1.metric("Repositories", len(df))
    m2.metric("Private", int(df["is_private"].sum()))
    m3.metric("Open issues", int(df["issues"].sum()))

    categories = st.sidebar.multiselect("Category", sorted(df["category"].unique()))
    if categories:
        df = df[df["category"].isin(categories)]
    table, display_cols, cfg = prepare_activity_table(df, REPOSITORY_COLUMNS)
    st.dataframe(table[display_cols], hide_index=True, column_config=cfg)
