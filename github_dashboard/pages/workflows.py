"""Latest GitHub Actions result per workflow and branch."""

from __future__ import annotations

import streamlit as st

from github_dashboard.app import register_page
from github_dashboard.core.activity import records_to_dataframe, workflow_status_label
from github_dashboard.core.service import ActivityService, ProjectService
from github_dashboard.pages._common import cached, freshness_caption, show_fetch_error
from github_dashboard.visual.tables import WORKFLOW_RUN_COLUMNS, prepare_activity_table


@register_page("Workflow Status")
def workflows_page():
    st.title("Workflow Status")
    service: ProjectService | None = st.session_state.get("project_service")
    if service is None:
        st.warning("Initialize connection on Setup page first.")
        return
    owner = st.session_state.get("github_owner", service.api.owner)
    activity = ActivityService(service.api)

    fetch = cached(service, f"workflows:{owner}", activity.fetch_workflow_runs)
    col_refresh, col_caption = st.columns([1, 4])
    if col_refresh.button("Refresh", type="primary"):
        fetch.invalidate()
        fetch.refresh()
    col_caption.caption(freshness_caption(fetch))
    if show_fetch_error(fetch, "workflow runs"):
        if fetch.pending:
            st.info("Loading workflow runs...")
        return

    runs = fetch.data or []
    if not runs:
        st.info(f"No workflow runs found for {owner}.")
        return
    df = records_to_dataframe(runs)
    df["status_label"] = [workflow_status_label(s, r) for s, r in zip(df["state"], df["status"], strict=True)]

    counts = df["status_label"].value_counts()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Workflows", len(df))
    m2.metric("Failed", int(counts.get("Failed", 0)))
    m3.metric("Running", int(counts.get("Running", 0)))
    m4.metric("Success", int(counts.get("Success", 0) + counts.get("Passed", 0)))

    with st.sidebar:
        results = st.multiselect("Result", sorted(df["status_label"].unique()))
        branches = st.multiselect("Branch", sorted(df["branch"].unique()))
    if results:
        df = df[df["status_label"].isin(results)]
    if branches:
        df = df[df["branch"].isin(branches)]
    table, display_cols, cfg = prepare_activity_table(df, WORKFLOW_RUN_COLUMNS)
    st.dataframe(table[display_cols], hide_index=True, column_config=cfg)
