"""Pull requests across the owner's repositories, with review and CI summaries."""

from __future__ import annotations

import streamlit as st

from github_dashboard.app import register_page
from github_dashboard.core.activity import pull_request_stats, records_to_dataframe
from github_dashboard.core.config import PULL_REQUEST_STATES
from github_dashboard.core.service import ActivityService, ProjectService
from github_dashboard.pages._common import cached, freshness_caption, show_fetch_error
from github_dashboard.visual.tables import PULL_REQUEST_COLUMNS, prepare_activity_table

REVIEW_ICONS = {"approved": "👍", "changes_requested": "⚠️", "commented": "💬", "pending": "👀"}
CHECK_ICONS = {"success": "✅", "failure": "❌", "pending": "⏳", "neutral": "⚪"}


@register_page("Pull Requests")
def pull_requests_page():
    st.title("Pull Requests")
    service: ProjectService | None = st.session_state.get("project_service")
    if service is None:
        st.warning("Initialize connection on Setup page first.")
        return
    owner = st.session_state.get("github_owner", service.api.owner)
    activity = ActivityService(service.api)

    state = st.radio("State", list(PULL_REQUEST_STATES), horizontal=True)
    fetch = cached(service, f"pulls:{owner}:{state}", lambda: activity.fetch_pull_requests(state))
    col_refresh, col_caption = st.columns([1, 4])
    if col_refresh.button("Refresh", type="primary"):
        fetch.invalidate()
        fetch.refresh()
    col_caption.caption(freshness_caption(fetch))
    if show_fetch_error(fetch, "pull requests"):
        if fetch.pending:
            st.info("Loading pull requests...")
        return

    prs = fetch.data or []
    stats = pull_request_stats(prs)
    cols = st.columns(6)
    for col, key in zip(cols, ("total", "open", "draft", "merged", "closed", "repositories"), strict=True):
        col.metric(key.title(), stats[key])
    if not prs:
        st.info(f"No {state} pull requests found for {owner}.")
        return

    df = records_to_dataframe(prs)
    repos = sorted(df["repository"].unique())
    picked = st.sidebar.multiselect("Repositories", repos)
    if picked:
        df = df[df["repository"].isin(picked)]
    df = df.assign(
        review_status=df["review_status"].map(lambda s: f"{REVIEW_ICONS.get(s, '')} {s}".strip()),
        check_status=df["check_status"].map(lambda s: f"{CHECK_ICONS.get(s, '')} {s}".strip()),
    )
    table, display_cols, cfg = prepare_activity_table(df, PULL_REQUEST_COLUMNS)
    st.dataframe(table[display_cols], hide_index=True, column_config=cfg)
