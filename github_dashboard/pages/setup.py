"""Connection setup page: collect GitHub credentials and initialize ProjectService."""

from __future__ import annotations

import streamlit as st

from github_dashboard.app import read_secrets, register_page
from github_dashboard.core.config import DEFAULT_STALE_SECONDS, load_settings
from github_dashboard.core.github_client import GitHubAPI
from github_dashboard.core.service import ProjectService
from github_dashboard.pages._common import reset_registry


@register_page("Setup / Connection")
def setup_page():
    st.title("GitHub Connection Setup")
    st.caption("Enter an owner and a token with project read access (use secrets in production).")

    settings = load_settings(read_secrets())
    owner = st.text_input("Organization", value=st.session_state.get("github_owner") or settings.owner)
    token = st.text_input("Personal Access Token", type="password", value=settings.token or "")
    stale = st.number_input(
        "Refresh cached data older than (seconds)",
        min_value=30,
        max_value=3600,
        value=int(settings.stale_seconds or DEFAULT_STALE_SECONDS),
    )
    interval = st.number_input(
        "Auto refresh interval (seconds, 0 = off)",
        min_value=0,
        max_value=3600,
        value=int(settings.refresh_interval or 0),
    )
    init_btn = st.button("Initialize Connection", type="primary")

    if init_btn:
        if not (owner and token):
            st.error("Organization and token are required.")
            return
        try:
            api = GitHubAPI(token, owner)
            reset_registry()
            st.session_state["github_owner"] = owner
            st.session_state["cache_stale_seconds"] = float(stale)
            st.session_state["refresh_interval"] = float(interval) or None
            st.session_state["project_service"] = ProjectService(api)
            st.success("Connection initialized.")
        except Exception as e:  # pragma: no cover
            st.error(f"Failed to initialize GitHub client: {e}")

    if "project_service" in st.session_state:
        st.info("ProjectService ready.")
