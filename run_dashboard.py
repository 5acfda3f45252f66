"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``github_dashboard/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

import logging
from importlib import import_module
from pathlib import Path

import streamlit as st

from github_dashboard.app import main, read_secrets
from github_dashboard.core.config import load_settings

st.set_page_config(layout="wide")
logger = logging.getLogger(__name__)


def _auto_init_project_service():
    """Initialize the GitHub service from Streamlit secrets if available."""
    if "project_service" in st.session_state:
        return

    settings = load_settings(read_secrets())
    if settings.token:
        st.sidebar.info("Secrets found, connecting to GitHub...")
        try:
            from github_dashboard.core.github_client import GitHubAPI
            from github_dashboard.core.service import ProjectService

            api = GitHubAPI(settings.token, settings.owner)
            st.session_state["github_owner"] = settings.owner
            st.session_state["cache_stale_seconds"] = settings.stale_seconds
            st.session_state["refresh_interval"] = settings.refresh_interval
            st.session_state["max_table_rows"] = settings.max_table_rows
            st.session_state["project_service"] = ProjectService(api)
            st.sidebar.success("GitHub connection ready.")
        except Exception as e:
            st.sidebar.error(f"GitHub connection failed: {e}")
            st.session_state.pop("project_service", None)
    else:
        st.sidebar.warning("GitHub token not found in secrets. Please use the Setup page.")


_auto_init_project_service()

PAGES_DIR = Path(__file__).parent / "github_dashboard" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"github_dashboard.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception as e:  # pragma: no cover
        logger.warning("Failed importing page %s: %s", mod_name, e)

if __name__ == "__main__":
    main()
