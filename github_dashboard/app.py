"""Application entry point: page registry and router."""

from __future__ import annotations

import streamlit as st

PAGES = {}


def read_secrets() -> dict:
    """Streamlit secrets as a plain dict; empty when no secrets file exists."""
    try:
        return st.secrets.to_dict()
    except FileNotFoundError:
        return {}


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def main():
    st.sidebar.title("GitHub Projects Dashboard")
    pages = list(PAGES.keys())
    if not pages:
        st.write("No pages registered yet.")
        return
    preferred_order = [
        "Project View",
        "Pull Requests",
        "Workflow Status",
        "Repositories",
        "Setup / Connection",
    ]
    ordered = [name for name in preferred_order if name in pages]
    trailing = sorted(name for name in pages if name not in preferred_order)
    pages = ordered + trailing

    # Without a service the only useful page is setup
    if "Setup / Connection" in pages and "project_service" not in st.session_state:
        default = pages.index("Setup / Connection")
    else:
        default = 0
    page = st.sidebar.selectbox("Page", pages, index=default)
    PAGES[page]()


if __name__ == "__main__":
    main()
