"""Session helpers shared by the dashboard pages."""

from __future__ import annotations

from datetime import datetime

import pytz
import streamlit as st

from github_dashboard.core.cache import CachedFetch, FetchRegistry
from github_dashboard.core.config import DEFAULT_STALE_SECONDS, TIMEZONE

REGISTRY_KEY = "fetch_registry"


def session_registry(service: object) -> FetchRegistry:
    """The session's FetchRegistry, rebuilt whenever ``service`` is replaced.

    Replacing the service (new token or owner on the Setup page) closes every
    consumer of the previous registry, so no timer keeps the old client alive.
    """
    registry: FetchRegistry | None = st.session_state.get(REGISTRY_KEY)
    if registry is not None and st.session_state.get(f"{REGISTRY_KEY}_service") is service and not registry.closed:
        return registry
    if registry is not None:
        registry.close()
    registry = FetchRegistry(
        stale_seconds=st.session_state.get("cache_stale_seconds", DEFAULT_STALE_SECONDS),
        refresh_interval=st.session_state.get("refresh_interval"),
    )
    st.session_state[REGISTRY_KEY] = registry
    st.session_state[f"{REGISTRY_KEY}_service"] = service
    return registry


def cached(service: object, key: str, fetcher) -> CachedFetch:
    """Mounted consumer for ``key``; replaces the previous key of the same slot."""
    return session_registry(service).acquire(key, fetcher)


def freshness_caption(fetch: CachedFetch) -> str:
    if fetch.last_updated is None:
        return "Not loaded yet."
    tz = pytz.timezone(TIMEZONE)
    stamp = datetime.fromtimestamp(fetch.last_updated, tz).strftime("%Y-%m-%d %H:%M:%S %Z")
    caption = f"Last updated {stamp}"
    if fetch.is_refreshing:
        caption += " (refreshing...)"
    elif fetch.is_stale:
        caption += " (stale)"
    return caption


def show_fetch_error(fetch: CachedFetch, what: str) -> bool:
    """Report a failed fetch; True when there is nothing to render."""
    if fetch.error is None:
        return fetch.pending
    if fetch.data is None:
        st.error(f"Failed to load {what}: {fetch.error}")
        return True
    st.warning(f"Showing cached {what}; last refresh failed: {fetch.error}")
    return False


def reset_registry() -> None:
    """Close every consumer of the session; called when the connection changes."""
    registry: FetchRegistry | None = st.session_state.pop(REGISTRY_KEY, None)
    st.session_state.pop(f"{REGISTRY_KEY}_service", None)
    if registry is not None:
        registry.close()
