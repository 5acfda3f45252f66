"""Project view page.

Loads a project's items (cached per session, refreshed in the background once
stale) and renders one of its saved views: view filter, grouping, and sorting,
plus the sidebar quick filters.
"""

from __future__ import annotations

import streamlit as st

from github_dashboard.analytics.stats import compute_count, summarize_groups
from github_dashboard.app import register_page
from github_dashboard.core.mappers import items_to_dataframe
from github_dashboard.core.models import GroupedItems
from github_dashboard.core.service import ProjectService, ProjectViews
from github_dashboard.core.view_config import load_saved_views
from github_dashboard.pages._common import cached, freshness_caption
from github_dashboard.views.quick_filters import (
    ALL,
    QuickFilters,
    available_group_fields,
    custom_selections,
    filter_options,
)
from github_dashboard.visual.tables import prepare_item_table

VIEW_GROUP_CHOICE = "(view default)"


def _render_group_table(group: GroupedItems, limit: int) -> None:
    df = items_to_dataframe(group.items)
    prepared, display_cols, cfg = prepare_item_table(df)
    if not display_cols:
        st.caption("No items.")
        return
    st.dataframe(prepared[display_cols].head(limit), hide_index=True, column_config=cfg)


@register_page("Project View")
def project_view_page():
    st.title("Project View")
    service: ProjectService | None = st.session_state.get("project_service")
    if service is None:
        st.warning("Initialize connection on Setup page first.")
        return
    owner = st.session_state.get("github_owner", service.api.owner)

    projects_fetch = cached(service, f"projects:{owner}", service.get_projects)
    if projects_fetch.error is not None and projects_fetch.data is None:
        st.error(f"Failed to list projects: {projects_fetch.error}")
        return
    projects = projects_fetch.data or []
    if not projects:
        st.info(f"No projects found for {owner}.")
        return

    titles = {f"#{p.get('number')} {p.get('title') or 'Untitled'}": p for p in projects}
    choice = st.selectbox("Project", list(titles))
    project = titles[choice]
    source = st.radio("Item source", ["graphql", "rest"], horizontal=True)

    if source == "rest":
        project_ref = project.get("number")
    else:
        project_ref = project.get("node_id") or project.get("id")
    items_fetch = cached(
        service,
        f"items:{source}:{project_ref}",
        lambda: service.fetch_items(project_ref, source=source),
    )

    views: ProjectViews | None = None
    if source == "graphql":
        views_fetch = cached(service, f"views:{project_ref}", lambda: service.fetch_views(str(project_ref)))
        views = views_fetch.data
        if views_fetch.error is not None:
            st.warning(f"Could not load project views: {views_fetch.error}")
    view_choices = {v.name: v for v in (views.views if views else [])}
    for saved in load_saved_views():
        view_choices.setdefault(f"{saved.name} (local)", saved)

    col_refresh, col_caption = st.columns([1, 4])
    if col_refresh.button("Refresh", type="primary"):
        items_fetch.invalidate()
        items_fetch.refresh()
    col_caption.caption(freshness_caption(items_fetch))

    if items_fetch.pending:
        st.info("Loading project items...")
        return
    if items_fetch.error is not None:
        st.error(f"Failed to load items: {items_fetch.error}")
        if items_fetch.data is None:
            return
    items = items_fetch.data or []

    view_name = st.selectbox("View", list(view_choices))
    view = view_choices.get(view_name)
    field_configs = views.fields.get(view.id) if views and view else None

    options = filter_options(items)
    with st.sidebar:
        st.subheader("Quick filters")
        search = st.text_input("Search")
        state = st.selectbox("State", [ALL, *options.states])
        kind = st.selectbox("Type", [ALL, *options.kinds])
        repository = st.selectbox("Repository", [ALL, *options.repositories])
        picked: dict[str, list[str]] = {}
        if options.custom:
            with st.expander("Project fields"):
                for name, values in options.custom.items():
                    if values:
                        picked[name] = st.multiselect(name, values, key=f"quick-field-{name}")
        group_choice = st.selectbox("Group by", [VIEW_GROUP_CHOICE, *available_group_fields(items)])
    quick = QuickFilters(
        search=search,
        state=state,
        kind=kind,
        repository=repository,
        custom=custom_selections(picked),
    )
    group_override = None if group_choice == VIEW_GROUP_CHOICE else group_choice

    plan = service.render(items, view, field_configs, quick_filters=quick, group_override=group_override)
    if view is not None and view.filter_expression:
        st.caption(f"View filter: `{view.filter_expression}`")

    df = items_to_dataframe(plan.items)
    m1, m2, m3 = st.columns(3)
    m1.metric("Items", plan.total)
    m2.metric("Shown", plan.filtered)
    m3.metric("Open", compute_count(df, lambda d: d["state"].str.upper() == "OPEN"))

    with st.expander("Group summary"):
        st.dataframe(summarize_groups(plan.groups), hide_index=True)

    limit = st.session_state.get("max_table_rows", 1000)
    for group in plan.groups:
        if plan.is_dual:
            with st.expander(f"{group.name} ({group.count})", expanded=True):
                for sub in group.subgroups or []:
                    st.markdown(f"**{sub.name}** ({sub.count})")
                    _render_group_table(sub, limit)
        else:
            st.subheader(f"{group.name} ({group.count})")
            _render_group_table(group, limit)
