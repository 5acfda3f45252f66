"""Services: project items and views (ProjectService), repository activity (ActivityService)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Literal

from github_dashboard.views.plan import RenderPlan, build_render_plan
from github_dashboard.views.quick_filters import QuickFilters

from .activity import (
    check_status,
    comment_counts,
    latest_runs_by_branch,
    map_pull_request,
    map_repository,
    review_status,
)
from .config import ACTIVITY_MAX_WORKERS, WORKFLOW_RUNS_PER_WORKFLOW
from .github_client import GitHubAPI, GitHubAPIError
from .mappers import (
    DEFAULT_SAMPLE_LOGGER,
    map_graphql_item,
    map_graphql_view,
    map_rest_item,
    map_view_fields,
)
from .models import FieldConfiguration, PullRequest, Repository, ViewConfig, WorkflowRun, WorkItem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]
ItemSource = Literal["graphql", "rest"]


@dataclass(slots=True)
class ProjectViews:
    project_id: str
    title: str
    views: list[ViewConfig] = field(default_factory=list)
    # view id -> field name -> metadata
    fields: dict[str, dict[str, FieldConfiguration]] = field(default_factory=dict)

    def view(self, view_id: str) -> ViewConfig | None:
        for view in self.views:
            if view.id == view_id:
                return view
        return None


class ProjectService:
    def __init__(self, api: GitHubAPI, sample_logger: Callable[[Mapping[str, Any]], None] | None = None):
        self.api = api
        self._sample_logger = sample_logger or DEFAULT_SAMPLE_LOGGER

    def get_projects(self) -> list[dict[str, Any]]:
        """Fetch all Projects V2 of the configured owner."""
        return self.api.list_projects()

    # ------------------ Fetch Methods ------------------
    def fetch_items(
        self,
        project: str | int,
        *,
        source: ItemSource = "graphql",
        progress: ProgressCallback | None = None,
    ) -> list[WorkItem]:
        """Fetch and normalize every item of ``project``.

        ``project`` is the GraphQL node id for ``source="graphql"`` and the
        project number for ``source="rest"``.
        """
        if source == "rest":
            return self._fetch_items_rest(int(project), progress=progress)
        if progress:
            progress("Querying project items", None, None)
        raw = self.api.fetch_project_items_graphql(str(project))
        items = [map_graphql_item(r) for r in raw]
        logger.debug("Normalized %s GraphQL items for %s", len(items), project)
        return items

    def _fetch_items_rest(self, number: int, *, progress: ProgressCallback | None = None) -> list[WorkItem]:
        if progress:
            progress("Loading project fields", None, None)
        fields = self.api.list_project_fields(number)
        field_ids = [f["id"] for f in fields if f.get("id") is not None]
        if progress:
            progress("Querying project items", None, None)
        raw = self.api.list_project_items(number, field_ids=field_ids)
        items: list[WorkItem] = []
        for idx, r in enumerate(raw, start=1):
            items.append(map_rest_item(r, sample_logger=self._sample_logger))
            if progress:
                progress("Normalizing project items", idx, len(raw))
        logger.debug("Normalized %s REST items for project %s", len(items), number)
        return items

    def fetch_views(self, project_id: str) -> ProjectViews:
        detail = self.api.fetch_project_detail(project_id)
        out = ProjectViews(project_id=str(detail.get("id") or project_id), title=str(detail.get("title") or ""))
        for raw_view in (detail.get("views") or {}).get("nodes") or []:
            if not raw_view:
                continue
            view = map_graphql_view(raw_view)
            out.views.append(view)
            out.fields[view.id] = map_view_fields(raw_view)
        return out

    # ------------------ Rendering ------------------
    def render(
        self,
        items: Iterable[WorkItem],
        view: ViewConfig | None,
        fields: Mapping[str, FieldConfiguration] | None = None,
        *,
        quick_filters: QuickFilters | None = None,
        group_override: str | None = None,
    ) -> RenderPlan:
        return build_render_plan(
            items,
            view,
            fields,
            quick_filters=quick_filters,
            group_override=group_override,
        )

    def render_views(
        self,
        items: Sequence[WorkItem],
        project_views: ProjectViews,
    ) -> dict[str, RenderPlan]:
        """One render plan per saved view, keyed by view id."""
        return {
            view.id: self.render(items, view, project_views.fields.get(view.id))
            for view in project_views.views
        }


def _newest_first(records: list[Any]) -> list[Any]:
    # ISO-8601 strings in one timezone sort chronologically as text
    return sorted(records, key=lambda r: r.updated_at or "", reverse=True)


class ActivityService:
    """Repositories, pull requests and workflow runs across the owner's repositories.

    Per-repository work runs on a thread pool; a repository whose calls fail is
    logged and skipped so one broken repository does not hide the rest.
    """

    def __init__(self, api: GitHubAPI, max_workers: int = ACTIVITY_MAX_WORKERS):
        self.api = api
        self.max_workers = max_workers

    def get_repositories(self) -> list[Repository]:
        repos = [map_repository(r) for r in self.api.list_repositories()]
        logger.debug("Mapped %s repositories", len(repos))
        return _newest_first(repos)

    def _per_repository(
        self,
        repos: Sequence[Repository],
        task: Callable[[Repository], list[Any]],
        label: str,
        progress: ProgressCallback | None = None,
    ) -> list[Any]:
        out: list[Any] = []
        total = len(repos)
        if total <= 1 or self.max_workers <= 1:
            for idx, repo in enumerate(repos, start=1):
                try:
                    out.extend(task(repo))
                except GitHubAPIError as exc:
                    logger.warning("Failed fetching %s for %s: %s", label, repo.full_name, exc)
                if progress:
                    progress(f"Fetching {label}", idx, total)
            return out

        completed = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(task, repo): repo for repo in repos}
            for fut in as_completed(futures):
                try:
                    out.extend(fut.result())
                except GitHubAPIError as exc:
                    logger.warning("Failed fetching %s for %s: %s", label, futures[fut].full_name, exc)
                finally:
                    completed += 1
                    if progress:
                        progress(f"Fetching {label}", completed, total)
        return out

    # ------------------ Pull requests ------------------
    def _enrich(self, repo: Repository, raw: Mapping[str, Any]) -> PullRequest:
        number = int(raw.get("number") or 0)
        sha = (raw.get("head") or {}).get("sha")
        try:
            review = review_status(self.api.list_pull_reviews(repo.full_name, number))
        except GitHubAPIError as exc:
            logger.debug("Reviews unavailable for %s#%s: %s", repo.full_name, number, exc)
            review = "pending"
        checks = "neutral"
        if sha:
            combined: dict[str, Any] | None = None
            runs: list[dict[str, Any]] = []
            try:
                combined = self.api.get_combined_status(repo.full_name, sha)
            except GitHubAPIError as exc:
                logger.debug("Commit status unavailable for %s@%s: %s", repo.full_name, sha, exc)
            try:
                runs = self.api.list_check_runs(repo.full_name, sha)
            except GitHubAPIError as exc:
                logger.debug("Check runs unavailable for %s@%s: %s", repo.full_name, sha, exc)
            checks = check_status(combined, runs)
        try:
            comments = comment_counts(self.api.list_review_comments(repo.full_name, number))
        except GitHubAPIError as exc:
            logger.debug("Review comments unavailable for %s#%s: %s", repo.full_name, number, exc)
            comments = (0, 0)
        return map_pull_request(raw, repo, review=review, checks=checks, comments=comments)

    def fetch_pull_requests(
        self,
        state: str = "open",
        *,
        repositories: Sequence[Repository] | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[PullRequest]:
        """Pull requests of every repository with review, check and comment summaries."""
        repos = list(repositories) if repositories is not None else self.get_repositories()

        def task(repo: Repository) -> list[PullRequest]:
            return [self._enrich(repo, raw) for raw in self.api.list_pull_requests(repo.full_name, state)]

        prs = self._per_repository(repos, task, "pull requests", progress)
        logger.info("Found %s pull requests across %s repositories", len(prs), len(repos))
        return _newest_first(prs)

    # ------------------ Workflows ------------------
    def fetch_workflow_runs(
        self,
        *,
        repositories: Sequence[Repository] | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[WorkflowRun]:
        """Latest run per workflow and branch for every repository."""
        repos = list(repositories) if repositories is not None else self.get_repositories()

        def task(repo: Repository) -> list[WorkflowRun]:
            out: list[WorkflowRun] = []
            for workflow in self.api.list_workflows(repo.full_name):
                try:
                    runs = self.api.list_workflow_runs(
                        repo.full_name, workflow["id"], per_page=WORKFLOW_RUNS_PER_WORKFLOW
                    )
                except GitHubAPIError as exc:
                    logger.warning("Runs of workflow %s in %s failed: %s", workflow.get("id"), repo.name, exc)
                    continue
                out.extend(latest_runs_by_branch(repo, workflow, runs))
            return out

        runs = self._per_repository(repos, task, "workflow runs", progress)
        logger.info("Found %s workflow runs across %s repositories", len(runs), len(repos))
        return _newest_first(runs)
