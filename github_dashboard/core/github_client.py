"""GitHub API client wrapper (REST Projects V2 endpoints + GraphQL)."""

from __future__ import annotations

import logging
import re
from typing import Any

import requests

from .config import (
    DEFAULT_OWNER,
    GITHUB_API_URL,
    GITHUB_GRAPHQL_URL,
    GRAPHQL_PAGE_SIZE,
    REQUEST_TIMEOUT_SECONDS,
    REST_PAGE_SIZE,
    USER_AGENT,
)

logger = logging.getLogger(__name__)

_NEXT_CURSOR = re.compile(r'<[^>]*[?&]after=([^>&]+)[^>]*>;\s*rel="next"')

_FIELD_CONFIG_FRAGMENT = """
  ... on ProjectV2Field { id name dataType }
  ... on ProjectV2SingleSelectField { id name dataType options { id name color } }
  ... on ProjectV2IterationField {
    id name dataType
    configuration { duration startDay iterations { id title startDate duration } }
  }
"""

PROJECT_DETAIL_QUERY = (
    """
query GetProjectDetail($projectId: ID!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      id number title shortDescription url public closed createdAt updatedAt
      views(first: 50) {
        totalCount
        nodes {
          id name number layout filter createdAt updatedAt
          sortByFields(first: 10) { nodes { direction field { %(fields)s } } }
          groupByFields(first: 10) { nodes { %(fields)s } }
          verticalGroupByFields(first: 10) { nodes { %(fields)s } }
          fields(first: 50) { nodes { %(fields)s } }
        }
      }
    }
  }
}
"""
    % {"fields": _FIELD_CONFIG_FRAGMENT}
)

_ITEM_CONTENT_FIELDS = """
  id number title url state closed
  repository { name url owner { login } }
  assignees(first: 10) { nodes { login avatarUrl } }
  labels(first: 20) { nodes { name color } }
  createdAt updatedAt
"""

PROJECT_ITEMS_QUERY = (
    """
query GetProjectItems($projectId: ID!, $first: Int!, $after: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      id
      items(first: $first, after: $after) {
        totalCount
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          type
          content {
            __typename
            ... on Issue { %(content)s parent { number title } }
            ... on PullRequest { %(content)s merged }
            ... on DraftIssue { id title createdAt updatedAt }
          }
          fieldValues(first: 50) {
            nodes {
              ... on ProjectV2ItemFieldTextValue { text field { ... on ProjectV2Field { id name } } }
              ... on ProjectV2ItemFieldNumberValue { number field { ... on ProjectV2Field { id name } } }
              ... on ProjectV2ItemFieldDateValue { date field { ... on ProjectV2Field { id name } } }
              ... on ProjectV2ItemFieldSingleSelectValue {
                name optionId field { ... on ProjectV2SingleSelectField { id name } }
              }
              ... on ProjectV2ItemFieldIterationValue {
                title duration startDate field { ... on ProjectV2IterationField { id name } }
              }
            }
          }
        }
      }
    }
  }
}
"""
    % {"content": _ITEM_CONTENT_FIELDS}
)


class GitHubAPIError(RuntimeError):
    """Raised for failed GitHub requests and GraphQL error payloads."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubAPI:
    def __init__(
        self,
        token: str | None,
        owner: str = DEFAULT_OWNER,
        *,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.owner = owner
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json", "User-Agent": USER_AGENT})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    # ------------------ REST ------------------
    def _rest_get(self, path: str, params: dict[str, Any] | None = None) -> requests.Response:
        url = f"{GITHUB_API_URL}/{path.lstrip('/')}"
        resp = self.session.get(url, params=params, timeout=self.timeout)
        if resp.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub REST API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp

    def list_projects(self) -> list[dict[str, Any]]:
        data = self._rest_get(f"orgs/{self.owner}/projectsV2", {"per_page": REST_PAGE_SIZE}).json()
        if isinstance(data, dict):
            data = data.get("projectsV2") or data.get("projects") or []
        logger.debug("Found %s projects for %s", len(data), self.owner)
        return data

    def get_project(self, number: int) -> dict[str, Any]:
        return self._rest_get(f"orgs/{self.owner}/projectsV2/{number}").json()

    def list_project_fields(self, number: int) -> list[dict[str, Any]]:
        data = self._rest_get(f"orgs/{self.owner}/projectsV2/{number}/fields").json()
        return data if isinstance(data, list) else data.get("fields", [])

    def list_project_items(self, number: int, field_ids: list[int] | None = None) -> list[dict[str, Any]]:
        """All items of project ``number``, following ``Link`` header cursors.

        Without ``field_ids`` GitHub only returns the Title field.
        """
        params: dict[str, Any] = {"per_page": REST_PAGE_SIZE}
        if field_ids:
            params["fields"] = ",".join(str(f) for f in field_ids)
        out: list[dict[str, Any]] = []
        cursor: str | None = None
        page = 1
        while True:
            qp = dict(params)
            if cursor:
                qp["after"] = cursor
            resp = self._rest_get(f"orgs/{self.owner}/projectsV2/{number}/items", qp)
            data = resp.json()
            batch = data if isinstance(data, list) else data.get("items", [])
            out.extend(batch)
            match = _NEXT_CURSOR.search(resp.headers.get("Link", "") or "")
            cursor = match.group(1) if match else None
            logger.debug("Project %s page %s: %s items (total %s)", number, page, len(batch), len(out))
            if not cursor:
                break
            page += 1
        return out

    # ------------------ Repositories & CI ------------------
    def list_repositories(self, include_archived: bool = False) -> list[dict[str, Any]]:
        """Repositories of the owner, tried as an organization first, then as a user."""
        params = {"type": "all", "per_page": REST_PAGE_SIZE, "sort": "updated"}
        try:
            data = self._rest_get(f"orgs/{self.owner}/repos", params).json()
        except GitHubAPIError as exc:
            logger.info("Organization repos for %s failed (%s), trying user endpoint", self.owner, exc.status_code)
            data = self._rest_get(f"users/{self.owner}/repos", params).json()
        repos = data if isinstance(data, list) else []
        if not include_archived:
            repos = [r for r in repos if not r.get("archived")]
        logger.debug("Found %s repositories for %s", len(repos), self.owner)
        return repos

    def list_pull_requests(self, full_name: str, state: str = "open") -> list[dict[str, Any]]:
        params = {"state": state, "per_page": REST_PAGE_SIZE, "sort": "updated", "direction": "desc"}
        return self._rest_get(f"repos/{full_name}/pulls", params).json()

    def list_pull_reviews(self, full_name: str, number: int) -> list[dict[str, Any]]:
        return self._rest_get(f"repos/{full_name}/pulls/{number}/reviews").json()

    def list_review_comments(self, full_name: str, number: int) -> list[dict[str, Any]]:
        return self._rest_get(f"repos/{full_name}/pulls/{number}/comments", {"per_page": REST_PAGE_SIZE}).json()

    def get_combined_status(self, full_name: str, sha: str) -> dict[str, Any]:
        return self._rest_get(f"repos/{full_name}/commits/{sha}/status").json()

    def list_check_runs(self, full_name: str, sha: str) -> list[dict[str, Any]]:
        data = self._rest_get(f"repos/{full_name}/commits/{sha}/check-runs").json()
        return data.get("check_runs") or []

    def list_workflows(self, full_name: str) -> list[dict[str, Any]]:
        data = self._rest_get(f"repos/{full_name}/actions/workflows").json()
        return data.get("workflows") or []

    def list_workflow_runs(self, full_name: str, workflow_id: int, per_page: int = 10) -> list[dict[str, Any]]:
        data = self._rest_get(
            f"repos/{full_name}/actions/workflows/{workflow_id}/runs", {"per_page": per_page}
        ).json()
        return data.get("workflow_runs") or []

    # ------------------ GraphQL ------------------
    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        resp = self.session.post(
            GITHUB_GRAPHQL_URL,
            json={"query": query, "variables": variables or {}},
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            raise GitHubAPIError(
                f"GraphQL API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        result = resp.json()
        errors = result.get("errors") or []
        if errors:
            messages = ", ".join(str(e.get("message", e)) for e in errors)
            raise GitHubAPIError(f"GraphQL errors: {messages}", status_code=500)
        if not result.get("data"):
            raise GitHubAPIError("GraphQL response contained no data", status_code=500)
        return result["data"]

    def fetch_project_detail(self, project_id: str) -> dict[str, Any]:
        node = self.graphql(PROJECT_DETAIL_QUERY, {"projectId": project_id}).get("node")
        if not node:
            raise GitHubAPIError(f"Project {project_id} not found", status_code=404)
        return node

    def fetch_project_items_graphql(self, project_id: str) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        after: str | None = None
        while True:
            data = self.graphql(
                PROJECT_ITEMS_QUERY,
                {"projectId": project_id, "first": GRAPHQL_PAGE_SIZE, "after": after},
            )
            node = data.get("node") or {}
            items = node.get("items") or {}
            out.extend(items.get("nodes") or [])
            page_info = items.get("pageInfo") or {}
            logger.debug("Fetched %s project items so far", len(out))
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")
        return out
