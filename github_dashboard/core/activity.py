"""Normalize repository, pull request and workflow-run payloads from the REST API.

Pull requests are enriched from three extra calls per PR (reviews, commit
status plus check runs, review comments); the summarizing rules live here so
the service only wires the calls together.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import fields
from typing import Any

import pandas as pd

from .config import TECH_TOPICS
from .models import (
    Assignee,
    CheckStatus,
    Label,
    PullRequest,
    Repository,
    ReviewStatus,
    WorkflowRun,
)
from .timestamps import normalize_timestamp

# ------------------ Repositories ------------------
_CATEGORY_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...], tuple[str, ...]], ...] = (
    # category, topics, name fragments, languages
    ("Web Application", ("webapp", "website"), ("web", "app"), ("typescript", "javascript")),
    ("API/Service", ("api", "server"), ("api", "server", "service"), ()),
    ("Library/Component", ("library", "component"), ("library", "component"), ()),
    ("Documentation", ("documentation",), ("doc", "guide"), ("markdown",)),
    ("Tool/Utility", ("tool", "utility"), ("tool", "util"), ()),
)

CATEGORY_LABELS: dict[str, str] = {
    "Web Application": "Web App",
    "API/Service": "API/Service",
    "Library/Component": "Library",
    "Documentation": "Docs",
    "Tool/Utility": "Tool",
    "General": "General",
}


def categorize_repository(name: str, topics: Sequence[str], language: str | None) -> str:
    """First matching category by topic, name fragment or language; else ``General``."""
    lowered = name.lower()
    lang = (language or "").lower()
    for category, cat_topics, fragments, languages in _CATEGORY_RULES:
        if any(t in topics for t in cat_topics):
            return category
        if any(f in lowered for f in fragments) or lang in languages:
            return category
    return "General"


def tech_stack(language: str | None, topics: Iterable[str]) -> tuple[str, ...]:
    stack: dict[str, None] = {}
    if language:
        stack[language] = None
    for topic in topics:
        if topic.lower() in TECH_TOPICS:
            stack.setdefault(topic)
    return tuple(stack)


def map_repository(raw: Mapping[str, Any]) -> Repository:
    topics = tuple(raw.get("topics") or ())
    language = raw.get("language")
    name = str(raw.get("name") or "")
    return Repository(
        id=int(raw.get("id") or 0),
        name=name,
        full_name=str(raw.get("full_name") or name),
        description=raw.get("description") or "No description available",
        language=language or "Unknown",
        is_private=bool(raw.get("private")),
        stars=int(raw.get("stargazers_count") or 0),
        forks=int(raw.get("forks_count") or 0),
        issues=int(raw.get("open_issues_count") or 0),
        updated_at=raw.get("updated_at") or "",
        created_at=raw.get("created_at") or "",
        url=raw.get("html_url") or "",
        topics=topics,
        size_kb=int(raw.get("size") or 0),
        default_branch=raw.get("default_branch") or "main",
        category=categorize_repository(name, topics, language),
        tech_stack=tech_stack(language, topics),
    )


def format_size(size_kb: float) -> str:
    if size_kb < 1024:
        return f"{size_kb:g} KB"
    mb = size_kb / 1024
    if mb < 1024:
        return f"{mb:.1f} MB"
    return f"{mb / 1024:.1f} GB"


# ------------------ Pull requests ------------------
def review_status(reviews: Iterable[Mapping[str, Any]]) -> ReviewStatus:
    """Summarize reviews using the latest decisive state of each reviewer."""
    reviews = list(reviews)
    latest: dict[str, str] = {}
    for review in reviews:
        state = review.get("state")
        if state in ("PENDING", "COMMENTED"):
            continue
        login = (review.get("user") or {}).get("login") or ""
        latest[login] = state
    states = set(latest.values())
    if "CHANGES_REQUESTED" in states:
        return "changes_requested"
    if "APPROVED" in states:
        return "approved"
    if any(r.get("state") == "COMMENTED" for r in reviews):
        return "commented"
    return "pending"


def check_status(
    combined: Mapping[str, Any] | None,
    check_runs: Iterable[Mapping[str, Any]] = (),
) -> CheckStatus:
    """Fold the legacy commit status and the check runs: failure > pending > success."""
    failure = pending = success = False
    state = (combined or {}).get("state")
    if state in ("failure", "error"):
        failure = True
    elif state == "pending":
        pending = True
    elif state == "success":
        success = True
    for run in check_runs:
        conclusion = run.get("conclusion")
        if conclusion in ("failure", "timed_out", "cancelled"):
            failure = True
        elif run.get("status") in ("in_progress", "queued"):
            pending = True
        elif conclusion == "success":
            success = True
    if failure:
        return "failure"
    if pending:
        return "pending"
    if success:
        return "success"
    return "neutral"


def comment_counts(comments: Iterable[Mapping[str, Any]]) -> tuple[int, int]:
    """(total, unresolved) review comments; every thread root counts as unresolved.

    The REST API exposes no resolution flag, so open threads are approximated
    by root comments (those without ``in_reply_to_id``).
    """
    comments = list(comments)
    roots = sum(1 for c in comments if not c.get("in_reply_to_id"))
    return len(comments), roots


def map_pull_request(
    raw: Mapping[str, Any],
    repository: Repository | Mapping[str, Any],
    *,
    review: ReviewStatus = "pending",
    checks: CheckStatus = "neutral",
    comments: tuple[int, int] = (0, 0),
) -> PullRequest:
    if isinstance(repository, Repository):
        repo_name, repo_full = repository.name, repository.full_name
    else:
        repo_name = str(repository.get("name") or "")
        repo_full = str(repository.get("full_name") or repo_name)
    return PullRequest(
        id=int(raw.get("id") or 0),
        number=int(raw.get("number") or 0),
        title=raw.get("title") or "Untitled",
        state=str(raw.get("state") or "open"),
        url=raw.get("html_url") or "",
        repository=repo_name,
        repository_full_name=repo_full,
        author=(raw.get("user") or {}).get("login") or "",
        created_at=raw.get("created_at") or "",
        updated_at=raw.get("updated_at") or "",
        closed_at=raw.get("closed_at"),
        merged_at=raw.get("merged_at"),
        draft=bool(raw.get("draft")),
        head_ref=(raw.get("head") or {}).get("ref") or "",
        base_ref=(raw.get("base") or {}).get("ref") or "",
        assignees=tuple(
            Assignee(a.get("login") or "", a.get("avatar_url") or "") for a in raw.get("assignees") or []
        ),
        labels=tuple(Label(lb.get("name") or "", lb.get("color") or "") for lb in raw.get("labels") or []),
        review_status=review,
        check_status=checks,
        comments_total=comments[0],
        comments_unresolved=comments[1],
    )


def pull_request_stats(pull_requests: Sequence[PullRequest]) -> dict[str, int]:
    return {
        "total": len(pull_requests),
        "open": sum(1 for pr in pull_requests if pr.state == "open"),
        "closed": sum(1 for pr in pull_requests if pr.state == "closed"),
        "merged": sum(1 for pr in pull_requests if pr.merged_at),
        "draft": sum(1 for pr in pull_requests if pr.draft),
        "repositories": len({pr.repository for pr in pull_requests}),
    }


# ------------------ Workflows ------------------
def _newer(a: str | None, b: str | None) -> bool:
    ts_a, ts_b = normalize_timestamp(a), normalize_timestamp(b)
    if ts_a is None:
        return False
    return ts_b is None or ts_a > ts_b


def latest_runs_by_branch(
    repository: Repository,
    workflow: Mapping[str, Any],
    runs: Iterable[Mapping[str, Any]],
) -> list[WorkflowRun]:
    """One entry per branch holding the most recently updated run of ``workflow``."""
    by_branch: dict[str, Mapping[str, Any]] = {}
    for run in runs:
        branch = run.get("head_branch")
        if not branch:
            continue
        if branch not in by_branch or _newer(run.get("updated_at"), by_branch[branch].get("updated_at")):
            by_branch[branch] = run

    workflow_id = int(workflow.get("id") or 0)
    workflow_state = workflow.get("state") or ""
    badge_file = str(workflow.get("path") or "").replace(".github/workflows/", "")
    out = []
    for branch, run in by_branch.items():
        out.append(
            WorkflowRun(
                id=f"{repository.name}-{workflow_id}-{branch}",
                workflow_id=workflow_id,
                name=workflow.get("name") or "",
                repository=repository.name,
                branch=branch,
                state=workflow_state or "unknown",
                status=run.get("conclusion") or run.get("status") or workflow_state or "unknown",
                updated_at=run.get("updated_at") or "",
                url=run.get("html_url") or "",
                workflow_url=workflow.get("html_url") or "",
                badge_url=(
                    f"https://github.com/{repository.full_name}/actions/workflows/{badge_file}/badge.svg"
                    f"?branch={branch}"
                ),
                run_number=run.get("run_number"),
                event=run.get("event") or "",
                is_private=repository.is_private,
            )
        )
    return out


def workflow_status_label(state: str | None, status: str | None) -> str:
    """Display label; the run result wins over the workflow's own state."""
    state = (state or "unknown").lower()
    status = (status or "").lower()
    if any(s in status for s in ("failure", "error", "failed")):
        return "Failed"
    if "success" in status:
        return "Success"
    if "cancelled" in status:
        return "Cancelled"
    if "in_progress" in status or "queued" in status:
        return "Running"
    if "skipped" in status:
        return "Skipped"
    if state == "disabled":
        return "Disabled"
    if state == "active" and "completed" in status:
        return "Passed"
    return status or state or "Unknown"


# ------------------ Tables ------------------
def _flatten(value: Any) -> Any:
    if isinstance(value, tuple):
        return ", ".join(getattr(v, "login", None) or getattr(v, "name", None) or str(v) for v in value)
    return value


def records_to_dataframe(records: Iterable[Repository | PullRequest | WorkflowRun]) -> pd.DataFrame:
    """Flat DataFrame of activity records; tuple fields become comma-joined text."""
    rows = []
    for record in records:
        row = {f.name: _flatten(getattr(record, f.name)) for f in fields(record)}
        if isinstance(record, PullRequest):
            row["state_label"] = record.state_label
        rows.append(row)
    df = pd.DataFrame(rows)
    for col in ("updated_at", "created_at", "closed_at", "merged_at"):
        if col in df.columns:
            df[col] = df[col].map(normalize_timestamp)
    return df
