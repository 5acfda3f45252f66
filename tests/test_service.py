import pytest

from github_dashboard.core.github_client import GitHubAPI, GitHubAPIError
from github_dashboard.core.mappers import SampleLogger
from github_dashboard.core.service import ActivityService, ProjectService


class DummyAPI(GitHubAPI):
    def __init__(self):
        self.owner = "acme"
        self.item_calls = []

    def list_projects(self):
        return [{"id": 1, "node_id": "PVT_1", "number": 1, "title": "Roadmap"}]

    def list_project_fields(self, number):
        return [{"id": 10, "name": "Status"}, {"id": 11, "name": "Priority"}, {"name": "no id"}]

    def list_project_items(self, number, field_ids=None):
        self.item_calls.append((number, field_ids))
        return [
            {
                "id": 1,
                "node_id": "PVTI_1",
                "content_type": "Issue",
                "content": {
                    "number": 5,
                    "title": "REST item",
                    "repository_url": "https://api.github.com/repos/acme/api",
                    "state": "open",
                },
                "fields": [{"name": "Status", "data_type": "single_select", "value": {"name": "Todo"}}],
            }
        ]

    def fetch_project_items_graphql(self, project_id):
        return [
            {
                "id": "PVTI_2",
                "content": {
                    "__typename": "PullRequest",
                    "title": "GraphQL item",
                    "state": "MERGED",
                    "repository": {"name": "web", "owner": {"login": "acme"}},
                },
                "fieldValues": {"nodes": [{"name": "Done", "field": {"name": "Status"}}]},
            }
        ]

    def fetch_project_detail(self, project_id):
        if project_id != "PVT_1":
            raise GitHubAPIError("Project not found", status_code=404)
        return {
            "id": "PVT_1",
            "title": "Roadmap",
            "views": {
                "nodes": [
                    {
                        "id": "PVTV_1",
                        "name": "Board",
                        "layout": "BOARD_LAYOUT",
                        "filter": "is:open",
                        "groupByFields": {"nodes": [{"name": "Status"}]},
                        "fields": {
                            "nodes": [
                                {
                                    "id": "F1",
                                    "name": "Status",
                                    "options": [{"name": "Todo", "color": "GRAY"}, {"name": "Done"}],
                                }
                            ]
                        },
                    },
                    None,
                ]
            },
        }


def test_get_projects():
    assert ProjectService(DummyAPI()).get_projects()[0]["title"] == "Roadmap"


def test_fetch_items_rest_passes_field_ids_and_reports_progress():
    api = DummyAPI()
    events = []
    svc = ProjectService(api, sample_logger=SampleLogger())
    items = svc.fetch_items(1, source="rest", progress=lambda msg, cur, tot: events.append((msg, cur, tot)))
    assert api.item_calls == [(1, [10, 11])]
    assert [i.title for i in items] == ["REST item"]
    assert items[0].status == "Todo"
    assert events[-1] == ("Normalizing project items", 1, 1)


def test_fetch_items_graphql():
    items = ProjectService(DummyAPI()).fetch_items("PVT_1")
    assert len(items) == 1
    item = items[0]
    assert item.kind == "PULL_REQUEST"
    assert item.status == "Done"
    assert item.repository == "web"


def test_fetch_views_and_render():
    svc = ProjectService(DummyAPI())
    project_views = svc.fetch_views("PVT_1")
    assert project_views.title == "Roadmap"
    assert [v.name for v in project_views.views] == ["Board"]
    view = project_views.view("PVTV_1")
    assert view is not None and view.group_by_fields == ("Status",)
    assert project_views.view("missing") is None

    items = svc.fetch_items(1, source="rest") + svc.fetch_items("PVT_1")
    plans = svc.render_views(items, project_views)
    plan = plans["PVTV_1"]
    # merged PR is filtered out by is:open
    assert [(g.name, g.count, g.color) for g in plan.groups] == [("Todo", 1, "GRAY")]
    assert plan.total == 2


def test_fetch_views_propagates_api_errors():
    with pytest.raises(GitHubAPIError) as exc:
        ProjectService(DummyAPI()).fetch_views("PVT_404")
    assert exc.value.status_code == 404


class ActivityAPI(GitHubAPI):
    def __init__(self):
        self.owner = "acme"

    def list_repositories(self, include_archived=False):
        return [
            {"id": 1, "name": "api", "full_name": "acme/api", "updated_at": "2024-01-01T00:00:00Z"},
            {"id": 2, "name": "web", "full_name": "acme/web", "updated_at": "2024-02-01T00:00:00Z"},
            {"id": 3, "name": "broken", "full_name": "acme/broken", "updated_at": "2023-01-01T00:00:00Z"},
        ]

    def list_pull_requests(self, full_name, state="open"):
        if full_name == "acme/broken":
            raise GitHubAPIError("Server error", status_code=502)
        day = "05" if full_name == "acme/api" else "03"
        return [{"id": 1, "number": 1, "state": "open", "head": {"sha": "s1"}, "updated_at": f"2024-03-{day}"}]

    def list_pull_reviews(self, full_name, number):
        return [{"user": {"login": "a"}, "state": "APPROVED"}]

    def get_combined_status(self, full_name, sha):
        raise GitHubAPIError("Not Found", status_code=404)

    def list_check_runs(self, full_name, sha):
        return [{"status": "completed", "conclusion": "failure"}]

    def list_review_comments(self, full_name, number):
        return [{"id": 1}, {"id": 2, "in_reply_to_id": 1}]

    def list_workflows(self, full_name):
        if full_name == "acme/broken":
            raise GitHubAPIError("Forbidden", status_code=403)
        return [{"id": 9, "name": "CI", "state": "active", "path": ".github/workflows/ci.yml"}]

    def list_workflow_runs(self, full_name, workflow_id, per_page=10):
        return [{"head_branch": "main", "conclusion": "success", "updated_at": "2024-03-01T00:00:00Z"}]


def test_activity_repositories_newest_first():
    repos = ActivityService(ActivityAPI()).get_repositories()
    assert [r.name for r in repos] == ["web", "api", "broken"]


def test_activity_pull_requests_skip_failing_repository(caplog):
    events = []
    svc = ActivityService(ActivityAPI(), max_workers=3)
    with caplog.at_level("WARNING"):
        prs = svc.fetch_pull_requests(progress=lambda msg, cur, tot: events.append((cur, tot)))
    assert [pr.repository for pr in prs] == ["api", "web"]
    pr = prs[0]
    assert (pr.review_status, pr.check_status) == ("approved", "failure")
    assert (pr.comments_total, pr.comments_unresolved) == (2, 1)
    assert "acme/broken" in caplog.text
    assert sorted(events) == [(1, 3), (2, 3), (3, 3)]


def test_activity_workflow_runs_sequential_for_single_repository():
    api = ActivityAPI()
    svc = ActivityService(api)
    repos = svc.get_repositories()[:1]
    runs = svc.fetch_workflow_runs(repositories=repos)
    assert [(r.repository, r.branch, r.status) for r in runs] == [("web", "main", "success")]

    all_runs = ActivityService(api, max_workers=2).fetch_workflow_runs()
    assert sorted(r.repository for r in all_runs) == ["api", "web"]
