import pytest

from github_dashboard.core.github_client import GitHubAPI, GitHubAPIError


class FakeResponse:
    def __init__(self, payload, status_code=200, headers=None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}
        self.text = str(payload)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, dict(params or {})))
        return self.responses.pop(0)

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url, json))
        return self.responses.pop(0)


def test_auth_header_and_project_listing():
    session = FakeSession([FakeResponse([{"number": 1}, {"number": 2}])])
    api = GitHubAPI("tok", "acme", session=session)
    assert session.headers["Authorization"] == "Bearer tok"
    assert len(api.list_projects()) == 2
    assert session.calls[0][1].endswith("/orgs/acme/projectsV2")


def test_items_follow_link_cursor():
    next_link = '<https://api.github.com/orgs/acme/projectsV2/3/items?per_page=100&after=abc123>; rel="next"'
    session = FakeSession(
        [
            FakeResponse([{"id": 1}], headers={"Link": next_link}),
            FakeResponse([{"id": 2}]),
        ]
    )
    api = GitHubAPI("tok", "acme", session=session)
    items = api.list_project_items(3, field_ids=[10, 11])
    assert [i["id"] for i in items] == [1, 2]
    assert session.calls[0][2]["fields"] == "10,11"
    assert "after" not in session.calls[0][2]
    assert session.calls[1][2]["after"] == "abc123"


def test_rest_error_raises_with_status():
    api = GitHubAPI("tok", "acme", session=FakeSession([FakeResponse({"message": "Bad credentials"}, 401)]))
    with pytest.raises(GitHubAPIError) as exc:
        api.list_projects()
    assert exc.value.status_code == 401


def test_graphql_errors_and_pagination():
    api = GitHubAPI("tok", session=FakeSession([FakeResponse({"errors": [{"message": "nope"}]})]))
    with pytest.raises(GitHubAPIError, match="nope"):
        api.graphql("query { viewer { login } }")

    pages = [
        {"data": {"node": {"items": {"nodes": [{"id": "a"}], "pageInfo": {"hasNextPage": True, "endCursor": "c1"}}}}},
        {"data": {"node": {"items": {"nodes": [{"id": "b"}], "pageInfo": {"hasNextPage": False}}}}},
    ]
    session = FakeSession([FakeResponse(p) for p in pages])
    api = GitHubAPI("tok", session=session)
    assert [n["id"] for n in api.fetch_project_items_graphql("PVT_1")] == ["a", "b"]
    assert session.calls[1][2]["variables"]["after"] == "c1"


def test_missing_project_node_is_404():
    api = GitHubAPI("tok", session=FakeSession([FakeResponse({"data": {"node": None}})]))
    with pytest.raises(GitHubAPIError) as exc:
        api.fetch_project_detail("PVT_x")
    assert exc.value.status_code == 404


def test_repositories_fall_back_to_user_and_skip_archived():
    session = FakeSession(
        [
            FakeResponse({"message": "Not Found"}, 404),
            FakeResponse([{"name": "api"}, {"name": "old", "archived": True}]),
        ]
    )
    api = GitHubAPI("tok", "octo", session=session)
    repos = api.list_repositories()
    assert [r["name"] for r in repos] == ["api"]
    assert session.calls[0][1].endswith("/orgs/octo/repos")
    assert session.calls[1][1].endswith("/users/octo/repos")
    assert session.calls[1][2]["sort"] == "updated"


def test_pull_request_and_workflow_endpoints():
    session = FakeSession(
        [
            FakeResponse([{"number": 7}]),
            FakeResponse({"check_runs": [{"conclusion": "success"}]}),
            FakeResponse({"total_count": 1, "workflows": [{"id": 3}]}),
            FakeResponse({"workflow_runs": [{"id": 9}]}),
        ]
    )
    api = GitHubAPI("tok", "acme", session=session)
    assert api.list_pull_requests("acme/api", state="all") == [{"number": 7}]
    assert session.calls[0][2] == {"state": "all", "per_page": 100, "sort": "updated", "direction": "desc"}
    assert api.list_check_runs("acme/api", "abc") == [{"conclusion": "success"}]
    assert session.calls[1][1].endswith("/repos/acme/api/commits/abc/check-runs")
    assert api.list_workflows("acme/api") == [{"id": 3}]
    assert api.list_workflow_runs("acme/api", 3) == [{"id": 9}]
    assert session.calls[3][1].endswith("/actions/workflows/3/runs")
    assert session.calls[3][2] == {"per_page": 10}
