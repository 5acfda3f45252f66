import logging

from github_dashboard.core.mappers import (
    SampleLogger,
    coerce_field_value,
    items_to_dataframe,
    map_graphql_item,
    map_graphql_view,
    map_item_dict,
    map_rest_item,
    map_view_fields,
)
from github_dashboard.core.models import RawValue, ScalarValue, TitledValue
from github_dashboard.views.resolver import resolve_field


def _rest_item():
    return {
        "id": 101,
        "node_id": "PVTI_101",
        "content_type": "Issue",
        "content": {
            "number": 12,
            "title": "Fix login",
            "html_url": "https://github.com/acme/api/issues/12",
            "url": "https://api.github.com/repos/acme/api/issues/12",
            "repository_url": "https://api.github.com/repos/acme/api",
            "state": "open",
            "assignees": [{"login": "octo", "avatar_url": "https://avatars/octo"}],
            "labels": [{"name": "bug", "color": "d73a4a"}],
            "created_at": "2024-05-01T10:00:00Z",
            "updated_at": "2024-05-03T10:00:00Z",
        },
        "fields": [
            {"id": 1, "name": "Title", "data_type": "title", "value": {"raw": "Fix login", "html": "Fix login"}},
            {"id": 2, "name": "Status", "data_type": "single_select", "value": {"name": {"raw": "Todo", "html": "Todo"}}},
            {"id": 3, "name": "Priority", "data_type": "single_select", "value": {"name": "High"}},
            {"id": 4, "name": "Estimate", "data_type": "number", "value": 3},
            {"id": 5, "name": "Sprint", "data_type": "iteration", "value": {"title": {"raw": "Sprint 9"}, "start_date": "2024-05-01", "duration": 14}},
            {"id": 6, "name": "Parent issue", "data_type": "parent_issue", "value": {"number": 7, "title": "Epic", "repository": "acme/api"}},
            {"id": 7, "name": "Assignees", "data_type": "assignees", "value": [{"login": "octo"}]},
            {"id": 8, "name": "Empty", "data_type": "text", "value": None},
        ],
    }


def test_map_rest_item():
    item = map_rest_item(_rest_item())
    assert item.id == "PVTI_101"
    assert item.kind == "ISSUE"
    assert item.number == 12
    assert item.url == "https://github.com/acme/api/issues/12"
    assert (item.repository_owner, item.repository) == ("acme", "api")
    assert [a.login for a in item.assignees] == ["octo"]
    assert [lbl.name for lbl in item.labels] == ["bug"]
    assert item.status == "Todo"
    assert item.priority == "High"
    assert item.custom_fields["Title"] == RawValue(raw="Fix login", html="Fix login")
    assert item.custom_fields["Estimate"] == ScalarValue(3)
    assert item.custom_fields["Sprint"] == TitledValue(title="Sprint 9", start_date="2024-05-01", duration=14)
    assert item.custom_fields["Parent issue"] == ScalarValue("acme/api#7 Epic")
    assert item.custom_fields["Parent issue number"] == ScalarValue(7)
    assert "Assignees" not in item.custom_fields
    assert "Empty" not in item.custom_fields


def test_map_rest_item_defaults():
    item = map_rest_item({"id": 5, "content_type": "DraftIssue", "content": {}})
    assert item.id == "5"
    assert item.kind == "DRAFT_ISSUE"
    assert item.title == "Untitled"
    assert item.state == "open"
    assert item.repository == "Unknown"
    assert item.custom_fields == {}


def test_sample_logger_fires_once(caplog):
    sample = SampleLogger(logging.getLogger("test.sample"))
    with caplog.at_level(logging.DEBUG, logger="test.sample"):
        map_rest_item(_rest_item(), sample_logger=sample)
        first = len(caplog.records)
        map_rest_item(_rest_item(), sample_logger=sample)
    assert sample.done
    assert first > 0
    assert len(caplog.records) == first


def _graphql_item():
    return {
        "id": "PVTI_1",
        "type": "ISSUE",
        "content": {
            "__typename": "Issue",
            "id": "I_1",
            "number": 3,
            "title": "Add search",
            "url": "https://github.com/acme/web/issues/3",
            "state": "OPEN",
            "repository": {"name": "web", "owner": {"login": "acme"}},
            "assignees": {"nodes": [{"login": "cat", "avatarUrl": "https://avatars/cat"}]},
            "labels": {"nodes": [{"name": "feature", "color": "00ff00"}]},
            "createdAt": "2024-04-01T00:00:00Z",
            "updatedAt": "2024-04-02T00:00:00Z",
            "parent": {"number": 1, "title": "Roadmap"},
        },
        "fieldValues": {
            "nodes": [
                {"name": "In Progress", "optionId": "o1", "field": {"id": "F1", "name": "Status"}},
                {"number": 5.0, "field": {"id": "F2", "name": "Estimate"}},
                {"title": "Iteration 2", "startDate": "2024-04-01", "duration": 14, "field": {"name": "Iteration"}},
                {},
                {"text": "hello", "field": {}},
            ]
        },
    }


def test_map_graphql_item():
    item = map_graphql_item(_graphql_item())
    assert item.id == "PVTI_1"
    assert item.kind == "ISSUE"
    assert item.state == "OPEN"
    assert (item.repository_owner, item.repository) == ("acme", "web")
    assert item.status == "In Progress"
    assert resolve_field(item, "Estimate") == "5"
    assert resolve_field(item, "iteration") == "Iteration 2"
    assert item.custom_fields["Parent issue"] == ScalarValue("Roadmap")
    assert item.custom_fields["Parent issue number"] == ScalarValue(1)


def test_map_graphql_draft_defaults():
    item = map_graphql_item({"id": "PVTI_2", "content": {"__typename": "DraftIssue", "title": "Idea"}})
    assert item.kind == "DRAFT_ISSUE"
    assert item.repository == "No Repository"
    assert item.state == "UNKNOWN"


def _graphql_view():
    status = {
        "id": "F1",
        "name": "Status",
        "dataType": "SINGLE_SELECT",
        "options": [{"id": "o1", "name": "Todo", "color": "GRAY"}, {"id": "o2", "name": "Done", "color": "GREEN"}],
    }
    sprint = {
        "id": "F3",
        "name": "Sprint",
        "dataType": "ITERATION",
        "configuration": {"iterations": [{"id": "i1", "title": "Sprint 1"}, {"id": "i2", "title": "Sprint 2"}]},
    }
    return {
        "id": "PVTV_1",
        "name": "Board",
        "number": 2,
        "layout": "BOARD_LAYOUT",
        "filter": "is:open",
        "sortByFields": {"nodes": [{"direction": "DESC", "field": {"name": "Estimate"}}]},
        "groupByFields": {"nodes": [status]},
        "verticalGroupByFields": {"nodes": [sprint, status]},
        "fields": {"nodes": [status, sprint, {"id": "F4", "name": "Title", "dataType": "TITLE"}]},
    }


def test_map_graphql_view():
    view = map_graphql_view(_graphql_view())
    assert view.layout == "BOARD"
    assert view.filter_expression == "is:open"
    assert view.group_by_fields == ("Status", "Sprint")
    assert [(s.field, s.direction) for s in view.sort_by_fields] == [("Estimate", "DESC")]


def test_map_view_fields():
    fields = map_view_fields(_graphql_view())
    assert set(fields) == {"Status", "Sprint", "Title"}
    assert [o.name for o in fields["Status"].options] == ["Todo", "Done"]
    assert fields["Status"].options[1].color == "GREEN"
    assert [o.name for o in fields["Sprint"].options] == ["Sprint 1", "Sprint 2"]
    assert fields["Title"].options == ()


def test_coerce_field_value():
    assert coerce_field_value(None) is None
    assert coerce_field_value("x") == ScalarValue("x")
    assert coerce_field_value({"title": "Sprint 1", "startDate": "2024-01-01"}) == TitledValue("Sprint 1", "2024-01-01")
    assert coerce_field_value({"raw": "r", "html": "<p>r</p>"}) == RawValue("r", "<p>r</p>")


def test_map_item_dict_and_dataframe():
    items = [
        map_item_dict(
            {
                "id": "1",
                "type": "PULL_REQUEST",
                "title": "Bump deps",
                "state": "MERGED",
                "repository": "api",
                "repositoryOwner": "acme",
                "assignees": [{"login": "octo"}],
                "customFields": {"Estimate": 2, "Sprint": {"title": "S1"}},
                "updatedAt": "2024-02-01T00:00:00Z",
            }
        ),
        map_item_dict({"id": "2", "title": "Draft", "kind": "DRAFT_ISSUE"}),
    ]
    assert items[0].kind == "PULL_REQUEST"
    assert items[0].repository_owner == "acme"
    assert items[0].custom_fields["Sprint"] == TitledValue("S1")

    df = items_to_dataframe(items)
    assert list(df["id"]) == ["1", "2"]
    assert df.loc[0, "Sprint"] == "S1"
    assert df.loc[0, "assignees"] == ["octo"]
    assert str(df["updated_at"].dt.tz) == "UTC"


def test_items_to_dataframe_empty():
    df = items_to_dataframe([])
    assert df.empty
    assert "title" in df.columns
