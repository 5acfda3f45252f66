from github_dashboard.core.models import (
    Assignee,
    Label,
    RawValue,
    ScalarValue,
    TitledValue,
    WorkItem,
)
from github_dashboard.views.resolver import placeholder_for, resolve_field


def _item(**kwargs):
    base = {"id": "I_1", "state": "OPEN", "repository": "api", "repository_owner": "acme"}
    base.update(kwargs)
    return WorkItem(**base)


def test_custom_field_exact_then_case_insensitive():
    item = _item(custom_fields={"Priority": ScalarValue("High"), "team": ScalarValue("Core")})
    assert resolve_field(item, "Priority") == "High"
    assert resolve_field(item, "priority") == "High"
    assert resolve_field(item, "Team") == "Core"


def test_tagged_values_use_their_text():
    item = _item(
        custom_fields={
            "Sprint": TitledValue(title="Sprint 4", start_date="2024-05-01", duration=14),
            "Notes": RawValue(raw="plain text", html="<p>plain text</p>"),
            "Estimate": ScalarValue(3.0),
            "Done": ScalarValue(True),
        }
    )
    assert resolve_field(item, "Sprint") == "Sprint 4"
    assert resolve_field(item, "Notes") == "plain text"
    assert resolve_field(item, "Estimate") == "3"
    assert resolve_field(item, "Done") == "true"


def test_untagged_title_mapping_is_accepted():
    item = _item(custom_fields={"Iteration": {"title": "Iter 2", "startDate": "2024-01-01"}})
    assert resolve_field(item, "Iteration") == "Iter 2"


def test_builtin_fallbacks():
    item = _item(
        kind="PULL_REQUEST",
        assignees=(Assignee("octo"), Assignee("cat")),
        labels=(Label("bug"), Label("ui")),
        status="In Progress",
    )
    assert resolve_field(item, "state") == "OPEN"
    assert resolve_field(item, "Type") == "PULL_REQUEST"
    assert resolve_field(item, "assignee") == "octo"
    assert resolve_field(item, "Assignees") == "octo"
    assert resolve_field(item, "Labels") == "bug"
    assert resolve_field(item, "repo") == "api"
    assert resolve_field(item, "owner") == "acme"
    assert resolve_field(item, "Status") == "In Progress"


def test_builtin_placeholders():
    item = WorkItem(id="I_2")
    assert resolve_field(item, "assignees") == "Unassigned"
    assert resolve_field(item, "labels") == "No Labels"
    assert resolve_field(item, "status") == "No Status"
    assert resolve_field(item, "priority") == "No Priority"
    assert resolve_field(item, "parent issue") == "No Parent Issue"
    assert resolve_field(item, "state") == "No State"


def test_missing_field_placeholder_splits_camel_case():
    item = _item()
    assert resolve_field(item, "dueDate") == "No Due Date"
    assert resolve_field(item, "Estimate") == "No Estimate"
    assert placeholder_for("story points") == "No Story Points"


def test_empty_values_count_as_missing():
    item = _item(custom_fields={"Team": ScalarValue(""), "Area": None})
    assert resolve_field(item, "Team") == "No Team"
    assert resolve_field(item, "Area") == "No Area"


def test_resolve_never_returns_empty():
    items = [
        WorkItem(id="a"),
        _item(custom_fields={"X": ScalarValue("")}),
        _item(assignees=(Assignee(""),), labels=(Label(""),)),
    ]
    for item in items:
        for name in ("", None, "X", "assignee", "label", "status", "whatever", "parent_issue"):
            value = resolve_field(item, name)
            assert isinstance(value, str) and value
