from github_dashboard.core import view_config
from github_dashboard.core.view_config import get_saved_view, load_saved_views


def test_packaged_views_load(monkeypatch):
    monkeypatch.setattr(view_config, "_CACHE", None)
    views = load_saved_views()
    assert views
    assert all(v.id and v.name for v in views)
    assert load_saved_views() is views
    assert get_saved_view(views[0].name) == views[0]


def test_views_yaml_parsing(tmp_path):
    (tmp_path / "views.yaml").write_text(
        """
views:
  - name: Swimlanes
    layout: board
    filter: is:open -label:wontfix
    group_by: [Assignees, Status]
    sort_by:
      - field: Priority
        direction: desc
      - Title
  - name: Plain
"""
    )
    views = load_saved_views(tmp_path)
    assert [v.name for v in views] == ["Swimlanes", "Plain"]
    lanes = views[0]
    assert lanes.layout == "BOARD"
    assert lanes.filter_expression == "is:open -label:wontfix"
    assert lanes.group_by_fields == ("Assignees", "Status")
    assert [(s.field, s.direction) for s in lanes.sort_by_fields] == [("Priority", "DESC"), ("Title", "ASC")]
    assert views[1].layout == "TABLE"
    assert views[1].group_by_fields == ()


def test_missing_or_broken_file_falls_back(tmp_path):
    assert load_saved_views(tmp_path) == list(view_config.DEFAULT_VIEWS)
    (tmp_path / "views.yaml").write_text("views: [unclosed")
    assert load_saved_views(tmp_path) == list(view_config.DEFAULT_VIEWS)
    assert get_saved_view("nope", tmp_path) is None
