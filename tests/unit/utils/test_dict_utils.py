"""Tests for dict_utils."""

from codewith.utils.dict_utils import deep_merge, is_prefix, leaf_paths, remove_path


def test_deep_merge_nested():
    base = {"env": {"A": "1", "B": "2"}, "theme": "dark"}
    merged = deep_merge(base, {"env": {"B": "3"}, "model": "x"})
    assert merged == {"env": {"A": "1", "B": "3"}, "theme": "dark", "model": "x"}
    assert base["env"]["B"] == "2"


def test_deep_merge_overlay_replaces_lists():
    assert deep_merge({"allow": ["a", "b"]}, {"allow": ["c"]}) == {"allow": ["c"]}


def test_leaf_paths():
    data = {"env": {"A": "1", "nested": {"B": 2}}, "empty": {}, "flag": True}
    assert leaf_paths(data) == {("env", "A"), ("env", "nested", "B"), ("flag",)}


def test_remove_path_prunes_empty_parents():
    data = {"env": {"A": "1"}, "keep": 1}
    assert remove_path(data, ("env", "A")) is True
    assert data == {"keep": 1}


def test_remove_path_missing():
    data = {"env": "not-a-dict"}
    assert remove_path(data, ("env", "A")) is False
    assert remove_path(data, ("other",)) is False
    assert data == {"env": "not-a-dict"}


def test_is_prefix():
    assert is_prefix(("env",), ("env", "A"))
    assert not is_prefix(("env", "A"), ("env", "A"))
    assert not is_prefix(("model",), ("env", "A"))
