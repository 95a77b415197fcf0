import pytest

from syncwatch.core.paths import (
    ROOT,
    is_strict_descendant,
    normalize_path,
    path_components,
    relative_path,
    strict_ancestors,
)


@pytest.mark.fast
class TestPaths:

    @pytest.mark.parametrize("raw,expected", [
        ("", ROOT),
        (".", ROOT),
        ("./a//b/", "a/b"),
        ("/a/b", "a/b"),
        ("a/./b/../c", "a/c"),
    ])
    def test_normalize_path(self, raw, expected):
        assert normalize_path(raw) == expected

    def test_relative_path(self, tmp_path):
        assert relative_path(tmp_path / "a" / "b", tmp_path) == "a/b"
        assert relative_path(tmp_path, tmp_path) == ROOT

    def test_sort_keeps_descendants_after_their_directory(self):
        paths = ["a/b", "a-b", "a", "a/b/c", "a.txt"]
        assert sorted(paths, key=path_components) == ["a", "a/b", "a/b/c", "a-b", "a.txt"]

    def test_descendant_is_component_wise(self):
        assert is_strict_descendant("a/1/x", "a/1")
        assert not is_strict_descendant("a/10", "a/1")
        assert not is_strict_descendant("a/1", "a/1")

    def test_root_is_ancestor_of_everything(self):
        assert is_strict_descendant("a", ROOT)
        assert not is_strict_descendant(ROOT, ROOT)

    def test_strict_ancestors(self):
        assert list(strict_ancestors("a/b/c")) == ["a/b", "a", ROOT]
        assert list(strict_ancestors(ROOT)) == []
