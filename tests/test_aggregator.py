import os

import pytest

from syncwatch.core.aggregator import TreeAggregator
from syncwatch.core.classifier import PathClassifier, PathKind
from syncwatch.core.errors import AggregationError


class CountingClassifier(PathClassifier):

    def __init__(self):
        self.seen = []

    def classify(self, path):
        self.seen.append(path)
        return PathKind.DELETED


@pytest.mark.component
@pytest.mark.fast
class TestTreeAggregator:
    """Batches collapse into the minimal covering set of scan targets."""

    def test_single_file(self, tmp_path, tree):
        changes = tree("a/file1")
        assert TreeAggregator(tmp_path, 10).aggregate(changes) == ["a/file1"]

    def test_single_directory(self, tmp_path, tree):
        changes = tree("a/")
        assert TreeAggregator(tmp_path, 10).aggregate(changes) == ["a"]

    def test_sibling_rollup(self, tmp_path, tree):
        changes = tree("a/file1.txt", "a/file2", "a/file3.ogg")
        assert TreeAggregator(tmp_path, 2).aggregate(changes) == ["a"]

    def test_directories_with_files(self, tmp_path, tree):
        changes = tree("a/", "a/file1.txt", "a/file2", "b/", "a/file3.ogg")
        assert TreeAggregator(tmp_path, 10).aggregate(changes) == ["a", "b"]

    def test_cross_directory_independence(self, tmp_path, tree):
        changes = tree("a/b/file1.txt", "a/c/file2", "a/d/file3.ogg")
        assert TreeAggregator(tmp_path, 3).aggregate(changes) == changes

    def test_deep_rollup_with_outlier(self, tmp_path, tree):
        changes = tree(
            "a/e",
            "a/b/d",
            "a/b/file1.txt",
            "a/b/file2",
            "a/b/file3.ogg",
            "a/b/c/file4",
        )
        assert TreeAggregator(tmp_path, 3).aggregate(changes) == ["a/b", "a/e"]

    def test_rollup_to_folder_root(self, tmp_path, tree):
        changes = tree("a/b/", "a/c/", "file1", "file2", "file3")
        assert TreeAggregator(tmp_path, 3).aggregate(changes) == [""]

    def test_directory_absorbs_its_files(self, tmp_path, tree):
        changes = tree("a/b/c/", "a/b/c/file1.txt", "a/b/c/file2", "a/b/c/file3.ogg")
        assert TreeAggregator(tmp_path, 10).aggregate(changes) == ["a/b/c"]

    def test_parent_directory_covers_children(self, tmp_path, tree):
        changes = tree("a/", "a/b/", "a/b/file1.txt")
        assert TreeAggregator(tmp_path, 10).aggregate(changes) == ["a"]

    def test_removed_parent_directory(self, tmp_path):
        aggregator = TreeAggregator(tmp_path, 10)
        assert aggregator.aggregate(["a", "a/b", "a/b/file1.txt"]) == ["a"]

    def test_many_deleted_files(self, tmp_path):
        changes = [f"a/{i}" for i in range(50)]
        targets = TreeAggregator(tmp_path, 256).aggregate(changes)
        assert len(targets) == 50
        assert targets[0] == "a/0"

    def test_files_below_threshold_stay_individual(self, tmp_path, tree):
        changes = tree(*[f"a/{i}" for i in range(50)])
        targets = TreeAggregator(tmp_path, 51).aggregate(changes)
        assert len(targets) == 50
        assert targets[0] == "a/0"

    @pytest.mark.parametrize("threshold", [2, 5, 10])
    def test_density_threshold_boundary(self, tmp_path, tree, threshold):
        changes = tree(*[f"d/f{i}" for i in range(threshold)])
        aggregator = TreeAggregator(tmp_path, threshold)

        assert aggregator.aggregate(changes) == ["d"]
        assert aggregator.aggregate(changes[:-1]) == sorted(changes[:-1])

    def test_similar_prefix_is_not_a_descendant(self, tmp_path, tree):
        tree("a/1/", "a/10/x")
        targets = TreeAggregator(tmp_path, 2).aggregate(["a/1", "a/10/x"])
        assert targets == ["a/1", "a/10/x"]

    def test_symlinked_root(self, tmp_path):
        real = tmp_path / "real"
        link = tmp_path / "link"
        real.mkdir()
        os.symlink(real, link)
        for i in range(3):
            (link / "a").mkdir(exist_ok=True)
            (link / "a" / str(i)).touch()

        targets = TreeAggregator(link, 10).aggregate(["a/0", "a/1", "a/2"])
        assert targets == ["a/0", "a/1", "a/2"]

    def test_duplicates_and_unclean_paths(self, tmp_path, tree):
        tree("a/file")
        targets = TreeAggregator(tmp_path, 10).aggregate(["a/file", "./a//file", "a/file/"])
        assert targets == ["a/file"]

    def test_classifier_sees_absolute_paths(self, tmp_path):
        classifier = CountingClassifier()
        TreeAggregator(tmp_path, 10, classifier).aggregate(["x/y"])
        assert classifier.seen == [tmp_path / "x" / "y"]

    def test_empty_batch_rejected(self, tmp_path):
        with pytest.raises(AggregationError):
            TreeAggregator(tmp_path, 10).aggregate([])

    def test_threshold_must_be_positive(self, tmp_path):
        with pytest.raises(ValueError):
            TreeAggregator(tmp_path, 0)
